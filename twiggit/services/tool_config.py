"""Mirror local tool configuration from a repository into a new worktree."""

import os
import shutil
from typing import Iterable, List, Optional

from twiggit.constants import TOOL_CONFIG_FILES
from twiggit.exceptions import FilesystemAccessError
from twiggit.logging_config import get_logger

logger = get_logger(__name__)


class ToolConfigCopier:
    """Copies untracked, machine-local config files (such as mise's) that git does not carry over."""

    def __init__(self, files: Optional[Iterable[str]] = None):
        self.files: List[str] = list(files) if files is not None else list(TOOL_CONFIG_FILES)

    def detect(self, repo_path: str) -> List[str]:
        """Relative paths of the configured files present in repo_path."""
        return [name for name in self.files if os.path.isfile(os.path.join(repo_path, name))]

    def copy(self, repo_path: str, worktree_path: str) -> List[str]:
        """Copy every detected file into worktree_path; return what was copied."""
        if not os.path.isdir(worktree_path):
            raise FilesystemAccessError("Worktree path does not exist", path=worktree_path)

        copied = []
        for name in self.detect(repo_path):
            source = os.path.join(repo_path, name)
            target = os.path.join(worktree_path, name)
            try:
                os.makedirs(os.path.dirname(target), exist_ok=True)
                shutil.copy2(source, target)
            except OSError as e:
                raise FilesystemAccessError(f"Failed to copy {name}: {e.strerror or e}", path=target)
            copied.append(name)
            logger.debug(f"Copied {name} into {worktree_path}")
        return copied
