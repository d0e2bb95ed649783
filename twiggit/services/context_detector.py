"""Detect whether a path is in a project, a linked worktree, or neither."""

import os
from threading import Lock
from typing import Callable, Dict, Optional

from twiggit.constants import GITDIR_PREFIX
from twiggit.exceptions import InvalidInputError, PathNotFoundError
from twiggit.logging_config import get_logger
from twiggit.models.context import Context, ContextType
from twiggit.services.git.router import GitRouter
from twiggit.utils.cancellation import CancelToken, check_cancelled
from twiggit.utils.paths import is_path_under, normalize_path

logger = get_logger(__name__)


class ContextCache:
    """Lock-guarded map from normalized path to detected Context.

    Reads are plain dictionary lookups; writes and invalidation hold the lock.
    """

    def __init__(self):
        self._entries: Dict[str, Context] = {}
        self._lock = Lock()

    def get(self, key: str) -> Optional[Context]:
        return self._entries.get(key)

    def put(self, key: str, context: Context) -> Context:
        """Store context unless another thread won the race; return the stored one."""
        with self._lock:
            return self._entries.setdefault(key, context)

    def invalidate(self, predicate: Callable[[Context], bool]) -> int:
        with self._lock:
            stale = [key for key, ctx in self._entries.items() if predicate(ctx)]
            for key in stale:
                del self._entries[key]
        return len(stale)

    def clear(self) -> None:
        with self._lock:
            self._entries.clear()

    def __len__(self) -> int:
        return len(self._entries)


def read_gitdir_link(git_file: str) -> Optional[str]:
    """Return the target of a worktree's .git file, or None if it is not a link."""
    try:
        with open(git_file, encoding="utf-8") as f:
            content = f.read()
    except (OSError, UnicodeDecodeError):
        return None

    for line in content.splitlines():
        line = line.strip()
        if line.startswith(GITDIR_PREFIX):
            target = line[len(GITDIR_PREFIX):].strip()
            if not os.path.isabs(target):
                target = os.path.join(os.path.dirname(git_file), target)
            return os.path.normpath(target)
    return None


class ContextDetector:
    """Classifies paths and caches the result per normalized path."""

    def __init__(self, router: GitRouter, cache: Optional[ContextCache] = None):
        self.router = router
        self.cache = cache or ContextCache()

    def detect_context(self, path: str, cancel: Optional[CancelToken] = None) -> Context:
        """Detect the context of path.

        Repeated calls for the same normalized path return the same object
        until the cache is invalidated.

        Raises:
            InvalidInputError: path is empty
            PathNotFoundError: path does not exist
        """
        if not path or not path.strip():
            raise InvalidInputError("Path cannot be empty")
        if not os.path.exists(path):
            raise PathNotFoundError(path)

        normalized = normalize_path(path)
        cached = self.cache.get(normalized)
        if cached is not None:
            return cached

        check_cancelled(cancel, "detect_context")
        context = self._detect(normalized, cancel)
        logger.debug(f"Detected {context}")
        return self.cache.put(normalized, context)

    def _detect(self, path: str, cancel: Optional[CancelToken]) -> Context:
        current = path if os.path.isdir(path) else os.path.dirname(path)

        while True:
            marker = os.path.join(current, ".git")
            if os.path.isdir(marker):
                name = os.path.basename(current)
                return Context(
                    type=ContextType.PROJECT,
                    path=current,
                    project_name=name,
                    project_path=current,
                    explanation=f"In project directory '{name}'",
                )
            if os.path.isfile(marker) and read_gitdir_link(marker):
                return self._worktree_context(current, cancel)

            parent = os.path.dirname(current)
            if parent == current:
                break
            current = parent

        return Context(
            type=ContextType.OUTSIDE_REPO,
            path=path,
            explanation="Not in a git repository or worktree",
        )

    def _worktree_context(self, worktree_root: str, cancel: Optional[CancelToken]) -> Context:
        info = self.router.get_repository_info(worktree_root, cancel=cancel)
        project_name = info.project_name
        # Detached worktrees are named after their directory
        branch_name = info.current_branch or os.path.basename(worktree_root)
        return Context(
            type=ContextType.WORKTREE,
            path=worktree_root,
            project_name=project_name,
            branch_name=branch_name,
            project_path=info.main_worktree_path,
            explanation=f"In worktree for project '{project_name}' on branch '{branch_name}'",
        )

    def invalidate_cache_for_repo(self, repo_path: str) -> int:
        """Drop cached contexts that belong to repo_path.

        Outside-repository entries are dropped too, since a new worktree may
        now cover those paths.
        """
        root = normalize_path(repo_path)

        def belongs(ctx: Context) -> bool:
            if ctx.type == ContextType.OUTSIDE_REPO:
                return True
            return ctx.project_path == root or is_path_under(ctx.path, root)

        dropped = self.cache.invalidate(belongs)
        logger.debug(f"Invalidated {dropped} cached contexts for {root}")
        return dropped

    def clear_cache(self) -> None:
        self.cache.clear()
