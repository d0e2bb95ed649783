"""Create, delete and list worktrees."""

import os
from typing import List, Optional

from twiggit.config import Config
from twiggit.exceptions import (
    FilesystemAccessError,
    InvalidInputError,
    WorktreeExistsError,
)
from twiggit.logging_config import get_logger
from twiggit.models.context import Context, ContextType
from twiggit.models.worktree import WorktreeEntry, WorktreeInfo
from twiggit.services.context_detector import ContextDetector
from twiggit.services.context_resolver import ContextResolver
from twiggit.services.git.router import GitRouter
from twiggit.services.hooks import HookRunner, build_hook_environment
from twiggit.services.tool_config import ToolConfigCopier
from twiggit.utils.cancellation import CancelToken, check_cancelled
from twiggit.utils.paths import contains_path_traversal, normalize_path

logger = get_logger(__name__)


class WorktreeService:
    """Worktree lifecycle for projects under the projects root."""

    def __init__(
        self,
        config: Config,
        router: GitRouter,
        detector: ContextDetector,
        resolver: ContextResolver,
        copier: Optional[ToolConfigCopier] = None,
        hook_runner: Optional[HookRunner] = None,
    ):
        self.config = config
        self.router = router
        self.detector = detector
        self.resolver = resolver
        self.copier = copier or ToolConfigCopier(config.tool_config_files)
        self.hook_runner = hook_runner

    def create_worktree(
        self,
        project: str,
        branch: str,
        source_branch: Optional[str] = None,
        cancel: Optional[CancelToken] = None,
    ) -> WorktreeInfo:
        """Create <workspaces>/<project>/<branch>.

        An existing branch is checked out; a new one is created from
        source_branch (default: the configured source branch).

        Raises:
            InvalidInputError: empty or unsafe branch name
            WorktreeExistsError: the target directory is already there
            ProjectNotFoundError: project does not exist
            BackendError: git refused to add the worktree
        """
        branch = (branch or "").strip()
        if not branch:
            raise InvalidInputError("Branch name cannot be empty")
        if contains_path_traversal(branch):
            raise InvalidInputError(f"Branch name '{branch}' contains path traversal sequences")

        source = source_branch or self.config.default_source_branch
        project_path = self.resolver.resolve_project(project, cancel=cancel)
        worktree_path = self.resolver.worktree_path(project, branch)
        if os.path.lexists(worktree_path):
            raise WorktreeExistsError(worktree_path)

        check_cancelled(cancel, "create_worktree")
        try:
            os.makedirs(os.path.dirname(worktree_path), exist_ok=True)
        except OSError as e:
            raise FilesystemAccessError(f"Cannot create worktree parent directory: {e.strerror or e}",
                                        path=os.path.dirname(worktree_path))

        self.router.create_worktree(project_path, branch, source, worktree_path, cancel=cancel)
        self.detector.invalidate_cache_for_repo(project_path)

        try:
            copied = self.copier.copy(project_path, worktree_path)
            if copied:
                logger.info(f"Copied tool config into {worktree_path}: {', '.join(copied)}")
        except FilesystemAccessError as e:
            logger.warning(f"Could not copy tool config: {e}")

        if self.hook_runner is not None:
            env = build_hook_environment(worktree_path, project, branch, source, project_path)
            try:
                self.hook_runner(worktree_path, env)
            except Exception as e:
                logger.warning(f"Post-create hook failed for {worktree_path}: {e}")

        status = self.router.get_repository_status(worktree_path, cancel=cancel)
        return WorktreeInfo(
            path=normalize_path(worktree_path),
            branch=branch,
            project_name=project,
            last_updated=status.commit_time,
            is_clean=status.is_clean,
        )

    def delete_worktree(self, path: str, force: bool = False, cancel: Optional[CancelToken] = None) -> bool:
        """Remove the worktree at path. Returns False if it was already gone.

        Raises:
            InvalidInputError: path is a project or lies outside any worktree
        """
        if not path:
            raise InvalidInputError("Worktree path cannot be empty")

        if not os.path.exists(path):
            return self._forget_missing_worktree(path, cancel)

        ctx = self.detector.detect_context(path, cancel=cancel)
        if ctx.type != ContextType.WORKTREE:
            raise InvalidInputError("Path is not a linked worktree", path=path)

        self.router.delete_worktree(ctx.project_path, ctx.path, force=force, cancel=cancel)
        self.detector.invalidate_cache_for_repo(ctx.project_path)
        logger.info(f"Deleted worktree {ctx.project_name}/{ctx.branch_name}")
        return True

    def list_worktrees(
        self,
        ctx: Optional[Context] = None,
        project: Optional[str] = None,
        include_main: bool = False,
        cancel: Optional[CancelToken] = None,
    ) -> List[WorktreeEntry]:
        """Worktrees of the named project, or of the project ctx belongs to."""
        if project:
            project_path = self.resolver.resolve_project(project, cancel=cancel)
        elif ctx is not None and ctx.in_repository:
            project_path = ctx.project_path or self.resolver.resolve_project(ctx.project_name, cancel=cancel)
        else:
            raise InvalidInputError("No project given and not inside a project or worktree")

        entries = self.router.list_worktrees(project_path, cancel=cancel)
        if not include_main:
            entries = [entry for entry in entries if not entry.is_main]
        return entries

    def _forget_missing_worktree(self, path: str, cancel: Optional[CancelToken]) -> bool:
        """Prune metadata for a worktree whose directory was removed by hand."""
        target = os.path.abspath(path)
        for name in self.resolver.list_project_names():
            project_path = self.resolver.resolve_project(name, cancel=cancel)
            for entry in self.router.list_worktrees(project_path, cancel=cancel):
                if not entry.is_main and os.path.abspath(entry.path) == target:
                    self.router.delete_worktree(project_path, entry.path, cancel=cancel)
                    self.detector.invalidate_cache_for_repo(project_path)
                    logger.info(f"Pruned metadata for missing worktree {path}")
                    return True

        logger.debug(f"Worktree {path} not found in any project, nothing to delete")
        return False
