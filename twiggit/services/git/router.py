"""Static routing of git operations to the library or CLI backend."""

from typing import Callable, Dict, List, Optional

from twiggit.config import Config
from twiggit.logging_config import get_logger
from twiggit.models.project import BranchInfo, RepositoryInfo, RepositoryStatus
from twiggit.models.worktree import WorktreeEntry
from twiggit.services.git.cli_backend import CLIBackend
from twiggit.services.git.library_backend import LibraryBackend
from twiggit.utils.cancellation import CancelToken

logger = get_logger(__name__)

LIBRARY = "library"
CLI = "cli"

# Each operation is served by exactly one backend; there is no fallback.
ROUTING_TABLE: Dict[str, str] = {
    "list_branches": LIBRARY,
    "branch_exists": LIBRARY,
    "validate_repository": LIBRARY,
    "get_repository_status": LIBRARY,
    "get_repository_info": LIBRARY,
    "create_worktree": CLI,
    "list_worktrees": CLI,
    "delete_worktree": CLI,
    "delete_branch": CLI,
    "prune_worktrees": CLI,
    "is_branch_merged": CLI,
}


class GitRouter:
    """Single entry point for git operations.

    The dispatch table is bound once at construction. A failing backend's
    error propagates to the caller unchanged.
    """

    def __init__(
        self,
        config: Optional[Config] = None,
        library: Optional[LibraryBackend] = None,
        cli: Optional[CLIBackend] = None,
    ):
        config = config or Config()
        self.library = library or LibraryBackend()
        self.cli = cli or CLIBackend(timeout=config.cli_timeout)
        backends = {LIBRARY: self.library, CLI: self.cli}
        self._dispatch: Dict[str, Callable] = {
            operation: getattr(backends[kind], operation)
            for operation, kind in ROUTING_TABLE.items()
        }

    @staticmethod
    def backend_for(operation: str) -> str:
        """Name of the backend an operation is routed to."""
        try:
            return ROUTING_TABLE[operation]
        except KeyError:
            raise ValueError(f"Unknown git operation '{operation}'")

    def _call(self, operation: str, *args, **kwargs):
        logger.debug(f"Routing {operation} to {ROUTING_TABLE[operation]} backend")
        return self._dispatch[operation](*args, **kwargs)

    # Library-backed operations

    def validate_repository(self, repo_path: str, cancel: Optional[CancelToken] = None) -> None:
        return self._call("validate_repository", repo_path, cancel=cancel)

    def list_branches(self, repo_path: str, cancel: Optional[CancelToken] = None) -> List[BranchInfo]:
        return self._call("list_branches", repo_path, cancel=cancel)

    def branch_exists(self, repo_path: str, branch: str, cancel: Optional[CancelToken] = None) -> bool:
        return self._call("branch_exists", repo_path, branch, cancel=cancel)

    def get_repository_status(self, repo_path: str, cancel: Optional[CancelToken] = None) -> RepositoryStatus:
        return self._call("get_repository_status", repo_path, cancel=cancel)

    def get_repository_info(self, repo_path: str, cancel: Optional[CancelToken] = None) -> RepositoryInfo:
        return self._call("get_repository_info", repo_path, cancel=cancel)

    # CLI-backed operations

    def create_worktree(
        self,
        repo_path: str,
        branch: str,
        source_branch: str,
        worktree_path: str,
        cancel: Optional[CancelToken] = None,
    ) -> None:
        return self._call("create_worktree", repo_path, branch, source_branch, worktree_path, cancel=cancel)

    def list_worktrees(self, repo_path: str, cancel: Optional[CancelToken] = None) -> List[WorktreeEntry]:
        return self._call("list_worktrees", repo_path, cancel=cancel)

    def delete_worktree(
        self,
        repo_path: str,
        worktree_path: str,
        force: bool = False,
        cancel: Optional[CancelToken] = None,
    ) -> None:
        return self._call("delete_worktree", repo_path, worktree_path, force=force, cancel=cancel)

    def delete_branch(self, repo_path: str, branch: str, cancel: Optional[CancelToken] = None) -> None:
        return self._call("delete_branch", repo_path, branch, cancel=cancel)

    def prune_worktrees(self, repo_path: str, cancel: Optional[CancelToken] = None) -> None:
        return self._call("prune_worktrees", repo_path, cancel=cancel)

    def is_branch_merged(
        self,
        repo_path: str,
        branch: str,
        target: str,
        cancel: Optional[CancelToken] = None,
    ) -> bool:
        return self._call("is_branch_merged", repo_path, branch, target, cancel=cancel)
