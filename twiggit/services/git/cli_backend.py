"""Worktree lifecycle operations through the git executable."""

import os
from typing import Any, Dict, List, Optional

import git

from twiggit.constants import DEFAULT_CLI_TIMEOUT
from twiggit.exceptions import (
    BranchNotFoundError,
    CLIBackendError,
    CurrentBranchDeletionError,
    OperationCancelledError,
    RepositoryNotFoundError,
)
from twiggit.logging_config import get_logger
from twiggit.models.worktree import WorktreeEntry
from twiggit.utils.cancellation import CancelToken, check_cancelled

logger = get_logger(__name__)


class CLIBackend:
    """Shells out to git through GitPython's command wrapper.

    Every call runs with a kill timeout: the configured per-call timeout,
    capped by whatever is left of the caller's deadline.
    """

    name = "cli"

    def __init__(self, timeout: float = DEFAULT_CLI_TIMEOUT):
        self.timeout = timeout

    def _get_git(self, repo_path: str) -> git.Git:
        if not repo_path or not os.path.isdir(repo_path):
            raise RepositoryNotFoundError(repo_path, "Path does not exist")
        return git.Git(repo_path)

    def _call_timeout(self, cancel: Optional[CancelToken]) -> float:
        timeout = self.timeout
        if cancel is not None:
            remaining = cancel.remaining()
            if remaining is not None:
                timeout = min(timeout, remaining)
        return timeout

    def _run(self, repo_path: str, operation: str, *args: str, cancel: Optional[CancelToken] = None) -> str:
        """Run `git <args>` in repo_path and return stripped stdout."""
        check_cancelled(cancel, operation)
        g = self._get_git(repo_path)
        timeout = self._call_timeout(cancel)
        logger.debug(f"[{operation}] git {' '.join(args)} (cwd={repo_path}, timeout={timeout:.1f}s)")
        try:
            return g.execute([git.Git.GIT_PYTHON_GIT_EXECUTABLE or "git", *args], kill_after_timeout=timeout)
        except git.exc.GitCommandNotFound as e:
            raise CLIBackendError(operation, "not found", str(e), path=repo_path)
        except git.exc.GitCommandError as e:
            if cancel is not None and cancel.cancelled:
                raise OperationCancelledError(operation)
            stderr = (e.stderr if hasattr(e, "stderr") else str(e)).strip()
            status = e.status if hasattr(e, "status") else "unknown"
            raise CLIBackendError(operation, status, _clean_stderr(stderr), path=repo_path)

    def _ref_exists(self, repo_path: str, ref: str, cancel: Optional[CancelToken] = None) -> bool:
        try:
            self._run(repo_path, "show_ref", "show-ref", "--verify", "--quiet", ref, cancel=cancel)
            return True
        except CLIBackendError as e:
            if e.exit_status == 1:
                return False
            raise

    def branch_exists(self, repo_path: str, branch: str, cancel: Optional[CancelToken] = None) -> bool:
        return self._ref_exists(repo_path, f"refs/heads/{branch}", cancel=cancel)

    def create_worktree(
        self,
        repo_path: str,
        branch: str,
        source_branch: str,
        worktree_path: str,
        cancel: Optional[CancelToken] = None,
    ) -> None:
        """Add a worktree, checking out branch or creating it from source_branch."""
        if self.branch_exists(repo_path, branch, cancel=cancel):
            self._run(repo_path, "create_worktree", "worktree", "add", worktree_path, branch, cancel=cancel)
        else:
            if not self.branch_exists(repo_path, source_branch, cancel=cancel):
                raise BranchNotFoundError(source_branch, path=repo_path)
            self._run(
                repo_path, "create_worktree",
                "worktree", "add", "-b", branch, worktree_path, source_branch,
                cancel=cancel,
            )
        logger.info(f"Created worktree for {branch} at {worktree_path}")

    def list_worktrees(self, repo_path: str, cancel: Optional[CancelToken] = None) -> List[WorktreeEntry]:
        """List every worktree of the repository, main worktree first."""
        output = self._run(repo_path, "list_worktrees", "worktree", "list", "--porcelain", cancel=cancel)
        worktrees = parse_worktree_porcelain(output)
        logger.debug(f"Found {len(worktrees)} worktrees in {repo_path}")
        return worktrees

    def delete_worktree(
        self,
        repo_path: str,
        worktree_path: str,
        force: bool = False,
        cancel: Optional[CancelToken] = None,
    ) -> None:
        """Remove a worktree. A worktree whose directory is already gone only has its metadata pruned."""
        if not os.path.exists(worktree_path):
            logger.debug(f"Worktree {worktree_path} already removed, pruning metadata")
            self.prune_worktrees(repo_path, cancel=cancel)
            return

        args = ["worktree", "remove"]
        if force:
            args.append("--force")
        args.append(worktree_path)
        self._run(repo_path, "delete_worktree", *args, cancel=cancel)
        logger.info(f"Removed worktree at {worktree_path}")

    def delete_branch(self, repo_path: str, branch: str, cancel: Optional[CancelToken] = None) -> None:
        """Delete a local branch that is not checked out in the repository."""
        if not self.branch_exists(repo_path, branch, cancel=cancel):
            raise BranchNotFoundError(branch, path=repo_path)

        current = self._current_branch(repo_path, cancel=cancel)
        if current == branch:
            raise CurrentBranchDeletionError(branch, path=repo_path)

        self._run(repo_path, "delete_branch", "branch", "-D", branch, cancel=cancel)
        logger.info(f"Deleted branch {branch}")

    def prune_worktrees(self, repo_path: str, cancel: Optional[CancelToken] = None) -> None:
        """Prune stale worktree metadata."""
        self._run(repo_path, "prune_worktrees", "worktree", "prune", cancel=cancel)
        logger.debug(f"Pruned worktree metadata in {repo_path}")

    def is_branch_merged(
        self,
        repo_path: str,
        branch: str,
        target: str,
        cancel: Optional[CancelToken] = None,
    ) -> bool:
        """True when branch has no commits that target lacks."""
        for name in (branch, target):
            if not self.branch_exists(repo_path, name, cancel=cancel):
                raise BranchNotFoundError(name, path=repo_path)

        count = self._run(
            repo_path, "is_branch_merged",
            "rev-list", "--count", f"refs/heads/{target}..refs/heads/{branch}",
            cancel=cancel,
        )
        merged = count.strip() == "0"
        logger.debug(f"Branch {branch} merged into {target}: {merged}")
        return merged

    def _current_branch(self, repo_path: str, cancel: Optional[CancelToken] = None) -> Optional[str]:
        try:
            return self._run(repo_path, "current_branch", "symbolic-ref", "--short", "-q", "HEAD", cancel=cancel) or None
        except CLIBackendError as e:
            if e.exit_status == 1:
                return None  # Detached HEAD
            raise


def _clean_stderr(stderr: str) -> str:
    # GitPython wraps stderr as "stderr: '...'"
    if stderr.startswith("stderr:"):
        stderr = stderr[len("stderr:"):].strip().strip("'")
    return stderr.strip()


def parse_worktree_porcelain(output: str) -> List[WorktreeEntry]:
    """Parse `git worktree list --porcelain` output.

    Format:
        worktree /path/to/worktree
        HEAD commit_sha
        branch refs/heads/branch-name   (or "detached")
        (blank line between worktrees)
    """
    worktrees: List[WorktreeEntry] = []
    current: Dict[str, Any] = {}

    def flush():
        path = current.get("path")
        if path:
            worktrees.append(
                WorktreeEntry(
                    path=path,
                    branch=current.get("branch", ""),
                    commit_sha=current.get("HEAD", ""),
                    # First worktree in list is always the main one
                    is_main=not worktrees,
                    is_detached=current.get("detached", False),
                    is_orphaned=not os.path.exists(path),
                )
            )
        current.clear()

    for line in output.split("\n"):
        line = line.strip()
        if not line:
            flush()
            continue

        if line.startswith("worktree "):
            if current:
                flush()
            current["path"] = line.split(" ", 1)[1]
        elif line.startswith("HEAD "):
            current["HEAD"] = line.split(" ", 1)[1]
        elif line.startswith("branch "):
            branch_ref = line.split(" ", 1)[1]
            if branch_ref.startswith("refs/heads/"):
                current["branch"] = branch_ref[len("refs/heads/"):]
            else:
                current["branch"] = ""
        elif line == "detached":
            current["branch"] = ""
            current["detached"] = True

    # Handle last entry if no trailing blank line
    flush()
    return worktrees
