"""In-process repository access through the GitPython object model."""

import os
from contextlib import contextmanager
from typing import List, Optional

import git

from twiggit.exceptions import LibraryBackendError, RepositoryNotFoundError
from twiggit.logging_config import get_logger
from twiggit.models.project import BranchInfo, RepositoryInfo, RepositoryStatus
from twiggit.utils.cancellation import CancelToken, check_cancelled

logger = get_logger(__name__)


@contextmanager
def _library_errors(operation: str, repo_path: str):
    """Map GitPython failures raised while reading a repository to LibraryBackendError.

    GitPython still shells out for object lookups and diffs, so a missing
    or broken git executable surfaces here as a CommandError.
    """
    try:
        yield
    except git.exc.CommandError as e:
        raise LibraryBackendError(operation, str(e).strip(), path=repo_path)
    except ValueError as e:
        # Unborn HEAD or a ref pointing at a missing object
        raise LibraryBackendError(operation, str(e), path=repo_path)


class LibraryBackend:
    """Read-only repository queries that never spawn a process of their own.

    Owns branch enumeration, branch-existence checks, repository validation,
    status queries and repository layout.
    """

    name = "library"

    def _get_repo(self, repo_path: str) -> git.Repo:
        """Get a thread-safe git.Repo instance.

        Creates a new repo instance for each call so worker threads never
        share one.
        """
        if not repo_path or not os.path.isdir(repo_path):
            raise RepositoryNotFoundError(repo_path, "Path does not exist")
        try:
            return git.Repo(repo_path)
        except (git.exc.InvalidGitRepositoryError, git.exc.NoSuchPathError):
            raise RepositoryNotFoundError(repo_path)
        except git.exc.CommandError as e:
            raise LibraryBackendError("open_repository", str(e).strip(), path=repo_path)

    def validate_repository(self, repo_path: str, cancel: Optional[CancelToken] = None) -> None:
        """Raise RepositoryNotFoundError unless repo_path is a working tree root."""
        check_cancelled(cancel, "validate_repository")
        repo = self._get_repo(repo_path)
        try:
            with _library_errors("validate_repository", repo_path):
                bare = repo.bare or repo.working_tree_dir is None
        finally:
            repo.close()
        if bare:
            raise RepositoryNotFoundError(repo_path, "Bare repositories are not supported")
        logger.debug(f"Validated repository {repo_path}")

    def list_branches(self, repo_path: str, cancel: Optional[CancelToken] = None) -> List[BranchInfo]:
        """List local branches sorted by name."""
        check_cancelled(cancel, "list_branches")
        repo = self._get_repo(repo_path)
        try:
            with _library_errors("list_branches", repo_path):
                current = self._current_branch(repo)
                branches = [
                    BranchInfo(name=head.name, commit_sha=head.commit.hexsha, is_current=head.name == current)
                    for head in repo.heads
                ]
        finally:
            repo.close()

        logger.debug(f"Found {len(branches)} branches in {repo_path}")
        return sorted(branches, key=lambda b: b.name)

    def branch_exists(self, repo_path: str, branch: str, cancel: Optional[CancelToken] = None) -> bool:
        check_cancelled(cancel, "branch_exists")
        repo = self._get_repo(repo_path)
        try:
            with _library_errors("branch_exists", repo_path):
                return any(head.name == branch for head in repo.heads)
        finally:
            repo.close()

    def get_repository_status(self, repo_path: str, cancel: Optional[CancelToken] = None) -> RepositoryStatus:
        """Get branch, HEAD commit and file changes of a working tree."""
        check_cancelled(cancel, "get_repository_status")
        repo = self._get_repo(repo_path)
        try:
            with _library_errors("get_repository_status", repo_path):
                status = RepositoryStatus(path=repo.working_tree_dir, branch=self._current_branch(repo) or "")
                if repo.head.is_valid():
                    commit = repo.head.commit
                    status.commit_sha = commit.hexsha
                    status.commit_time = commit.committed_datetime
                    status.staged = sorted({diff.a_path or diff.b_path for diff in repo.index.diff("HEAD")})
                status.modified = sorted({diff.a_path or diff.b_path for diff in repo.index.diff(None)})
                status.untracked = sorted(repo.untracked_files)
        finally:
            repo.close()

        logger.debug(
            f"Status of {repo_path}: branch={status.branch or '(detached)'}, "
            f"modified={len(status.modified)}, staged={len(status.staged)}, untracked={len(status.untracked)}"
        )
        return status

    def get_repository_info(self, repo_path: str, cancel: Optional[CancelToken] = None) -> RepositoryInfo:
        """Describe the repository layout as seen from repo_path."""
        check_cancelled(cancel, "get_repository_info")
        repo = self._get_repo(repo_path)
        try:
            with _library_errors("get_repository_info", repo_path):
                git_dir = os.path.realpath(repo.git_dir)
                common_dir = os.path.realpath(repo.common_dir)
                is_worktree = git_dir != common_dir
                if os.path.basename(common_dir) == ".git":
                    main_worktree_path = os.path.dirname(common_dir)
                else:
                    main_worktree_path = os.path.realpath(repo.working_tree_dir)

                info = RepositoryInfo(
                    path=os.path.realpath(repo.working_tree_dir),
                    git_dir=git_dir,
                    common_dir=common_dir,
                    is_worktree=is_worktree,
                    main_worktree_path=main_worktree_path,
                    current_branch=self._current_branch(repo) or "",
                    default_branch=self._default_branch(repo),
                )
        finally:
            repo.close()

        logger.debug(f"Repository info for {repo_path}: worktree={info.is_worktree}, main={info.main_worktree_path}")
        return info

    @staticmethod
    def _current_branch(repo: git.Repo) -> Optional[str]:
        try:
            return repo.active_branch.name
        except TypeError:
            return None  # Detached HEAD

    def _default_branch(self, repo: git.Repo) -> str:
        """Guess the default branch from origin/HEAD, then common names."""
        try:
            origin_head = repo.remotes.origin.refs.HEAD
            return origin_head.reference.remote_head
        except (AttributeError, IndexError, TypeError, ValueError):
            pass

        names = {head.name for head in repo.heads}
        for candidate in ("main", "master"):
            if candidate in names:
                return candidate
        return self._current_branch(repo) or ""
