"""Discover projects and worktrees under the configured roots."""

import os
from concurrent.futures import ThreadPoolExecutor, as_completed
from concurrent.futures import TimeoutError as FuturesTimeoutError
from dataclasses import dataclass, field
from typing import Callable, List, Optional

from twiggit.exceptions import (
    BackendError,
    FilesystemAccessError,
    OperationCancelledError,
    RepositoryNotFoundError,
    TwiggitError,
)
from twiggit.logging_config import get_logger
from twiggit.models.project import ProjectInfo
from twiggit.models.worktree import WorktreeInfo
from twiggit.services.context_detector import read_gitdir_link
from twiggit.services.git.router import GitRouter
from twiggit.utils.cancellation import CancelToken, check_cancelled
from twiggit.utils.paths import normalize_path
from twiggit.utils.threading import resolve_worker_count

logger = get_logger(__name__)

# Branch names with slashes nest directories below <workspaces>/<project>
MAX_BRANCH_DEPTH = 4


@dataclass
class _ScanOutcome:
    results: list = field(default_factory=list)
    backend_failures: int = 0

    @property
    def systemic_failure(self) -> bool:
        return not self.results and self.backend_failures > 0


class DiscoveryService:
    """Scans the projects and workspaces roots with a bounded worker pool.

    Concurrency defaults to 1 (sequential); 0 sizes the pool from the CPU
    count. A failure on one entry excludes that entry only.
    """

    def __init__(self, router: GitRouter, concurrency: Optional[int] = 1):
        self.router = router
        self.concurrency = resolve_worker_count(concurrency)

    def set_concurrency(self, workers: Optional[int]) -> None:
        self.concurrency = resolve_worker_count(workers)
        logger.debug(f"Discovery concurrency set to {self.concurrency}")

    def discover_projects(self, projects_root: str, cancel: Optional[CancelToken] = None) -> List[ProjectInfo]:
        """Find every repository directly under projects_root."""
        return self._discover_projects(projects_root, cancel).results

    def discover_worktrees(self, workspaces_root: str, cancel: Optional[CancelToken] = None) -> List[WorktreeInfo]:
        """Find every linked worktree under workspaces_root/<project>/<branch>."""
        return self._discover_worktrees(workspaces_root, cancel).results

    def discover_projects_with_fallback(
        self,
        projects_root: str,
        cancel: Optional[CancelToken] = None,
    ) -> List[ProjectInfo]:
        """Like discover_projects, but survives a backend that fails on everything.

        Falls back to a plain filesystem scan: a directory holding a `.git`
        directory is a project.
        """
        try:
            outcome = self._discover_projects(projects_root, cancel)
            if not outcome.systemic_failure:
                return outcome.results
            logger.warning(f"Project discovery failed for every entry in {projects_root}, using filesystem scan")
        except BackendError as e:
            logger.warning(f"Project discovery failed ({e}), using filesystem scan")

        projects = []
        for path in self._list_subdirectories(projects_root):
            check_cancelled(cancel, "discover_projects")
            if os.path.isdir(os.path.join(path, ".git")):
                projects.append(ProjectInfo(name=os.path.basename(path), repo_path=normalize_path(path)))
        return sorted(projects, key=lambda p: p.name)

    def discover_worktrees_with_fallback(
        self,
        workspaces_root: str,
        cancel: Optional[CancelToken] = None,
    ) -> List[WorktreeInfo]:
        """Like discover_worktrees, but survives a backend that fails on everything.

        Falls back to a plain filesystem scan: a directory holding a `.git`
        file is a worktree. Status fields are left unset.
        """
        try:
            outcome = self._discover_worktrees(workspaces_root, cancel)
            if not outcome.systemic_failure:
                return outcome.results
            logger.warning(f"Worktree discovery failed for every entry in {workspaces_root}, using filesystem scan")
        except BackendError as e:
            logger.warning(f"Worktree discovery failed ({e}), using filesystem scan")

        worktrees = []
        for project_name, path in self._worktree_candidates(workspaces_root):
            check_cancelled(cancel, "discover_worktrees")
            git_file = os.path.join(path, ".git")
            if not os.path.isfile(git_file):
                continue
            worktrees.append(WorktreeInfo(
                path=normalize_path(path),
                branch=_branch_from_link(git_file) or _branch_from_layout(workspaces_root, project_name, path),
                project_name=project_name,
            ))
        return sorted(worktrees, key=lambda w: (w.project_name, w.branch))

    def _discover_projects(self, projects_root: str, cancel: Optional[CancelToken]) -> _ScanOutcome:
        candidates = self._list_subdirectories(projects_root)
        logger.debug(f"Scanning {len(candidates)} project candidates in {projects_root}")
        outcome = self._scan(candidates, self._inspect_project, "discover_projects", cancel)
        outcome.results.sort(key=lambda p: p.name)
        return outcome

    def _discover_worktrees(self, workspaces_root: str, cancel: Optional[CancelToken]) -> _ScanOutcome:
        candidates = self._worktree_candidates(workspaces_root)
        logger.debug(f"Scanning {len(candidates)} worktree candidates in {workspaces_root}")

        def inspect(candidate, token):
            project_name, path = candidate
            return self._inspect_worktree(workspaces_root, project_name, path, token)

        outcome = self._scan(candidates, inspect, "discover_worktrees", cancel)
        outcome.results.sort(key=lambda w: (w.project_name, w.branch))
        return outcome

    def _inspect_project(self, path: str, cancel: Optional[CancelToken]) -> ProjectInfo:
        # Linked worktrees carry a .git file; only main working copies are projects
        if not os.path.isdir(os.path.join(path, ".git")):
            raise RepositoryNotFoundError(path)

        self.router.validate_repository(path, cancel=cancel)
        name = os.path.basename(path)
        branches = self.router.list_branches(path, cancel=cancel)
        worktrees = [
            WorktreeInfo(path=entry.path, branch=entry.branch, project_name=name)
            for entry in self.router.list_worktrees(path, cancel=cancel)
            if not entry.is_main
        ]
        return ProjectInfo(name=name, repo_path=normalize_path(path), branches=branches, worktrees=worktrees)

    def _inspect_worktree(
        self,
        workspaces_root: str,
        project_name: str,
        path: str,
        cancel: Optional[CancelToken],
    ) -> WorktreeInfo:
        # A .git directory is a main repository, never listed as a worktree
        if not os.path.isfile(os.path.join(path, ".git")):
            raise RepositoryNotFoundError(path, "Not a linked worktree")

        status = self.router.get_repository_status(path, cancel=cancel)
        return WorktreeInfo(
            path=normalize_path(path),
            branch=status.branch or _branch_from_layout(workspaces_root, project_name, path),
            project_name=project_name,
            last_updated=status.commit_time,
            is_clean=status.is_clean,
        )

    def _scan(
        self,
        candidates: list,
        inspect: Callable,
        operation: str,
        cancel: Optional[CancelToken],
    ) -> _ScanOutcome:
        outcome = _ScanOutcome()
        if not candidates:
            return outcome

        check_cancelled(cancel, operation)
        max_workers = min(self.concurrency, len(candidates))
        logger.debug(f"Using {max_workers} workers for {operation}")

        executor = ThreadPoolExecutor(max_workers=max_workers)
        future_to_candidate = {executor.submit(inspect, candidate, cancel): candidate for candidate in candidates}
        try:
            timeout = cancel.remaining() if cancel is not None else None
            for future in as_completed(future_to_candidate, timeout=timeout):
                check_cancelled(cancel, operation)
                candidate = future_to_candidate[future]
                try:
                    outcome.results.append(future.result())
                except RepositoryNotFoundError as e:
                    logger.debug(f"Skipping {candidate}: {e}")
                except OperationCancelledError:
                    raise
                except BackendError as e:
                    outcome.backend_failures += 1
                    logger.warning(f"Skipping {candidate}: {e}")
                except TwiggitError as e:
                    logger.warning(f"Skipping {candidate}: {e}")
        except FuturesTimeoutError:
            executor.shutdown(wait=False, cancel_futures=True)
            raise OperationCancelledError(operation, f"Operation '{operation}' timed out")
        except Exception:
            # Cancellation or an unexpected error abandons the queued work
            executor.shutdown(wait=False, cancel_futures=True)
            raise
        else:
            executor.shutdown(wait=True)

        return outcome

    def _list_subdirectories(self, root: str) -> List[str]:
        """Immediate subdirectories of root; empty when root does not exist."""
        if not os.path.exists(root):
            logger.debug(f"{root} does not exist")
            return []
        try:
            with os.scandir(root) as entries:
                return sorted(
                    entry.path for entry in entries
                    if entry.is_dir() and not entry.name.startswith(".")
                )
        except OSError as e:
            raise FilesystemAccessError(f"Cannot read directory: {e.strerror or e}", path=root)

    def _worktree_candidates(self, workspaces_root: str) -> List[tuple]:
        """(project_name, path) for every directory holding a .git entry below a project directory."""
        candidates = []
        for project_dir in self._list_subdirectories(workspaces_root):
            project_name = os.path.basename(project_dir)
            candidates.extend((project_name, path) for path in _find_git_dirs(project_dir, MAX_BRANCH_DEPTH))
        return candidates


def _find_git_dirs(directory: str, depth: int) -> List[str]:
    found = []
    try:
        with os.scandir(directory) as entries:
            children = sorted(entry.path for entry in entries if entry.is_dir() and not entry.name.startswith("."))
    except OSError as e:
        logger.debug(f"Cannot read {directory}: {e}")
        return found

    for child in children:
        if os.path.lexists(os.path.join(child, ".git")):
            found.append(child)
        elif depth > 1:
            found.extend(_find_git_dirs(child, depth - 1))
    return found


def _branch_from_layout(workspaces_root: str, project_name: str, path: str) -> str:
    return os.path.relpath(path, os.path.join(workspaces_root, project_name)).replace(os.sep, "/")


def _branch_from_link(git_file: str) -> Optional[str]:
    """Read the checked-out branch from the HEAD file a worktree's .git points at."""
    gitdir = read_gitdir_link(git_file)
    if not gitdir:
        return None
    try:
        with open(os.path.join(gitdir, "HEAD"), encoding="utf-8") as f:
            head = f.read().strip()
    except OSError:
        return None
    prefix = "ref: refs/heads/"
    if head.startswith(prefix):
        return head[len(prefix):]
    return None
