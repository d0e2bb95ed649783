"""Prune merged worktrees."""

import os
from dataclasses import dataclass
from typing import Callable, List, Optional, Tuple

from twiggit.config import Config
from twiggit.constants import (
    REASON_BRANCH_DELETE_FAILED,
    REASON_CURRENT,
    REASON_DETACHED,
    REASON_PROTECTED,
    REASON_UNCOMMITTED,
    REASON_UNMERGED,
)
from twiggit.exceptions import (
    InvalidInputError,
    OperationCancelledError,
    PruneFailedError,
    TwiggitError,
    WorktreeNotFoundError,
)
from twiggit.logging_config import get_logger
from twiggit.models.context import ContextType
from twiggit.models.prune import PruneRequest, PruneResult, PruneWorktreeResult
from twiggit.models.worktree import WorktreeEntry
from twiggit.services.context_detector import ContextDetector
from twiggit.services.context_resolver import ContextResolver, split_worktree_reference
from twiggit.services.git.router import GitRouter
from twiggit.utils.cancellation import CancelToken, check_cancelled
from twiggit.utils.paths import is_path_under, normalize_path

logger = get_logger(__name__)

# Result categories
CURRENT = "current"
PROTECTED = "protected"
UNMERGED = "unmerged"
SKIPPED = "skipped"


@dataclass
class PruneCandidate:
    """A non-main worktree of one project under consideration."""

    project_name: str
    project_path: str
    entry: WorktreeEntry
    force: bool
    cwd: str
    source_branch: str
    cancel: Optional[CancelToken] = None

    @property
    def path(self) -> str:
        return self.entry.path

    @property
    def branch(self) -> str:
        return self.entry.branch


@dataclass(frozen=True)
class PruneRule:
    """A classification step: when predicate matches, the candidate lands in category."""

    name: str
    category: str
    reason: str
    predicate: Callable[[PruneCandidate], bool]


class PruneService:
    """Classifies worktrees against ordered rules and deletes the eligible ones."""

    def __init__(
        self,
        config: Config,
        router: GitRouter,
        resolver: ContextResolver,
        detector: Optional[ContextDetector] = None,
    ):
        self.config = config
        self.router = router
        self.resolver = resolver
        self.detector = detector
        # First match wins
        self.rules: Tuple[PruneRule, ...] = (
            PruneRule("detached", SKIPPED, REASON_DETACHED, lambda c: not c.branch),
            PruneRule("protected", PROTECTED, REASON_PROTECTED, self._is_protected),
            PruneRule("current", CURRENT, REASON_CURRENT, self._is_current),
            PruneRule("uncommitted", SKIPPED, REASON_UNCOMMITTED, self._has_uncommitted_changes),
            PruneRule("unmerged", UNMERGED, REASON_UNMERGED, self._is_unmerged),
        )

    def prune_merged_worktrees(self, req: PruneRequest, cancel: Optional[CancelToken] = None) -> PruneResult:
        """Delete worktrees whose branches are merged into the source branch.

        Raises:
            InvalidInputError: malformed `project/branch` or no project in scope
            NotFoundError: the named project or worktree does not exist
            PruneFailedError: every eligible worktree failed to delete
        """
        check_cancelled(cancel, "prune")
        result = PruneResult()
        cwd = normalize_path(os.getcwd())

        attempted = 0
        failed = 0
        last_project_path = ""
        for project_name, project_path, entries in self._scope(req, cancel):
            source_branch = self._merge_target(project_path, cancel) if entries else ""
            for entry in entries:
                check_cancelled(cancel, "prune")
                candidate = PruneCandidate(project_name, project_path, entry, req.force, cwd, source_branch, cancel)
                outcome = PruneWorktreeResult(
                    project_name=project_name,
                    worktree_path=entry.path,
                    branch_name=entry.branch,
                )

                if self._classify(candidate, outcome, result):
                    continue

                if req.dry_run:
                    logger.info(f"Would delete worktree {entry.path} ({entry.branch})")
                    result.would_delete.append(outcome)
                    continue

                attempted += 1
                if self._delete(candidate, outcome, req, result):
                    last_project_path = project_path
                else:
                    failed += 1
                    if req.stop_on_error:
                        logger.warning("Stopping prune after first failure")
                        return self._finish(result, attempted, failed, last_project_path)

        return self._finish(result, attempted, failed, last_project_path)

    def _finish(self, result: PruneResult, attempted: int, failed: int, project_path: str) -> PruneResult:
        if result.total_deleted == 1:
            result.navigation_path = project_path

        logger.info(
            f"Pruned {result.total_deleted} worktrees, deleted {result.total_branches_deleted} branches, "
            f"skipped {result.total_skipped}"
        )
        if attempted and failed == attempted:
            raise PruneFailedError(result)
        return result

    def _scope(self, req: PruneRequest, cancel: Optional[CancelToken]) -> List[Tuple[str, str, List[WorktreeEntry]]]:
        """(project_name, project_path, candidate entries) for every project in scope."""
        if req.specific_worktree:
            project_name, branch = split_worktree_reference(req.specific_worktree)
            project_path = self.resolver.resolve_project(project_name, cancel=cancel)
            entries = [e for e in self._candidates(project_path, cancel) if e.branch == branch]
            if not entries:
                raise WorktreeNotFoundError(project_name, branch)
            return [(project_name, project_path, entries)]

        if req.all_projects:
            scope = []
            for name in self.resolver.list_project_names():
                project_path = self.resolver.resolve_project(name, cancel=cancel)
                scope.append((name, project_path, self._candidates(project_path, cancel)))
            return scope

        ctx = req.context
        if ctx is None or ctx.type == ContextType.OUTSIDE_REPO:
            raise InvalidInputError(
                "Not inside a project or worktree",
                path=ctx.path if ctx else None,
                suggestions=["Run from a project directory or name a worktree as 'project/branch'"],
            )
        project_path = ctx.project_path or self.resolver.resolve_project(ctx.project_name, cancel=cancel)
        return [(ctx.project_name, project_path, self._candidates(project_path, cancel))]

    def _merge_target(self, project_path: str, cancel: Optional[CancelToken]) -> str:
        """The configured source branch, or the repository's default branch when it has no such branch."""
        configured = self.config.default_source_branch
        try:
            if self.router.branch_exists(project_path, configured, cancel=cancel):
                return configured
            default_branch = self.router.get_repository_info(project_path, cancel=cancel).default_branch
        except OperationCancelledError:
            raise
        except TwiggitError as e:
            logger.warning(f"Could not determine merge target for {project_path}: {e}")
            return configured

        if not default_branch:
            return configured
        logger.info(f"{project_path} has no branch '{configured}', checking merges against '{default_branch}'")
        return default_branch

    def _candidates(self, project_path: str, cancel: Optional[CancelToken]) -> List[WorktreeEntry]:
        entries = []
        for entry in self.router.list_worktrees(project_path, cancel=cancel):
            if entry.is_main:
                continue
            if not entry.is_orphaned:
                entry.path = normalize_path(entry.path)
            entries.append(entry)
        return entries

    def _classify(self, candidate: PruneCandidate, outcome: PruneWorktreeResult, result: PruneResult) -> bool:
        """Apply rules in order; True if the candidate was skipped."""
        for rule in self.rules:
            try:
                matched = rule.predicate(candidate)
            except OperationCancelledError:
                raise
            except TwiggitError as e:
                logger.warning(f"Could not check {rule.name} rule for {candidate.path}: {e}")
                outcome.skip_reason = f"failed to check {rule.name} status"
                outcome.error = str(e)
                self._record_skip(result, outcome, SKIPPED)
                return True

            if matched:
                logger.debug(f"Skipping {candidate.path}: {rule.reason}")
                outcome.skip_reason = rule.reason
                self._record_skip(result, outcome, rule.category)
                return True
        return False

    @staticmethod
    def _record_skip(result: PruneResult, outcome: PruneWorktreeResult, category: str) -> None:
        if category == CURRENT:
            result.current_worktree_skipped.append(outcome)
        elif category == PROTECTED:
            result.protected_skipped.append(outcome)
        elif category == UNMERGED:
            result.unmerged_skipped.append(outcome)
        else:
            result.skipped_worktrees.append(outcome)
        result.total_skipped += 1

    def _delete(
        self,
        candidate: PruneCandidate,
        outcome: PruneWorktreeResult,
        req: PruneRequest,
        result: PruneResult,
    ) -> bool:
        try:
            self.router.delete_worktree(candidate.project_path, candidate.path, force=req.force, cancel=candidate.cancel)
        except OperationCancelledError:
            raise
        except TwiggitError as e:
            logger.error(f"Failed to delete worktree {candidate.path}: {e}")
            outcome.error = str(e)
            self._record_skip(result, outcome, SKIPPED)
            return False

        outcome.deleted = True
        result.deleted_worktrees.append(outcome)
        result.total_deleted += 1
        logger.info(f"Deleted worktree {candidate.path}")

        if self.detector is not None:
            self.detector.invalidate_cache_for_repo(candidate.project_path)

        if req.delete_branches:
            try:
                self.router.prune_worktrees(candidate.project_path, cancel=candidate.cancel)
                self.router.delete_branch(candidate.project_path, candidate.branch, cancel=candidate.cancel)
            except OperationCancelledError:
                raise
            except TwiggitError as e:
                logger.warning(f"Could not delete branch {candidate.branch}: {e}")
                outcome.error = f"{REASON_BRANCH_DELETE_FAILED}: {e}"
            else:
                outcome.branch_deleted = True
                result.total_branches_deleted += 1
        return True

    # Rule predicates

    def _is_protected(self, candidate: PruneCandidate) -> bool:
        return candidate.branch in self.config.protected_branches

    @staticmethod
    def _is_current(candidate: PruneCandidate) -> bool:
        return is_path_under(candidate.cwd, candidate.path)

    def _has_uncommitted_changes(self, candidate: PruneCandidate) -> bool:
        if candidate.force or candidate.entry.is_orphaned:
            return False
        status = self.router.get_repository_status(candidate.path, cancel=candidate.cancel)
        return not status.is_clean

    def _is_unmerged(self, candidate: PruneCandidate) -> bool:
        return not self.router.is_branch_merged(
            candidate.project_path,
            candidate.branch,
            candidate.source_branch,
            cancel=candidate.cancel,
        )
