"""Prune request and result models."""

from dataclasses import dataclass, field
from typing import List, Optional

from twiggit.models.context import Context


@dataclass
class PruneRequest:
    """Options for a prune run."""

    dry_run: bool = False
    force: bool = False
    delete_branches: bool = False
    specific_worktree: str = ""  # "project/branch"
    context: Optional[Context] = None
    all_projects: bool = False
    stop_on_error: bool = False


@dataclass
class PruneWorktreeResult:
    """Outcome for a single worktree."""

    project_name: str
    worktree_path: str
    branch_name: str
    deleted: bool = False
    branch_deleted: bool = False
    skip_reason: str = ""
    error: Optional[str] = None


@dataclass
class PruneResult:
    """Aggregate outcome of a prune run."""

    total_deleted: int = 0
    total_branches_deleted: int = 0
    total_skipped: int = 0
    deleted_worktrees: List[PruneWorktreeResult] = field(default_factory=list)
    would_delete: List[PruneWorktreeResult] = field(default_factory=list)
    protected_skipped: List[PruneWorktreeResult] = field(default_factory=list)
    unmerged_skipped: List[PruneWorktreeResult] = field(default_factory=list)
    current_worktree_skipped: List[PruneWorktreeResult] = field(default_factory=list)
    skipped_worktrees: List[PruneWorktreeResult] = field(default_factory=list)
    navigation_path: str = ""

    def failed(self) -> List[PruneWorktreeResult]:
        """Entries that hit an error during classification or deletion."""
        return [entry for entry in self.skipped_worktrees if entry.error]
