"""Worktree state and prune outcome formatting."""

from typing import Optional

from twiggit.constants import STATE_DISPLAY
from twiggit.models.prune import PruneWorktreeResult


def format_worktree_state(is_clean: Optional[bool]) -> str:
    """Display text for a worktree's cleanliness; None means it was not checked."""
    return STATE_DISPLAY[is_clean]


def format_prune_outcome(entry: PruneWorktreeResult) -> str:
    """
    Format a single prune outcome as one line.

    Example:
        "myproj/feature-x (protected branch)"
    """
    line = f"{entry.project_name}/{entry.branch_name or '(detached)'}"
    details = [text for text in (entry.skip_reason, entry.error) if text]
    if entry.deleted and entry.branch_deleted:
        details.insert(0, "branch deleted")
    if details:
        line += f" ({'; '.join(details)})"
    return line


def get_prune_style_type(category: str, entry: PruneWorktreeResult) -> str:
    """Color key for a prune outcome in a given result category."""
    if entry.error and not entry.deleted:
        return "skipped"
    return category
