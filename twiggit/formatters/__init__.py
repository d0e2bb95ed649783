"""Formatting utilities for twiggit.

Organized into:
- date: Date and time formatting
- status: Worktree state and prune outcome formatting
"""

from .date import format_age, format_date
from .status import format_prune_outcome, format_worktree_state, get_prune_style_type

__all__ = [
    "format_age",
    "format_date",
    "format_prune_outcome",
    "format_worktree_state",
    "get_prune_style_type",
]
