"""Data models for twiggit."""

from .context import Context, ContextType, PathType, ResolutionResult, ResolutionSuggestion
from .project import BranchInfo, ProjectInfo, RepositoryInfo, RepositoryStatus
from .worktree import WorktreeEntry, WorktreeInfo
from .prune import PruneRequest, PruneResult, PruneWorktreeResult

__all__ = [
    "Context",
    "ContextType",
    "PathType",
    "ResolutionResult",
    "ResolutionSuggestion",
    "BranchInfo",
    "ProjectInfo",
    "RepositoryInfo",
    "RepositoryStatus",
    "WorktreeEntry",
    "WorktreeInfo",
    "PruneRequest",
    "PruneResult",
    "PruneWorktreeResult",
]
