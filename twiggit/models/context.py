"""Context and identifier resolution models."""

from dataclasses import dataclass
from enum import Enum
from typing import Optional


class ContextType(Enum):
    """Where a path sits relative to git repositories."""

    PROJECT = "project"
    WORKTREE = "worktree"
    OUTSIDE_REPO = "outside_git"


class PathType(Enum):
    """Kind of location an identifier resolves to."""

    PROJECT = "project"
    WORKTREE = "worktree"


@dataclass(frozen=True)
class Context:
    """Result of detecting where a path is."""

    type: ContextType
    path: str
    project_name: str = ""
    branch_name: str = ""  # Only set for WORKTREE
    project_path: str = ""  # Root of the owning main repository
    explanation: str = ""

    @property
    def in_repository(self) -> bool:
        return self.type in (ContextType.PROJECT, ContextType.WORKTREE)

    def __str__(self) -> str:
        if self.type == ContextType.WORKTREE:
            return f"worktree {self.project_name}/{self.branch_name} @ {self.path}"
        if self.type == ContextType.PROJECT:
            return f"project {self.project_name} @ {self.path}"
        return f"outside repository @ {self.path}"


@dataclass
class ResolutionResult:
    """Concrete location an identifier resolved to."""

    type: PathType
    project_name: str
    resolved_path: str
    branch_name: str = ""
    explanation: str = ""


@dataclass
class ResolutionSuggestion:
    """A completion candidate for a partial identifier."""

    text: str
    description: str
    type: PathType
    project_name: str = ""
    branch_name: Optional[str] = None
