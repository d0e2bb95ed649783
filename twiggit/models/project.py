"""Project and repository data models."""

import os
from dataclasses import dataclass, field
from datetime import datetime
from typing import List, Optional

from twiggit.models.worktree import WorktreeInfo


@dataclass
class BranchInfo:
    """A local branch of a repository."""

    name: str
    commit_sha: str = ""
    is_current: bool = False


@dataclass
class ProjectInfo:
    """A repository found under the projects root."""

    name: str
    repo_path: str
    branches: List[BranchInfo] = field(default_factory=list)
    worktrees: List[WorktreeInfo] = field(default_factory=list)

    def branch_names(self) -> List[str]:
        return [branch.name for branch in self.branches]


@dataclass
class RepositoryStatus:
    """Working-tree status of a repository or linked worktree."""

    path: str
    branch: str  # Empty when HEAD is detached
    commit_sha: str = ""
    commit_time: Optional[datetime] = None
    modified: List[str] = field(default_factory=list)
    staged: List[str] = field(default_factory=list)
    untracked: List[str] = field(default_factory=list)

    @property
    def is_clean(self) -> bool:
        return not (self.modified or self.staged or self.untracked)

    @property
    def is_detached(self) -> bool:
        return not self.branch


@dataclass
class RepositoryInfo:
    """Layout of a repository as seen from one of its working trees."""

    path: str  # Working tree root
    git_dir: str
    common_dir: str
    is_worktree: bool  # True for linked worktrees
    main_worktree_path: str
    current_branch: str = ""
    default_branch: str = ""

    @property
    def project_name(self) -> str:
        return os.path.basename(self.main_worktree_path.rstrip(os.sep))
