"""Worktree data models."""

from dataclasses import dataclass
from datetime import datetime
from typing import Optional


@dataclass
class WorktreeInfo:
    """A linked worktree found under the workspaces root."""

    path: str
    branch: str
    project_name: str
    last_updated: Optional[datetime] = None  # HEAD commit time, None if unchecked
    is_clean: Optional[bool] = None  # None if unchecked

    def __str__(self) -> str:
        if self.is_clean is None:
            state = "unknown"
        else:
            state = "clean" if self.is_clean else "modified"
        return f"{self.project_name}/{self.branch} @ {self.path} [{state}]"


@dataclass
class WorktreeEntry:
    """One record of `git worktree list --porcelain`."""

    path: str
    branch: str
    commit_sha: str
    is_main: bool  # Is this the main working tree?
    is_detached: bool = False
    is_orphaned: bool = False  # Directory missing?

    def __str__(self) -> str:
        status = "orphaned" if self.is_orphaned else "active"
        main_marker = " (main)" if self.is_main else ""
        branch = self.branch or "(detached)"
        return f"{branch} @ {self.path}{main_marker} [{status}]"
