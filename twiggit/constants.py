"""Shared constants for twiggit."""

from dataclasses import dataclass
from typing import List


# Configuration defaults
DEFAULT_PROJECTS_DIR = "Projects"
DEFAULT_WORKSPACES_DIR = "Worktrees"
DEFAULT_SOURCE_BRANCH = "main"
DEFAULT_PROTECTED_BRANCHES = ["main", "master", "develop"]
DEFAULT_CLI_TIMEOUT = 30.0

# Identifier that always resolves to the project root
MAIN_ALIAS = "main"

# Marker written by git into a linked worktree's .git file
GITDIR_PREFIX = "gitdir:"

# Local tool configuration mirrored into new worktrees
TOOL_CONFIG_FILES = [
    ".mise.local.toml",
    "mise/config.local.toml",
]

# Environment passed to post-create hooks
ENV_WORKTREE_PATH = "TWIGGIT_WORKTREE_PATH"
ENV_PROJECT_NAME = "TWIGGIT_PROJECT_NAME"
ENV_BRANCH_NAME = "TWIGGIT_BRANCH_NAME"
ENV_SOURCE_BRANCH = "TWIGGIT_SOURCE_BRANCH"
ENV_MAIN_REPO_PATH = "TWIGGIT_MAIN_REPO_PATH"

# Prune skip reasons
REASON_PROTECTED = "protected branch"
REASON_CURRENT = "current worktree"
REASON_UNCOMMITTED = "uncommitted changes (use --force to override)"
REASON_UNMERGED = "branch not merged"
REASON_DETACHED = "detached HEAD"
REASON_BRANCH_DELETE_FAILED = "worktree deleted but branch deletion failed"

# Suggestion descriptions
SUGGEST_MAIN = "Project root directory"
SUGGEST_WORKTREE = "Worktree for branch {branch}"
SUGGEST_BRANCH = "Branch {branch} (create worktree)"
SUGGEST_PROJECT = "Project directory"


@dataclass
class ColumnDefinition:
    """Definition of a table column."""

    key: str
    label: str
    width: int = 0  # Minimum width; 0 leaves it to rich


PROJECT_COLUMNS: List[ColumnDefinition] = [
    ColumnDefinition("project", "Project", 24),
    ColumnDefinition("path", "Path", 40),
    ColumnDefinition("branches", "Branches", 10),
    ColumnDefinition("worktrees", "Worktrees", 10),
]

WORKTREE_COLUMNS: List[ColumnDefinition] = [
    ColumnDefinition("project", "Project", 20),
    ColumnDefinition("branch", "Branch", 30),
    ColumnDefinition("state", "State", 10),
    ColumnDefinition("last_updated", "Last Commit", 12),
    ColumnDefinition("path", "Path", 40),
]

STATE_DISPLAY = {
    True: "clean",
    False: "modified",
    None: "unknown",
}

CLI_COLORS = {
    "clean": "green",
    "modified": "yellow",
    "unknown": "dim",
    "deleted": "green",
    "would_delete": "yellow",
    "protected": "cyan",
    "skipped": "red",
}
