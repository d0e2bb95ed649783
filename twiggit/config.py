"""Configuration handling for twiggit"""

import os
from dataclasses import dataclass, field
from typing import List

from twiggit.constants import (
    DEFAULT_CLI_TIMEOUT,
    DEFAULT_PROJECTS_DIR,
    DEFAULT_PROTECTED_BRANCHES,
    DEFAULT_SOURCE_BRANCH,
    DEFAULT_WORKSPACES_DIR,
    TOOL_CONFIG_FILES,
)


def _home_path(name: str) -> str:
    return os.path.join(os.path.expanduser("~"), name)


@dataclass
class Config:
    """Configuration for twiggit with validation."""

    # Roots
    projects_path: str = field(default_factory=lambda: _home_path(DEFAULT_PROJECTS_DIR))
    workspaces_path: str = field(default_factory=lambda: _home_path(DEFAULT_WORKSPACES_DIR))

    # Branch handling
    default_source_branch: str = DEFAULT_SOURCE_BRANCH
    protected_branches: List[str] = field(default_factory=lambda: list(DEFAULT_PROTECTED_BRANCHES))

    # Execution
    discovery_concurrency: int = 1  # 0 = auto-detect from CPU count
    cli_timeout: float = DEFAULT_CLI_TIMEOUT  # Seconds per git subprocess
    tool_config_files: List[str] = field(default_factory=lambda: list(TOOL_CONFIG_FILES))
    verbose: bool = False
    debug: bool = False

    def __post_init__(self):
        """Validate configuration after initialization."""
        self._validate_paths()
        self._validate_default_source_branch()
        self._validate_protected_branches()
        self._validate_discovery_concurrency()
        self._validate_cli_timeout()

    def _validate_paths(self):
        """Validate both roots are absolute."""
        for name in ("projects_path", "workspaces_path"):
            value = getattr(self, name)
            if not value or not os.path.isabs(value):
                raise ValueError(f"{name} must be an absolute path, got '{value}'")
            setattr(self, name, os.path.normpath(value))

    def _validate_default_source_branch(self):
        """Validate default_source_branch is not empty."""
        if not self.default_source_branch or not self.default_source_branch.strip():
            raise ValueError("default_source_branch cannot be empty")
        self.default_source_branch = self.default_source_branch.strip()

    def _validate_protected_branches(self):
        """Validate protected_branches list."""
        if not isinstance(self.protected_branches, list):
            raise ValueError("protected_branches must be a list")
        self.protected_branches = list(self.protected_branches)

        # The source branch is always protected
        if self.default_source_branch not in self.protected_branches:
            self.protected_branches.append(self.default_source_branch)

    def _validate_discovery_concurrency(self):
        """Validate discovery_concurrency is not negative."""
        if self.discovery_concurrency < 0:
            raise ValueError(f"discovery_concurrency cannot be negative, got {self.discovery_concurrency}")

    def _validate_cli_timeout(self):
        """Validate cli_timeout is positive."""
        if self.cli_timeout <= 0:
            raise ValueError(f"cli_timeout must be positive, got {self.cli_timeout}")

    def to_dict(self) -> dict:
        """Convert config to dictionary."""
        return {
            "projects_path": self.projects_path,
            "workspaces_path": self.workspaces_path,
            "default_source_branch": self.default_source_branch,
            "protected_branches": self.protected_branches,
            "discovery_concurrency": self.discovery_concurrency,
            "cli_timeout": self.cli_timeout,
            "tool_config_files": self.tool_config_files,
            "verbose": self.verbose,
            "debug": self.debug,
        }

    def get(self, key: str, default=None):
        """Get config value by key."""
        return getattr(self, key, default)

    @classmethod
    def from_dict(cls, config_dict: dict) -> "Config":
        """Create Config from dictionary."""
        # Extract only known fields
        known_fields = {
            "projects_path",
            "workspaces_path",
            "default_source_branch",
            "protected_branches",
            "discovery_concurrency",
            "cli_timeout",
            "tool_config_files",
            "verbose",
            "debug",
        }

        filtered = {k: v for k, v in config_dict.items() if k in known_fields}
        return cls(**filtered)
