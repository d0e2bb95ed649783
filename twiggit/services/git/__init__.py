"""Git backends and routing for twiggit."""

from .cli_backend import CLIBackend, parse_worktree_porcelain
from .library_backend import LibraryBackend
from .router import ROUTING_TABLE, GitRouter

__all__ = [
    "CLIBackend",
    "LibraryBackend",
    "GitRouter",
    "ROUTING_TABLE",
    "parse_worktree_porcelain",
]
