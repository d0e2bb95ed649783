"""Custom exceptions for twiggit"""

from enum import Enum
from typing import List, Optional


class ErrorKind(Enum):
    """Broad failure categories shared by every twiggit error."""

    NOT_FOUND = "not_found"
    INVALID_INPUT = "invalid_input"
    BACKEND_FAILURE = "backend_failure"
    IO_FAILURE = "io_failure"
    CANCELLED = "cancelled"


class TwiggitError(Exception):
    """Base exception for all twiggit errors."""

    kind: ErrorKind = ErrorKind.BACKEND_FAILURE

    def __init__(self, message: str, path: Optional[str] = None, suggestions: Optional[List[str]] = None):
        self.message = message
        self.path = path
        self.suggestions = list(suggestions or [])

        error_msg = message
        if path:
            error_msg += f" (path: {path})"

        super().__init__(error_msg)


class NotFoundError(TwiggitError):
    """A path, project, branch, worktree or identifier does not exist."""

    kind = ErrorKind.NOT_FOUND


class PathNotFoundError(NotFoundError):
    """Exception raised when a filesystem path does not exist."""

    def __init__(self, path: str):
        super().__init__("Path does not exist", path=path)


class ProjectNotFoundError(NotFoundError):
    """Exception raised when a project name cannot be resolved."""

    def __init__(self, project: str, path: Optional[str] = None, suggestions: Optional[List[str]] = None):
        self.project = project
        super().__init__(f"Project '{project}' not found", path=path, suggestions=suggestions)


class RepositoryNotFoundError(NotFoundError):
    """Exception raised when a path is not a git repository."""

    def __init__(self, path: str, message: Optional[str] = None):
        super().__init__(message or "Not a git repository", path=path)


class BranchNotFoundError(NotFoundError):
    """Exception raised when a branch is not found."""

    def __init__(self, branch: str, path: Optional[str] = None):
        self.branch = branch
        super().__init__(f"Branch '{branch}' not found", path=path)


class WorktreeNotFoundError(NotFoundError):
    """Exception raised when a worktree is not found."""

    def __init__(self, project: str, branch: str, path: Optional[str] = None,
                 suggestions: Optional[List[str]] = None):
        self.project = project
        self.branch = branch
        super().__init__(f"Worktree '{project}/{branch}' not found", path=path, suggestions=suggestions)


class IdentifierNotFoundError(NotFoundError):
    """Exception raised when a free-text identifier matches nothing."""

    def __init__(self, identifier: str, suggestions: Optional[List[str]] = None):
        self.identifier = identifier
        message = f"Could not resolve '{identifier}'"
        if suggestions:
            message += f"; did you mean: {', '.join(suggestions)}?"
        super().__init__(message, suggestions=suggestions)


class InvalidInputError(TwiggitError):
    """Exception raised for malformed or unsafe input."""

    kind = ErrorKind.INVALID_INPUT


class CurrentBranchDeletionError(InvalidInputError):
    """Exception raised when deleting the branch checked out in the repository."""

    def __init__(self, branch: str, path: Optional[str] = None):
        self.branch = branch
        super().__init__(f"Cannot delete branch '{branch}': it is currently checked out", path=path)


class WorktreeExistsError(InvalidInputError):
    """Exception raised when a worktree target directory is already present."""

    def __init__(self, path: str):
        super().__init__("Worktree already exists", path=path)


class BackendError(TwiggitError):
    """Exception raised when a git backend operation fails."""

    kind = ErrorKind.BACKEND_FAILURE

    def __init__(self, operation: str, message: Optional[str] = None, path: Optional[str] = None):
        self.operation = operation

        error_msg = f"Git operation '{operation}' failed"
        if message:
            error_msg += f": {message}"

        super().__init__(error_msg, path=path)


class LibraryBackendError(BackendError):
    """Exception raised for errors in in-process repository access."""


class CLIBackendError(BackendError):
    """Exception raised when a git subprocess exits with an error."""

    def __init__(self, operation: str, exit_status=None, stderr: str = "", path: Optional[str] = None):
        self.exit_status = exit_status
        self.stderr = stderr

        if stderr:
            message = f"exit {exit_status}: {stderr}"
        else:
            message = f"exit code {exit_status}"

        super().__init__(operation, message, path=path)


class PruneFailedError(BackendError):
    """Exception raised when every eligible worktree failed to delete."""

    def __init__(self, result, message: Optional[str] = None):
        self.result = result
        super().__init__("prune", message or "all eligible worktrees failed to delete")


class FilesystemAccessError(TwiggitError):
    """Exception raised when a directory cannot be read or written."""

    kind = ErrorKind.IO_FAILURE


class OperationCancelledError(TwiggitError):
    """Exception raised when an operation is cancelled or times out."""

    kind = ErrorKind.CANCELLED

    def __init__(self, operation: str, message: Optional[str] = None):
        self.operation = operation
        super().__init__(message or f"Operation '{operation}' was cancelled")
