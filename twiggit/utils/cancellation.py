"""Cooperative cancellation for long-running operations."""

import threading
import time
from typing import Optional

from twiggit.exceptions import OperationCancelledError


class CancelToken:
    """Cancellation flag with an optional deadline.

    A token is shared between the caller and every worker of an operation.
    Workers poll it between units of work; subprocess calls use
    `remaining()` as their kill timeout.
    """

    def __init__(self, timeout: Optional[float] = None):
        self._event = threading.Event()
        self._deadline = time.monotonic() + timeout if timeout is not None else None

    def cancel(self) -> None:
        self._event.set()

    @property
    def cancelled(self) -> bool:
        if self._event.is_set():
            return True
        return self._deadline is not None and time.monotonic() >= self._deadline

    def remaining(self) -> Optional[float]:
        """Seconds until the deadline, or None without one."""
        if self._deadline is None:
            return None
        return max(0.0, self._deadline - time.monotonic())

    def raise_if_cancelled(self, operation: str) -> None:
        if self._event.is_set():
            raise OperationCancelledError(operation)
        if self._deadline is not None and time.monotonic() >= self._deadline:
            raise OperationCancelledError(operation, f"Operation '{operation}' timed out")


def check_cancelled(cancel: Optional[CancelToken], operation: str) -> None:
    """Raise OperationCancelledError if the token has fired."""
    if cancel is not None:
        cancel.raise_if_cancelled(operation)
