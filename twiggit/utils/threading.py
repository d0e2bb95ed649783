"""Threading utilities for sizing worker pools."""

import os
import sys
from typing import Optional


def is_free_threading_enabled() -> bool:
    """Detect if Python is running with free-threading enabled.

    Returns:
        True if running on Python 3.13+ with the GIL disabled
    """
    try:
        # sys._is_gil_enabled() returns False when GIL is disabled
        return hasattr(sys, "_is_gil_enabled") and not sys._is_gil_enabled()
    except Exception:
        return False


def get_optimal_worker_count() -> int:
    """Calculate a worker count for I/O-bound git calls from the CPU count."""
    cpu_count = os.cpu_count() or 1

    if is_free_threading_enabled():
        # Cap at 64 to avoid excessive overhead
        return min(64, cpu_count * 2)

    # CPU_count + 4 is a good heuristic for I/O-bound work
    return min(32, cpu_count + 4)


def resolve_worker_count(requested: Optional[int]) -> int:
    """Map a configured concurrency to a pool size.

    None keeps scans sequential, 0 auto-sizes, anything else is used as is.
    """
    if requested is None:
        return 1
    if requested <= 0:
        return get_optimal_worker_count()
    return requested
