"""Utility functions for twiggit.

This package provides utility modules:
- cancellation: cancel tokens with optional deadlines
- paths: path normalization and traversal checks
- threading: worker-count helpers for bounded scans
"""

from .cancellation import CancelToken, check_cancelled
from .paths import contains_path_traversal, is_path_under, normalize_path
from .threading import get_optimal_worker_count, resolve_worker_count

__all__ = [
    "CancelToken",
    "check_cancelled",
    "contains_path_traversal",
    "is_path_under",
    "normalize_path",
    "get_optimal_worker_count",
    "resolve_worker_count",
]
