"""Path helpers."""

import os
from urllib.parse import unquote


def normalize_path(path: str) -> str:
    """Return the absolute, symlink-resolved form of a path."""
    return os.path.realpath(os.path.abspath(os.path.expanduser(path)))


def is_path_under(path: str, root: str) -> bool:
    """True if path equals root or lies inside it."""
    path = os.path.normpath(path)
    root = os.path.normpath(root)
    if path == root:
        return True
    return path.startswith(root.rstrip(os.sep) + os.sep)


def contains_path_traversal(text: str) -> bool:
    """Detect '..' sequences, including URL-encoded and double-encoded forms."""
    candidates = [text]
    decoded = text
    # Unwrap up to two levels of percent-encoding
    for _ in range(2):
        decoded = unquote(decoded)
        candidates.append(decoded)

    return any(".." in candidate for candidate in candidates)
