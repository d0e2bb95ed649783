"""Date and time formatting utilities."""

from datetime import datetime, timezone
from typing import Any, Optional


def format_date(date: Any) -> str:
    """
    Format a date object to YYYY-MM-DD string.

    Args:
        date: Date object (datetime or string), or None when unknown

    Returns:
        Formatted date string
    """
    if date is None:
        return "-"
    if hasattr(date, "strftime"):
        return date.strftime("%Y-%m-%d")
    return str(date)


def format_age(date: Optional[datetime], now: Optional[datetime] = None) -> str:
    """
    Format the age of a commit in whole days.

    Args:
        date: Commit time (timezone-aware or naive UTC)
        now: Reference time, defaults to the current time

    Returns:
        Formatted age string such as "3d", or "-" when unknown
    """
    if date is None:
        return "-"
    if date.tzinfo is None:
        date = date.replace(tzinfo=timezone.utc)
    now = now or datetime.now(timezone.utc)
    return f"{max(0, (now - date).days)}d"
