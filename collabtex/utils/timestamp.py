"""Timestamp formatting utilities."""

from datetime import datetime
from typing import Optional


def now() -> str:
    """Compact timestamp for directory and file names (e.g., "20261019_154502")."""
    return datetime.now().strftime("%Y%m%d_%H%M%S")


def now_exact() -> str:
    """ISO 8601 timestamp with microseconds, used for event log entries."""
    return datetime.now().isoformat()


def today() -> str:
    """Date stamp (e.g., "2026-10-19")."""
    return datetime.now().strftime("%Y-%m-%d")


def clock_time(dt: Optional[datetime] = None) -> str:
    """
    Wall-clock time of day, as shown in front of progress log lines.

    Args:
        dt: Moment to format (default: now)

    Returns:
        Time string like "15:45:02"
    """
    return (dt or datetime.now()).strftime("%H:%M:%S")


def long_date(dt: Optional[datetime] = None) -> str:
    """
    Long-form date as LaTeX prints \\today (e.g., "October 19, 2026").

    Day is not zero-padded, matching LaTeX output.
    """
    dt = dt or datetime.now()
    return f"{dt.strftime('%B')} {dt.day}, {dt.year}"
