"""
Tribal Intel Formatters

Utility functions for formatting times and numbers for display.
"""

from datetime import datetime, timezone
from typing import Optional

# =============================================================================
# Number Formatting
# =============================================================================


def format_points(value: int) -> str:
    """
    Format a point value with thousands separators.

    Examples:
        >>> format_points(12345)
        '12,345'
    """
    return f"{value:,}"


# =============================================================================
# Duration Formatting
# =============================================================================


def format_time_span(seconds: float) -> str:
    """
    Format the span between two snapshots.

    Args:
        seconds: Span in seconds

    Returns:
        "2d 3h" when at least a day, "3h 15m" when at least an hour,
        otherwise "15m"

    Examples:
        >>> format_time_span(86400 + 3 * 3600 + 600)
        '1d 3h'
        >>> format_time_span(7200 + 900)
        '2h 15m'
        >>> format_time_span(59)
        '0m'
    """
    seconds = max(0, int(seconds))
    days = seconds // 86400
    hours = (seconds % 86400) // 3600
    minutes = (seconds % 3600) // 60

    if days > 0:
        return f"{days}d {hours}h"
    if hours > 0:
        return f"{hours}h {minutes}m"
    return f"{minutes}m"


# =============================================================================
# DateTime Formatting
# =============================================================================


def get_utc_now() -> datetime:
    """Get current UTC datetime."""
    return datetime.now(timezone.utc)


def format_datetime(dt: datetime) -> str:
    """Format datetime as ISO string like "2026-01-15T12:30:00Z"."""
    return dt.strftime("%Y-%m-%dT%H:%M:%SZ")


def format_unix(ts: Optional[float]) -> Optional[str]:
    """Format a Unix timestamp in seconds as ISO UTC, or None when unset."""
    if not ts:
        return None
    return format_datetime(datetime.fromtimestamp(ts, tz=timezone.utc))


def get_utc_timestamp() -> str:
    """
    Get current UTC timestamp string.

    Returns:
        ISO format timestamp like "2026-01-15T12:30:00Z"
    """
    return format_datetime(get_utc_now())
