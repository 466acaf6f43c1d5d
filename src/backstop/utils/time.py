"""Time utilities for Backstop.

Provides the timezone-aware clock used for error timestamps and
reachability bookkeeping, plus duration formatting for status displays.
"""

from datetime import UTC, datetime, timedelta


def utc_now() -> datetime:
    """Return current UTC time as timezone-aware datetime.

    Returns:
        datetime: Current UTC time with tzinfo=UTC
    """
    return datetime.now(UTC)


def format_downtime(duration: timedelta) -> str:
    """Render an outage duration compactly, e.g. ``"42s"``, ``"3m 5s"``, ``"2h 7m"``.

    Sub-second remainders are truncated. Negative durations render as ``"0s"``.
    """
    seconds = max(0, int(duration.total_seconds()))
    if seconds < 60:
        return f"{seconds}s"
    minutes = seconds // 60
    if minutes < 60:
        return f"{minutes}m {seconds % 60}s"
    hours = minutes // 60
    return f"{hours}h {minutes % 60}m"
