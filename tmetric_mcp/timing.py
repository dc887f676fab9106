"""Clock and duration helpers for time entries.

Pure functions (no I/O) for easy testing. Callers pass ``now`` explicitly.
"""

from __future__ import annotations

from datetime import datetime


def local_now() -> datetime:
    """Current time as an aware datetime in the local time zone."""
    return datetime.now().astimezone()


def parse_timestamp(value: str) -> datetime:
    """Parse a TMetric timestamp to an aware datetime.

    TMetric returns local wall-clock times without an offset
    (e.g. "2024-01-15T10:00:00"); those are read in the system time zone
    with the UTC offset in force at that instant, so a same-day DST change
    is accounted for. Timestamps carrying "Z" or an offset keep it.

    Raises:
        ValueError: the value is not an ISO-8601 timestamp.
    """
    cleaned = value.strip()
    if cleaned.endswith("Z"):
        cleaned = cleaned[:-1] + "+00:00"
    parsed = datetime.fromisoformat(cleaned)
    if parsed.tzinfo is None:
        return parsed.astimezone()
    return parsed


def format_local_timestamp(moment: datetime) -> str:
    """Format as local wall-clock ISO-8601 with milliseconds and no offset.

    >>> format_local_timestamp(datetime(2024, 1, 15, 12, 0))
    '2024-01-15T12:00:00.000'
    """
    return moment.replace(tzinfo=None).isoformat(timespec="milliseconds")


def minutes_between(start: datetime, end: datetime) -> int:
    """Whole minutes from start to end, floored; never negative."""
    seconds = (end - start).total_seconds()
    if seconds <= 0:
        return 0
    return int(seconds // 60)


def format_elapsed(minutes: int) -> str:
    """Format a running timer's age: "2h 30m", or "15m" under an hour."""
    hours, mins = divmod(minutes, 60)
    if hours > 0:
        return f"{hours}h {mins}m"
    return f"{mins}m"


def format_duration(minutes: int) -> str:
    """Format minutes in GitLab /spend style: "1h30m", "1h", "45m", "0m"."""
    hours, mins = divmod(minutes, 60)
    if hours > 0 and mins > 0:
        return f"{hours}h{mins}m"
    if hours > 0:
        return f"{hours}h"
    return f"{mins}m"
