"""
Centralized datetime utilities for the OffGrid server.

All timestamps are stored and compared as UTC. SQLite (used in tests) hands
back naive datetimes, so every comparison goes through ensure_utc first.
"""

from datetime import datetime, timedelta, timezone


def utc_now() -> datetime:
    """
    Get current UTC time as timezone-aware datetime.

    Use this instead of datetime.utcnow() to ensure timezone awareness.

    Returns:
        datetime: Current time in UTC with timezone info
    """
    return datetime.now(timezone.utc)


def ensure_utc(dt: datetime | None) -> datetime | None:
    """
    Ensure datetime is UTC timezone-aware.

    Converts naive datetime (assumed to be UTC) to timezone-aware UTC.
    If datetime is already timezone-aware, converts to UTC.

    Args:
        dt: Datetime object (naive or aware) or None

    Returns:
        datetime | None: UTC timezone-aware datetime or None

    Example:
        >>> naive_dt = datetime(2025, 12, 16, 11, 30)  # Naive
        >>> ensure_utc(naive_dt).tzinfo
        datetime.timezone.utc
    """
    if dt is None:
        return None

    if dt.tzinfo is None:
        # Naive datetime - assume UTC
        return dt.replace(tzinfo=timezone.utc)

    return dt.astimezone(timezone.utc)


def seconds_between(earlier: datetime, later: datetime) -> float:
    """Elapsed seconds from earlier to later, tolerating naive inputs."""
    return (ensure_utc(later) - ensure_utc(earlier)).total_seconds()


def is_within(start: datetime, window: timedelta, now: datetime | None = None) -> bool:
    """
    Check whether now falls within window after start (inclusive).

    Args:
        start: Beginning of the window
        window: Window length
        now: Reference time (defaults to utc_now())

    Returns:
        True if now - start <= window
    """
    now = now or utc_now()
    return ensure_utc(now) - ensure_utc(start) <= window


def has_elapsed(deadline: datetime | None, now: datetime | None = None) -> bool:
    """True once now has reached deadline; None never elapses."""
    if deadline is None:
        return False
    now = now or utc_now()
    return ensure_utc(now) >= ensure_utc(deadline)


def same_calendar_day(first: datetime, second: datetime) -> bool:
    """Compare the UTC calendar dates of two timestamps."""
    return ensure_utc(first).date() == ensure_utc(second).date()
