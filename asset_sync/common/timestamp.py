"""
Timestamp Utilities

All timestamps written by the client are timezone-aware UTC. Stores that
drop the offset (SQLite) hand back naive datetimes, which are treated as UTC.
"""

from datetime import datetime, timezone


def utc_now() -> datetime:
    """Current time as an aware UTC datetime"""
    return datetime.now(timezone.utc)


def ensure_utc(ts: datetime) -> datetime:
    """
    Normalize a datetime to aware UTC.

    Naive values are assumed to already be UTC.
    """
    if ts.tzinfo is None:
        return ts.replace(tzinfo=timezone.utc)
    return ts.astimezone(timezone.utc)


def age_seconds(ts: datetime, now: datetime | None = None) -> float:
    """Seconds elapsed since ``ts``"""
    now = now or utc_now()
    return (now - ensure_utc(ts)).total_seconds()
