"""Timestamp utilities.

Everything in the delivery subsystem works with timezone-aware UTC
datetimes. The database stores them as fixed-width ISO-8601 strings so that
lexical order equals chronological order (the sweeper relies on this for its
`next_retry_at <= now` filter).
"""

from datetime import datetime, timedelta, timezone
from typing import Optional

STORAGE_FORMAT = "%Y-%m-%dT%H:%M:%S.%fZ"


def utc_now() -> datetime:
    """Get current UTC time as timezone-aware datetime."""
    return datetime.now(timezone.utc)


def ensure_utc(dt: Optional[datetime]) -> Optional[datetime]:
    """Ensure a datetime is timezone-aware and in UTC.

    Naive datetimes are treated as UTC; aware ones are converted.

    Example:
        >>> ensure_utc(datetime(2025, 11, 4, 12, 0)).tzinfo == timezone.utc
        True
    """
    if dt is None:
        return None

    if dt.tzinfo is None:
        return dt.replace(tzinfo=timezone.utc)

    return dt.astimezone(timezone.utc)


def add_milliseconds(dt: datetime, milliseconds: float) -> datetime:
    """Return `dt` shifted forward by a (possibly fractional) millisecond count."""
    return ensure_utc(dt) + timedelta(milliseconds=milliseconds)


def format_for_storage(dt: Optional[datetime]) -> Optional[str]:
    """Format a datetime for a database column.

    Returns:
        String like 2025-11-04T12:00:00.000000Z, or None
    """
    dt_utc = ensure_utc(dt)
    if dt_utc is None:
        return None
    return dt_utc.strftime(STORAGE_FORMAT)


def parse_from_storage(value: Optional[str]) -> Optional[datetime]:
    """Parse a value written by format_for_storage().

    Also accepts the same layout without microseconds.
    """
    if value is None or value == "":
        return None

    stripped = value.rstrip("Z")
    try:
        dt = datetime.strptime(stripped, "%Y-%m-%dT%H:%M:%S.%f")
    except ValueError:
        dt = datetime.strptime(stripped, "%Y-%m-%dT%H:%M:%S")

    return dt.replace(tzinfo=timezone.utc)
