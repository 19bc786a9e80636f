"""Utility functions for date manipulation."""

from datetime import datetime

import pytz


def utc_now() -> datetime:
    """Returns the current time as a timezone-aware UTC datetime."""
    return datetime.now(pytz.utc)


def ensure_utc(dt: datetime | None) -> datetime | None:
    """Treats naive datetimes as UTC and converts aware ones to UTC."""
    if dt is None:
        return None
    if dt.tzinfo is None:
        return pytz.utc.localize(dt)
    return dt.astimezone(pytz.utc)


def to_db_datetime(dt: datetime | None) -> datetime | None:
    """Converts a datetime to the naive UTC value stored in MySQL DATETIME columns."""
    if dt is None:
        return None
    return ensure_utc(dt).replace(tzinfo=None)


def parse_iso_datetime(dt_str: str | None) -> datetime | None:
    """Parses an ISO datetime string (Z or offset suffix) into an aware UTC datetime."""
    if not dt_str:
        return None
    try:
        return ensure_utc(datetime.fromisoformat(dt_str.replace("Z", "+00:00")))
    except (ValueError, TypeError):
        return None


def format_datetime_iso(dt: datetime | None) -> str | None:
    if dt is None:
        return None
    return ensure_utc(dt).isoformat()
