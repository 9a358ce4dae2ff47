"""Timezone conversion utilities"""
from datetime import datetime, timedelta
from typing import Optional
import pytz


def to_utc(dt: datetime) -> datetime:
    """
    Normalize a store timestamp to aware UTC.

    Firestore hands back aware datetimes; naive ones are taken as UTC.
    """
    if dt.tzinfo is None:
        return pytz.UTC.localize(dt)
    return dt.astimezone(pytz.UTC)


def now_utc() -> datetime:
    """Get current UTC time as an aware datetime"""
    return datetime.now(pytz.UTC)


def window(start_offset: timedelta, width: timedelta, now: Optional[datetime] = None):
    """
    Half-open time window [now + start_offset, now + start_offset + width)

    Returns:
        Tuple of (window_start, window_end), both aware UTC
    """
    base = to_utc(now) if now is not None else now_utc()
    start = base + start_offset
    return start, start + width
