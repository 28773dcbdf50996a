# Overview: Clock and date helpers; every stored timestamp is naive UTC.

"""
Timestamps go into the database as naive UTC datetimes and leave the API as
ISO-8601 strings with a trailing "Z". Calendar dates (batch expiry, report
ranges) are plain `date` objects serialized as YYYY-MM-DD.
"""

from __future__ import annotations

from datetime import date, datetime, time, timedelta, timezone
from typing import Optional


def utcnow() -> datetime:
    return datetime.now(timezone.utc).replace(tzinfo=None)


def today() -> date:
    """Business day in UTC; used for expiry checks and default report ranges."""
    return utcnow().date()


def _strip_tz(dt: datetime) -> datetime:
    if dt.tzinfo is None:
        return dt
    return dt.astimezone(timezone.utc).replace(tzinfo=None)


def parse_iso_datetime(value: Optional[str]) -> Optional[datetime]:
    """
    "2030-01-31T08:00", "...Z" or "...+08:00" -> naive UTC datetime.

    Blank input gives None; malformed input raises ValueError.
    """
    text = (value or "").strip()
    if not text:
        return None
    if text.endswith("Z"):
        text = text[:-1] + "+00:00"
    return _strip_tz(datetime.fromisoformat(text))


def parse_iso_date(value: Optional[str]) -> Optional[date]:
    """
    "YYYY-MM-DD" -> date. A full timestamp is accepted and truncated to its
    UTC date, so clients may send either for an expiry date.
    """
    text = (value or "").strip()
    if not text:
        return None
    if len(text) == 10:
        return date.fromisoformat(text)
    return parse_iso_datetime(text).date()


def day_bounds(start: date, end: date) -> tuple[datetime, datetime]:
    """
    [start 00:00, day after end 00:00) for filtering on a datetime column.

    Filter with `>= lower` and `< upper` so the whole end day is included.
    """
    return datetime.combine(start, time.min), datetime.combine(end + timedelta(days=1), time.min)


def to_utc_z(dt: Optional[datetime]) -> Optional[str]:
    if dt is None:
        return None
    return _strip_tz(dt).replace(microsecond=0).isoformat() + "Z"


def to_iso_date(d: Optional[date]) -> Optional[str]:
    return d.isoformat() if d is not None else None
