"""
Timezone helpers.

All instants are stored as UTC. SQLite drops tzinfo on the way back, so
anything read from the database goes through ``ensure_utc`` before being
compared with an aware datetime.
"""

from datetime import date, datetime, time, timedelta, timezone
from typing import Optional

import pytz


def utcnow() -> datetime:
    return datetime.now(timezone.utc)


def ensure_utc(dt: Optional[datetime]) -> Optional[datetime]:
    """Attach UTC to naive datetimes and convert aware ones to UTC."""
    if dt is None:
        return None
    if dt.tzinfo is None:
        return dt.replace(tzinfo=timezone.utc)
    return dt.astimezone(timezone.utc)


def get_timezone(name: str):
    """Return a pytz timezone, raising ``pytz.UnknownTimeZoneError`` for bad names."""
    return pytz.timezone(name)


def is_valid_timezone(name: Optional[str]) -> bool:
    if not name:
        return False
    try:
        pytz.timezone(name)
    except pytz.UnknownTimeZoneError:
        return False
    return True


def localize(day: date, clock: time, tz_name: str) -> datetime:
    """Wall-clock time on ``day`` in ``tz_name`` as a UTC instant."""
    tz = get_timezone(tz_name)
    return tz.localize(datetime.combine(day, clock)).astimezone(timezone.utc)


def day_bounds_utc(day: date, tz_name: str):
    """[start, end) of a local calendar day as UTC instants."""
    start = localize(day, time(0, 0), tz_name)
    end = localize(day + timedelta(days=1), time(0, 0), tz_name)
    return start, end


def sunday_based_weekday(day: date) -> int:
    """Day of week with 0 = Sunday .. 6 = Saturday."""
    return (day.weekday() + 1) % 7


def start_of_month(now: datetime) -> datetime:
    now = ensure_utc(now)
    return now.replace(day=1, hour=0, minute=0, second=0, microsecond=0)


def start_of_next_month(now: datetime) -> datetime:
    first = start_of_month(now)
    if first.month == 12:
        return first.replace(year=first.year + 1, month=1)
    return first.replace(month=first.month + 1)
