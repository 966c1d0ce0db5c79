# mentorbook/services/slot_generator.py
"""
Slot generation.

Derives bookable slots for one mentor on one calendar date from the
mentor's weekly availability templates, the sessions already on the
calendar and the current time.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from datetime import date, datetime, time, timedelta
from typing import Iterable, List, Optional, Sequence, Tuple

from sqlalchemy.orm import Session

from mentorbook import models
from mentorbook.config import settings
from mentorbook.crud import availability as availability_crud
from mentorbook.crud import session as session_crud
from mentorbook.utils.timeutils import (
    day_bounds_utc,
    ensure_utc,
    localize,
    sunday_based_weekday,
    utcnow,
)

logger = logging.getLogger(__name__)

SLOT_INCREMENT_MINUTES = 30
DEFAULT_DURATION_MINUTES = 60
NOT_AVAILABLE_MESSAGE = "Mentor is not available on this day"

Interval = Tuple[datetime, datetime]


@dataclass(frozen=True)
class Slot:
    start_time: str
    end_time: str
    available: bool
    starts_at: datetime
    ends_at: datetime

    def to_dict(self) -> dict:
        return {
            "start_time": self.start_time,
            "end_time": self.end_time,
            "available": self.available,
            "starts_at": self.starts_at.isoformat(),
            "ends_at": self.ends_at.isoformat(),
        }


@dataclass
class SlotResult:
    date: date
    day_of_week: int
    timezone: str
    slots: List[Slot] = field(default_factory=list)
    message: Optional[str] = None

    def to_dict(self) -> dict:
        body = {
            "date": self.date.isoformat(),
            "day_of_week": self.day_of_week,
            "timezone": self.timezone,
            "slots": [slot.to_dict() for slot in self.slots],
        }
        if self.message:
            body["message"] = self.message
        return body


def parse_clock(value: str) -> time:
    """Parse ``HH:MM`` (24h)."""
    hours, minutes = value.split(":")
    return time(int(hours), int(minutes))


def format_clock(minutes_since_midnight: int) -> str:
    return f"{minutes_since_midnight // 60:02d}:{minutes_since_midnight % 60:02d}"


def intervals_overlap(start: datetime, end: datetime, other_start: datetime, other_end: datetime) -> bool:
    return start < other_end and end > other_start


def session_interval(session: models.Session) -> Interval:
    start = ensure_utc(session.scheduled_at)
    return start, start + timedelta(minutes=session.duration_minutes)


def overlaps_any(start: datetime, end: datetime, busy: Iterable[Interval]) -> bool:
    return any(intervals_overlap(start, end, other_start, other_end) for other_start, other_end in busy)


def candidate_starts(start_time: str, end_time: str, duration_minutes: int) -> List[Tuple[int, int]]:
    """
    Walk [start_time, end_time) in fixed increments.

    Returns (start, end) pairs in minutes since midnight for every candidate
    that fits entirely inside the window. A window whose end is not after
    its start (overnight) yields nothing.
    """
    start = parse_clock(start_time)
    end = parse_clock(end_time)
    window_start = start.hour * 60 + start.minute
    window_end = end.hour * 60 + end.minute

    candidates = []
    current = window_start
    while current < window_end:
        slot_end = current + duration_minutes
        if slot_end > window_end:
            break
        candidates.append((current, slot_end))
        current += SLOT_INCREMENT_MINUTES
    return candidates


def build_slots(
    target_date: date,
    templates: Sequence[models.AvailabilitySlotTemplate],
    busy: Sequence[Interval],
    duration_minutes: int,
    now: datetime,
) -> List[Slot]:
    """Pure slot construction; candidates are deduplicated by start time."""
    now = ensure_utc(now)
    slots: List[Slot] = []
    seen_starts = set()

    for template in templates:
        for start_min, end_min in candidate_starts(template.start_time, template.end_time, duration_minutes):
            starts_at = localize(target_date, time(start_min // 60, start_min % 60), template.timezone)
            if starts_at in seen_starts:
                continue
            seen_starts.add(starts_at)
            ends_at = starts_at + timedelta(minutes=duration_minutes)

            is_booked = overlaps_any(starts_at, ends_at, busy)
            is_in_past = starts_at <= now

            slots.append(
                Slot(
                    start_time=format_clock(start_min),
                    end_time=format_clock(end_min),
                    available=not is_booked and not is_in_past,
                    starts_at=starts_at,
                    ends_at=ends_at,
                )
            )

    slots.sort(key=lambda slot: slot.starts_at)
    return slots


def busy_intervals_for_day(
    db: Session, mentor_id: int, target_date: date, tz_names: Iterable[str]
) -> List[Interval]:
    """
    Intervals of the mentor's non-cancelled, non-no-show sessions touching the
    date in any of ``tz_names``.

    Templates of one day may use different timezones, so the range covers the
    union of each timezone's local day.
    """
    bounds = [day_bounds_utc(target_date, tz_name) for tz_name in set(tz_names)]
    day_start = min(start for start, _ in bounds)
    day_end = max(end for _, end in bounds)
    sessions = session_crud.get_mentor_sessions_starting_between(
        db,
        mentor_id,
        day_start,
        day_end,
        exclude_statuses=session_crud.INACTIVE_STATUSES,
    )
    return [session_interval(s) for s in sessions]


def generate_slots(
    db: Session,
    mentor_id: int,
    target_date: date,
    duration_minutes: int = DEFAULT_DURATION_MINUTES,
    now: Optional[datetime] = None,
) -> SlotResult:
    """
    Bookable slots for a mentor on a calendar date.

    Args:
        db: Database session
        mentor_id: Mentor whose calendar is read
        target_date: Calendar date in the availability timezone
        duration_minutes: Desired session length
        now: Reference time (defaults to the current time)

    Returns:
        SlotResult with ordered slots and the availability timezone
    """
    now = ensure_utc(now) if now is not None else utcnow()
    day_of_week = sunday_based_weekday(target_date)
    templates = availability_crud.list_active_for_day(db, mentor_id, day_of_week)

    if not templates:
        return SlotResult(
            date=target_date,
            day_of_week=day_of_week,
            timezone=settings.DEFAULT_TIMEZONE,
            message=NOT_AVAILABLE_MESSAGE,
        )

    tz_name = templates[0].timezone or settings.DEFAULT_TIMEZONE
    busy = busy_intervals_for_day(
        db,
        mentor_id,
        target_date,
        [t.timezone or settings.DEFAULT_TIMEZONE for t in templates],
    )
    slots = build_slots(target_date, templates, busy, duration_minutes, now)

    logger.debug(
        "Generated %s slots for mentor %s on %s (%s busy intervals)",
        len(slots),
        mentor_id,
        target_date,
        len(busy),
    )
    return SlotResult(date=target_date, day_of_week=day_of_week, timezone=tz_name, slots=slots)
