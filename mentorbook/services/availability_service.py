"""Weekly availability templates owned by mentors."""

from __future__ import annotations

import logging
import re
from typing import Iterable, List, Optional

from sqlalchemy.orm import Session

from mentorbook import models
from mentorbook.config import settings
from mentorbook.crud import availability as availability_crud
from mentorbook.exceptions import AuthorizationError, NotFoundError, ValidationError
from mentorbook.utils.timeutils import is_valid_timezone

logger = logging.getLogger(__name__)

TIME_PATTERN = re.compile(r"^([01]?[0-9]|2[0-3]):[0-5][0-9]$")


def normalize_clock(value: str) -> str:
    """Zero-pad ``H:MM`` so string comparison matches clock order."""
    hours, minutes = value.split(":")
    return f"{int(hours):02d}:{minutes}"


def validate_template(
    day_of_week: Optional[int],
    start_time: Optional[str],
    end_time: Optional[str],
    timezone: Optional[str],
) -> tuple[int, str, str, str]:
    """Validate one template and return normalized values."""
    if day_of_week is None or not start_time or not end_time:
        raise ValidationError("Day, start time, and end time are required", code="missing_fields")
    if day_of_week < 0 or day_of_week > 6:
        raise ValidationError("Invalid day of week", code="invalid_day_of_week")
    if not TIME_PATTERN.match(start_time) or not TIME_PATTERN.match(end_time):
        raise ValidationError("Invalid time format. Use HH:MM", code="invalid_time_format")

    start_time = normalize_clock(start_time)
    end_time = normalize_clock(end_time)
    if start_time >= end_time:
        raise ValidationError("Start time must be before end time", code="invalid_time_range")

    timezone = timezone or settings.DEFAULT_TIMEZONE
    if not is_valid_timezone(timezone):
        raise ValidationError(f"Unknown timezone: {timezone}", code="invalid_timezone")
    return day_of_week, start_time, end_time, timezone


def add_template(
    db: Session,
    mentor: models.Mentor,
    *,
    day_of_week: Optional[int],
    start_time: Optional[str],
    end_time: Optional[str],
    timezone: Optional[str] = None,
) -> models.AvailabilitySlotTemplate:
    day_of_week, start_time, end_time, timezone = validate_template(
        day_of_week, start_time, end_time, timezone
    )
    template = availability_crud.create_template(
        db,
        mentor_id=mentor.id,
        day_of_week=day_of_week,
        start_time=start_time,
        end_time=end_time,
        timezone=timezone,
    )
    db.commit()
    db.refresh(template)
    logger.info("Availability template %s added for mentor %s", template.id, mentor.id)
    return template


def replace_templates(
    db: Session, mentor: models.Mentor, templates: Iterable[dict]
) -> List[models.AvailabilitySlotTemplate]:
    """
    Deactivate every existing template and insert the valid subset of ``templates``.

    Invalid entries are skipped, matching the bulk-edit form which submits the
    whole week at once.
    """
    availability_crud.deactivate_all(db, mentor.id)
    created = 0
    for entry in templates:
        try:
            day_of_week, start_time, end_time, timezone = validate_template(
                entry.get("day_of_week"),
                entry.get("start_time"),
                entry.get("end_time"),
                entry.get("timezone"),
            )
        except ValidationError as exc:
            logger.info("Skipping invalid availability entry for mentor %s: %s", mentor.id, exc.message)
            continue
        availability_crud.create_template(
            db,
            mentor_id=mentor.id,
            day_of_week=day_of_week,
            start_time=start_time,
            end_time=end_time,
            timezone=timezone,
        )
        created += 1
    db.commit()
    logger.info("Availability replaced for mentor %s (%s templates)", mentor.id, created)
    return availability_crud.list_templates(db, mentor.id, active_only=True)


def _owned_template(db: Session, mentor: models.Mentor, template_id: int) -> models.AvailabilitySlotTemplate:
    template = availability_crud.get_template(db, template_id)
    if template is None:
        raise NotFoundError("Slot not found", code="template_not_found")
    if template.mentor_id != mentor.id:
        raise AuthorizationError("Not authorized", code="not_template_owner")
    return template


def set_template_active(
    db: Session, mentor: models.Mentor, template_id: int, is_active: Optional[bool] = None
) -> models.AvailabilitySlotTemplate:
    """Set the active flag; ``None`` flips it."""
    template = _owned_template(db, mentor, template_id)
    template.is_active = (not template.is_active) if is_active is None else bool(is_active)
    db.commit()
    db.refresh(template)
    return template


def deactivate_template(db: Session, mentor: models.Mentor, template_id: int) -> models.AvailabilitySlotTemplate:
    return set_template_active(db, mentor, template_id, False)


def template_to_dict(template: models.AvailabilitySlotTemplate) -> dict:
    return {
        "id": template.id,
        "mentor_id": template.mentor_id,
        "day_of_week": template.day_of_week,
        "start_time": template.start_time,
        "end_time": template.end_time,
        "timezone": template.timezone,
        "is_active": template.is_active,
    }


def list_availability(db: Session, mentor_id: int, *, active_only: bool = True) -> List[dict]:
    """Templates of a mentor ordered by day of week, then start time."""
    return [
        template_to_dict(t)
        for t in availability_crud.list_templates(db, mentor_id, active_only=active_only)
    ]
