# mentorbook/api/availability.py
"""
Availability API

Weekly availability templates for mentors and the slot listing students
book from.
"""

from datetime import date
from typing import Optional

from fastapi import APIRouter, Depends, Query, status
from sqlalchemy.orm import Session

from mentorbook import models
from mentorbook.crud import user as user_crud
from mentorbook.database import get_db
from mentorbook.exceptions import AuthenticationError, AuthorizationError, DomainError, NotFoundError, ValidationError
from mentorbook.schemas.availability import AvailabilityCreate, AvailabilityReplace, AvailabilityToggle
from mentorbook.services import availability_service
from mentorbook.services.slot_generator import DEFAULT_DURATION_MINUTES, generate_slots
from mentorbook.utils.security import current_user_id, get_current_mentor, oauth2_scheme

router = APIRouter(prefix="/availability", tags=["availability"])


@router.get("")
def get_availability(
    mentor_id: Optional[int] = Query(None),
    token: Optional[str] = Depends(oauth2_scheme),
    db: Session = Depends(get_db),
):
    """
    Public active templates for ``mentor_id``; without it, the caller's own
    templates including inactive ones.
    """
    if mentor_id is not None:
        return {"availability": availability_service.list_availability(db, mentor_id)}

    user_id = current_user_id(token)
    if user_id is None:
        raise AuthenticationError("Could not validate credentials").to_http_exception()
    mentor = user_crud.get_mentor_by_user_id(db, user_id)
    if mentor is None:
        raise AuthorizationError("Not a mentor", code="not_a_mentor").to_http_exception()
    return {"availability": availability_service.list_availability(db, mentor.id, active_only=False)}


@router.post("", status_code=status.HTTP_201_CREATED)
def add_availability(
    payload: AvailabilityCreate,
    mentor: models.Mentor = Depends(get_current_mentor),
    db: Session = Depends(get_db),
):
    try:
        template = availability_service.add_template(
            db,
            mentor,
            day_of_week=payload.day_of_week,
            start_time=payload.start_time,
            end_time=payload.end_time,
            timezone=payload.timezone,
        )
    except DomainError as exc:
        raise exc.to_http_exception()
    return {"slot": availability_service.template_to_dict(template)}


@router.put("")
def replace_availability(
    payload: AvailabilityReplace,
    mentor: models.Mentor = Depends(get_current_mentor),
    db: Session = Depends(get_db),
):
    """Bulk update: deactivate every template, then insert the valid entries."""
    templates = availability_service.replace_templates(
        db, mentor, [entry.model_dump() for entry in payload.slots]
    )
    return {"availability": [availability_service.template_to_dict(t) for t in templates]}


@router.get("/slots")
def get_slots(
    mentor_id: Optional[str] = Query(None),
    date_param: Optional[str] = Query(None, alias="date"),
    duration: Optional[str] = Query(None),
    db: Session = Depends(get_db),
):
    """Bookable slots for a mentor on a date (YYYY-MM-DD)."""
    if not mentor_id or not date_param:
        raise ValidationError("Mentor ID and date are required", code="missing_fields").to_http_exception()

    try:
        mentor_pk = int(mentor_id)
        target_date = date.fromisoformat(date_param)
        duration_minutes = int(duration) if duration else DEFAULT_DURATION_MINUTES
    except ValueError:
        raise ValidationError("Invalid mentor ID, date or duration", code="invalid_params").to_http_exception()
    if duration_minutes <= 0:
        raise ValidationError("Duration must be positive", code="invalid_params").to_http_exception()

    if user_crud.get_mentor(db, mentor_pk) is None:
        raise NotFoundError("Mentor not found", code="mentor_not_found").to_http_exception()

    return generate_slots(db, mentor_pk, target_date, duration_minutes).to_dict()


@router.patch("/{template_id}")
def toggle_availability(
    template_id: int,
    payload: Optional[AvailabilityToggle] = None,
    mentor: models.Mentor = Depends(get_current_mentor),
    db: Session = Depends(get_db),
):
    is_active = payload.is_active if payload is not None else None
    try:
        template = availability_service.set_template_active(db, mentor, template_id, is_active)
    except DomainError as exc:
        raise exc.to_http_exception()
    return {"slot": availability_service.template_to_dict(template)}


@router.delete("/{template_id}")
def delete_availability(
    template_id: int,
    mentor: models.Mentor = Depends(get_current_mentor),
    db: Session = Depends(get_db),
):
    try:
        availability_service.deactivate_template(db, mentor, template_id)
    except DomainError as exc:
        raise exc.to_http_exception()
    return {"success": True}
