# mentorbook/services/session_scheduler.py
"""
Session Scheduler

Books, updates and joins mentorship sessions.

Booking is atomic with respect to the session row: the connection check,
guardrails and conflict check all run before anything is written, and the
conflict check plus insert share one transaction holding a row lock on the
mentor. Video room creation and notification emails happen after commit and
never fail a booking.
"""

from __future__ import annotations

import logging
from datetime import datetime, timedelta
from typing import Any, Dict, Optional

from sqlalchemy.exc import IntegrityError, SQLAlchemyError
from sqlalchemy.orm import Session
from sqlalchemy.orm.exc import StaleDataError

from mentorbook import models
from mentorbook.crud import connection as connection_crud
from mentorbook.crud import session as session_crud
from mentorbook.crud import user as user_crud
from mentorbook.exceptions import (
    AuthorizationError,
    ConflictError,
    NotFoundError,
    ValidationError,
)
from mentorbook.models.session import SessionStatus
from mentorbook.services import booking_guardrails, notification_service
from mentorbook.services.slot_generator import overlaps_any, session_interval
from mentorbook.utils.timeutils import ensure_utc, start_of_month, utcnow
from mentorbook.utils.video import VideoProviderError, get_video_client, room_name_for_session

logger = logging.getLogger(__name__)

ROOM_EXPIRY_AFTER_SESSION = timedelta(hours=24)
JOIN_OPENS_BEFORE = timedelta(hours=24)
JOIN_CLOSES_AFTER = timedelta(hours=2)
MAX_PARTICIPANTS = 2

ALLOWED_TRANSITIONS = {
    SessionStatus.SCHEDULED.value: {
        SessionStatus.COMPLETED.value,
        SessionStatus.CANCELLED.value,
        SessionStatus.NO_SHOW.value,
    },
}


# ======================
# HELPER FUNCTIONS
# ======================

def display_name(user: Optional[models.User], fallback: str) -> str:
    if user is None:
        return fallback
    return (user.name or "").strip() or user.email or fallback


def session_to_dict(session: models.Session) -> Dict[str, Any]:
    return {
        "id": session.id,
        "mentor_id": session.mentor_id,
        "student_id": session.student_id,
        "scheduled_at": ensure_utc(session.scheduled_at).isoformat(),
        "duration_minutes": session.duration_minutes,
        "status": session.status,
        "topic": session.topic,
        "meeting_url": session.meeting_url,
        "notes": session.notes,
        "student_notes": session.student_notes,
        "mentor_feedback": session.mentor_feedback,
        "rating": session.rating,
        "version": session.version,
        "created_at": ensure_utc(session.created_at).isoformat() if session.created_at else None,
        "updated_at": ensure_utc(session.updated_at).isoformat() if session.updated_at else None,
    }


def _participant_roles(session: models.Session, user: models.User) -> tuple[bool, bool]:
    is_mentor = session.mentor is not None and session.mentor.user_id == user.id
    is_student = session.student_id == user.id
    return is_mentor, is_student


def _room_expiry(session: models.Session) -> int:
    return int((ensure_utc(session.scheduled_at) + ROOM_EXPIRY_AFTER_SESSION).timestamp())


def provision_room(db: Session, session: models.Session) -> Optional[str]:
    """
    Create (or look up) the session's video room and store its url.

    Failures are logged and leave ``meeting_url`` empty; the next join
    attempt retries.
    """
    client = get_video_client()
    if client is None:
        return None

    room_name = room_name_for_session(session.id)
    try:
        url = client.ensure_room(room_name, expiry=_room_expiry(session), max_participants=MAX_PARTICIPANTS)
    except VideoProviderError as exc:
        logger.warning(
            "Video room creation failed for session %s: %s",
            session.id,
            exc.message,
            extra={"status_code": exc.status_code},
        )
        return None

    session.meeting_url = url
    try:
        db.commit()
    except SQLAlchemyError:
        db.rollback()
        logger.exception("Could not store meeting url for session %s", session.id)
        return None
    return url


def _notify_booked(session: models.Session, student: models.User, mentor_user: Optional[models.User]) -> None:
    student_name = display_name(student, "Mentee")
    mentor_name = display_name(mentor_user, "Mentor")
    common = {
        "session_date": ensure_utc(session.scheduled_at),
        "topic": session.topic,
        "meeting_url": session.meeting_url,
    }
    notification_service.dispatch(
        student.email,
        notification_service.SESSION_BOOKED,
        {**common, "recipient_name": student_name, "other_party_name": mentor_name, "is_for_mentor": False},
    )
    if mentor_user is not None:
        notification_service.dispatch(
            mentor_user.email,
            notification_service.SESSION_BOOKED,
            {**common, "recipient_name": mentor_name, "other_party_name": student_name, "is_for_mentor": True},
        )


# ======================
# BOOKING
# ======================

def book_session(
    db: Session,
    student: models.User,
    mentor_id: int,
    requested_start: datetime,
    duration_minutes: int = 60,
    topic: Optional[str] = None,
    *,
    now: Optional[datetime] = None,
) -> Dict[str, Any]:
    """
    Book a session for ``student`` with a mentor.

    Raises:
        NotFoundError: Unknown mentor
        AuthorizationError: No accepted connection
        ValidationError: Duration or advance-window guardrail
        QuotaError: Monthly quota or cooldown guardrail
        ConflictError: The interval overlaps an existing session
    """
    now = ensure_utc(now) if now is not None else utcnow()
    requested_start = ensure_utc(requested_start).replace(microsecond=0)

    mentor = user_crud.get_mentor(db, mentor_id)
    if mentor is None:
        raise NotFoundError("Mentor not found", code="mentor_not_found")
    if mentor.user_id == student.id:
        raise ValidationError("Cannot book a session with yourself", code="self_booking")

    if not connection_crud.has_accepted_connection(db, mentor_id, student.id):
        raise AuthorizationError(
            "You must be connected with this mentor to book a session",
            code="connection_required",
        )

    sessions_this_month, _ = session_crud.get_monthly_usage(db, student.id, start_of_month(now))
    last_created_at = session_crud.get_latest_session_created_at(db, student.id, mentor_id)
    verdict = booking_guardrails.evaluate(
        requested_duration=duration_minutes,
        requested_start=requested_start,
        subscription_tier=student.subscription_tier,
        sessions_this_month=sessions_this_month,
        last_session_created_at=last_created_at,
        now=now,
    )
    if not verdict.ok:
        logger.info(
            "Booking rejected for student %s mentor %s: %s",
            student.id,
            mentor_id,
            verdict.reason.value,
        )
        raise verdict.to_error()

    requested_end = requested_start + timedelta(minutes=duration_minutes)
    try:
        # Serializes concurrent bookings for one mentor on databases with row locks.
        user_crud.get_mentor(db, mentor_id, for_update=True)
        existing = session_crud.get_mentor_sessions_starting_between(
            db,
            mentor_id,
            requested_start,
            requested_end,
            exclude_statuses=session_crud.INACTIVE_STATUSES,
        )
        if overlaps_any(requested_start, requested_end, [session_interval(s) for s in existing]):
            db.rollback()
            logger.info(
                "Booking conflict for mentor %s at %s (student %s)",
                mentor_id,
                requested_start.isoformat(),
                student.id,
            )
            raise ConflictError(
                "This time slot is no longer available. Please choose another time.",
                code="slot_conflict",
            )

        session = session_crud.create_session(
            db,
            mentor_id=mentor_id,
            student_id=student.id,
            scheduled_at=requested_start,
            duration_minutes=duration_minutes,
            topic=topic,
            created_at=now,
        )
        db.commit()
    except IntegrityError:
        db.rollback()
        logger.info("Booking for mentor %s rejected by overlap constraint", mentor_id)
        raise ConflictError(
            "This time slot is no longer available. Please choose another time.",
            code="slot_conflict",
        )

    db.refresh(session)
    logger.info("Session %s booked: mentor %s student %s", session.id, mentor_id, student.id)

    provision_room(db, session)
    _notify_booked(session, student, mentor.user)

    return session_to_dict(session)


# ======================
# UPDATE
# ======================

def _refresh_mentor_rating(db: Session, mentor: models.Mentor) -> None:
    db.flush()
    average, _ = session_crud.get_rating_stats(db, mentor.id)
    mentor.average_rating = round(average, 2) if average is not None else None


def update_session(
    db: Session,
    user: models.User,
    session_id: int,
    changes: Dict[str, Any],
    *,
    expected_version: Optional[int] = None,
    now: Optional[datetime] = None,
) -> Dict[str, Any]:
    """
    Apply a participant's changes to a session.

    Status may only move out of ``scheduled``; students may only cancel.
    Mentors own ``notes`` and ``mentor_feedback``; students own
    ``student_notes`` and ``rating``.
    """
    now = ensure_utc(now) if now is not None else utcnow()

    session = session_crud.get_session(db, session_id, for_update=True)
    if session is None:
        raise NotFoundError("Session not found", code="session_not_found")

    is_mentor, is_student = _participant_roles(session, user)
    if not is_mentor and not is_student:
        raise AuthorizationError("Not authorized", code="not_participant")

    if expected_version is not None and expected_version != session.version:
        raise ConflictError(
            "Session was modified by someone else. Reload and try again.",
            code="stale_session",
            details={"current_version": session.version},
        )

    previous_status = session.status
    new_status = changes.get("status")
    if new_status is not None and new_status != previous_status:
        if new_status not in {s.value for s in SessionStatus}:
            raise ValidationError(f"Invalid status: {new_status}", code="invalid_status")
        if new_status not in ALLOWED_TRANSITIONS.get(previous_status, set()):
            raise ValidationError(
                f"Cannot change session from {previous_status} to {new_status}",
                code="invalid_status_transition",
            )
        if not is_mentor and new_status != SessionStatus.CANCELLED.value:
            raise AuthorizationError("Only the mentor can mark this session as " + new_status, code="mentor_only")
        session.status = new_status

    if changes.get("notes") is not None:
        if not is_mentor:
            raise AuthorizationError("Only the mentor can edit session notes", code="mentor_only")
        session.notes = changes["notes"]
    if changes.get("student_notes") is not None:
        if not is_student:
            raise AuthorizationError("Only the student can edit student notes", code="student_only")
        session.student_notes = changes["student_notes"]
    if changes.get("mentor_feedback") is not None:
        if not is_mentor:
            raise AuthorizationError("Only the mentor can leave feedback", code="mentor_only")
        session.mentor_feedback = changes["mentor_feedback"]

    rating = changes.get("rating")
    if rating is not None:
        if not is_student:
            raise AuthorizationError("Only the student can rate a session", code="student_only")
        if not 1 <= int(rating) <= 5:
            raise ValidationError("Rating must be between 1 and 5", code="invalid_rating")
        if session.status != SessionStatus.COMPLETED.value:
            raise ValidationError("Only completed sessions can be rated", code="session_not_completed")
        session.rating = int(rating)

    completed_now = (
        previous_status != SessionStatus.COMPLETED.value
        and session.status == SessionStatus.COMPLETED.value
    )
    cancelled_now = (
        previous_status != SessionStatus.CANCELLED.value
        and session.status == SessionStatus.CANCELLED.value
    )

    session.updated_at = now
    mentor = session.mentor
    if completed_now:
        mentor.session_count = (mentor.session_count or 0) + 1
    try:
        if rating is not None:
            _refresh_mentor_rating(db, mentor)
        db.commit()
    except StaleDataError:
        db.rollback()
        raise ConflictError(
            "Session was modified by someone else. Reload and try again.",
            code="stale_session",
        )
    db.refresh(session)
    logger.info("Session %s updated by user %s (status=%s)", session.id, user.id, session.status)

    student = session.student
    mentor_user = mentor.user
    if cancelled_now:
        recipient = mentor_user if is_student else student
        notification_service.dispatch(
            recipient.email if recipient else None,
            notification_service.SESSION_CANCELLED,
            {
                "recipient_name": display_name(recipient, "there"),
                "other_party_name": display_name(user, "Your session partner"),
                "session_date": ensure_utc(session.scheduled_at),
            },
        )
    if completed_now:
        notification_service.dispatch(
            student.email if student else None,
            notification_service.SESSION_FOLLOW_UP,
            {
                "recipient_name": display_name(student, "there"),
                "other_party_name": display_name(mentor_user, "your mentor"),
                "session_id": session.id,
            },
        )

    return session_to_dict(session)


# ======================
# JOIN
# ======================

def join_session(
    db: Session,
    user: models.User,
    session_id: int,
    *,
    now: Optional[datetime] = None,
) -> Dict[str, Any]:
    """
    Meeting url and participant token for a session inside its join window.

    The room is created lazily when booking could not create it.
    """
    now = ensure_utc(now) if now is not None else utcnow()

    session = session_crud.get_session(db, session_id)
    if session is None:
        raise NotFoundError("Session not found", code="session_not_found")

    is_mentor, is_student = _participant_roles(session, user)
    if not is_mentor and not is_student:
        raise AuthorizationError("You are not a participant in this session", code="not_participant")

    if session.status != SessionStatus.SCHEDULED.value:
        raise ValidationError("This session is not active", code="session_not_active")

    starts_at = ensure_utc(session.scheduled_at)
    closes_at = starts_at + JOIN_CLOSES_AFTER
    if now > closes_at:
        raise ValidationError("This session has expired", code="join_window_closed")
    if now < starts_at - JOIN_OPENS_BEFORE:
        raise ValidationError(
            "Session has not started yet. You can join up to 24 hours before the scheduled time.",
            code="join_window_not_open",
            details={"starts_at": starts_at.isoformat()},
        )

    if not session.meeting_url:
        provision_room(db, session)

    room_name = room_name_for_session(session.id)
    user_name = display_name(user, "Participant")
    token = None
    client = get_video_client()
    if client is not None and session.meeting_url:
        try:
            token = client.create_meeting_token(
                room_name=room_name,
                user_name=user_name,
                is_owner=is_mentor,
                expiry=int(closes_at.timestamp()),
            )
        except VideoProviderError as exc:
            logger.warning("Meeting token creation failed for session %s: %s", session.id, exc.message)

    body: Dict[str, Any] = {
        "meeting_url": session.meeting_url,
        "room_name": room_name,
        "user_name": user_name,
        "is_mentor": is_mentor,
        "session": {
            "id": session.id,
            "topic": session.topic,
            "scheduled_at": starts_at.isoformat(),
            "duration_minutes": session.duration_minutes,
        },
    }
    if token:
        body["token"] = token
    return body


# ======================
# READS
# ======================

def get_session_for_participant(db: Session, user: models.User, session_id: int) -> Dict[str, Any]:
    session = session_crud.get_session(db, session_id)
    if session is None:
        raise NotFoundError("Session not found", code="session_not_found")
    is_mentor, is_student = _participant_roles(session, user)
    if not is_mentor and not is_student:
        raise AuthorizationError("Not authorized", code="not_participant")
    return session_to_dict(session)


def list_sessions(db: Session, user: models.User) -> Dict[str, Any]:
    as_student = []
    for s in session_crud.get_sessions_for_student(db, user.id):
        item = session_to_dict(s)
        item["mentor"] = {
            "id": s.mentor_id,
            "name": display_name(s.mentor.user if s.mentor else None, ""),
            "current_role": s.mentor.current_role if s.mentor else None,
        }
        as_student.append(item)

    as_mentor = []
    mentor = user.mentor
    if mentor is not None:
        for s in session_crud.get_sessions_for_mentor(db, mentor.id):
            item = session_to_dict(s)
            item["student"] = {"id": s.student_id, "name": display_name(s.student, "")}
            as_mentor.append(item)

    return {"as_student": as_student, "as_mentor": as_mentor, "is_mentor": mentor is not None}


def get_usage(db: Session, user: models.User, *, now: Optional[datetime] = None) -> Dict[str, Any]:
    now = ensure_utc(now) if now is not None else utcnow()
    used, minutes = session_crud.get_monthly_usage(db, user.id, start_of_month(now))
    return booking_guardrails.usage_summary(user.subscription_tier, used, minutes, now)
