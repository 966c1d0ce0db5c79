# mentorbook/crud/session.py
"""
Session CRUD operations.

Query helpers for mentorship sessions. Callers own the transaction:
nothing here commits.
"""

from datetime import datetime, timedelta
from typing import Iterable, List, Optional, Tuple

from sqlalchemy import func
from sqlalchemy.orm import Session

from mentorbook import models
from mentorbook.models.session import BLOCKING_STATUSES, SessionStatus

# Longest bookable session; bounds how far back an overlapping session can start.
MAX_SESSION_MINUTES = 90

INACTIVE_STATUSES = (SessionStatus.CANCELLED.value, SessionStatus.NO_SHOW.value)


def get_session(db: Session, session_id: int, *, for_update: bool = False) -> Optional[models.Session]:
    query = db.query(models.Session).filter(models.Session.id == session_id)
    if for_update:
        query = query.with_for_update()
    return query.first()


def create_session(
    db: Session,
    *,
    mentor_id: int,
    student_id: int,
    scheduled_at: datetime,
    duration_minutes: int,
    topic: Optional[str],
    created_at: datetime,
) -> models.Session:
    session = models.Session(
        mentor_id=mentor_id,
        student_id=student_id,
        scheduled_at=scheduled_at,
        duration_minutes=duration_minutes,
        status=SessionStatus.SCHEDULED.value,
        topic=topic,
        created_at=created_at,
        updated_at=created_at,
    )
    db.add(session)
    db.flush()
    return session


def get_mentor_sessions_starting_between(
    db: Session,
    mentor_id: int,
    start: datetime,
    end: datetime,
    *,
    exclude_statuses: Optional[Iterable[str]] = None,
) -> List[models.Session]:
    """Sessions of a mentor whose start falls in [start - MAX_SESSION_MINUTES, end)."""
    query = db.query(models.Session).filter(
        models.Session.mentor_id == mentor_id,
        models.Session.scheduled_at >= start - timedelta(minutes=MAX_SESSION_MINUTES),
        models.Session.scheduled_at < end,
    )
    if exclude_statuses is not None:
        query = query.filter(models.Session.status.notin_(list(exclude_statuses)))
    return query.order_by(models.Session.scheduled_at.asc()).all()


def get_monthly_usage(db: Session, student_id: int, since: datetime) -> Tuple[int, int]:
    """(count, total minutes) of scheduled/completed sessions created since ``since``."""
    count, minutes = db.query(
        func.count(models.Session.id),
        func.coalesce(func.sum(models.Session.duration_minutes), 0),
    ).filter(
        models.Session.student_id == student_id,
        models.Session.created_at >= since,
        models.Session.status.in_(BLOCKING_STATUSES),
    ).one()
    return int(count or 0), int(minutes or 0)


def get_latest_session_created_at(
    db: Session, student_id: int, mentor_id: int
) -> Optional[datetime]:
    return db.query(func.max(models.Session.created_at)).filter(
        models.Session.student_id == student_id,
        models.Session.mentor_id == mentor_id,
    ).scalar()


def get_sessions_for_student(db: Session, student_id: int) -> List[models.Session]:
    return db.query(models.Session).filter(
        models.Session.student_id == student_id
    ).order_by(models.Session.scheduled_at.desc()).all()


def get_sessions_for_mentor(db: Session, mentor_id: int) -> List[models.Session]:
    return db.query(models.Session).filter(
        models.Session.mentor_id == mentor_id
    ).order_by(models.Session.scheduled_at.desc()).all()


def get_scheduled_sessions_between(db: Session, start: datetime, end: datetime) -> List[models.Session]:
    """Scheduled sessions starting in [start, end)."""
    return db.query(models.Session).filter(
        models.Session.status == SessionStatus.SCHEDULED.value,
        models.Session.scheduled_at >= start,
        models.Session.scheduled_at < end,
    ).order_by(models.Session.scheduled_at.asc()).all()


def get_rating_stats(db: Session, mentor_id: int) -> Tuple[Optional[float], int]:
    avg, count = db.query(
        func.avg(models.Session.rating),
        func.count(models.Session.rating),
    ).filter(
        models.Session.mentor_id == mentor_id,
        models.Session.rating.isnot(None),
    ).one()
    return (float(avg) if avg is not None else None), int(count or 0)
