# mentorbook/api/session.py
"""
Session Management API

Booking, listing, updating and joining mentorship sessions.
"""

import logging

from fastapi import APIRouter, Depends, HTTPException, status
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

from mentorbook import models
from mentorbook.database import get_db
from mentorbook.exceptions import DomainError
from mentorbook.schemas.session import SessionCreate, SessionUpdate
from mentorbook.services import session_scheduler
from mentorbook.utils.security import get_current_user

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/sessions", tags=["sessions"])


# ======================
# HELPER FUNCTIONS
# ======================

def _internal_error(db: Session, action: str) -> HTTPException:
    db.rollback()
    logger.exception("Unexpected database error while %s", action)
    return HTTPException(status_code=500, detail="Internal server error")


# ======================
# ROUTES
# ======================

@router.get("")
def list_sessions(
    current_user: models.User = Depends(get_current_user),
    db: Session = Depends(get_db),
):
    """Sessions where the caller is the student, and where they are the mentor."""
    return session_scheduler.list_sessions(db, current_user)


@router.post("", status_code=status.HTTP_201_CREATED)
def create_session(
    payload: SessionCreate,
    current_user: models.User = Depends(get_current_user),
    db: Session = Depends(get_db),
):
    try:
        session = session_scheduler.book_session(
            db,
            current_user,
            payload.mentor_id,
            payload.scheduled_at,
            payload.duration_minutes,
            payload.topic,
        )
    except DomainError as exc:
        raise exc.to_http_exception()
    except SQLAlchemyError:
        raise _internal_error(db, "booking a session")
    return {"session": session}


@router.get("/usage")
def get_usage(
    current_user: models.User = Depends(get_current_user),
    db: Session = Depends(get_db),
):
    return session_scheduler.get_usage(db, current_user)


@router.get("/{session_id}")
def get_session(
    session_id: int,
    current_user: models.User = Depends(get_current_user),
    db: Session = Depends(get_db),
):
    try:
        return {"session": session_scheduler.get_session_for_participant(db, current_user, session_id)}
    except DomainError as exc:
        raise exc.to_http_exception()


@router.patch("/{session_id}")
def update_session(
    session_id: int,
    payload: SessionUpdate,
    current_user: models.User = Depends(get_current_user),
    db: Session = Depends(get_db),
):
    changes = payload.model_dump(exclude_unset=True, exclude={"expected_version"})
    try:
        session = session_scheduler.update_session(
            db,
            current_user,
            session_id,
            changes,
            expected_version=payload.expected_version,
        )
    except DomainError as exc:
        db.rollback()
        raise exc.to_http_exception()
    except SQLAlchemyError:
        raise _internal_error(db, "updating a session")
    return {"session": session}


@router.get("/{session_id}/join")
def join_session(
    session_id: int,
    current_user: models.User = Depends(get_current_user),
    db: Session = Depends(get_db),
):
    """Meeting url and a participant token, inside the join window."""
    try:
        return session_scheduler.join_session(db, current_user, session_id)
    except DomainError as exc:
        raise exc.to_http_exception()
