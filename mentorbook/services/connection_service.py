"""Mentor/student connections. Booking requires an accepted connection."""

from __future__ import annotations

import logging
from typing import Any, Dict, Optional

from sqlalchemy.orm import Session

from mentorbook import models
from mentorbook.crud import connection as connection_crud
from mentorbook.crud import user as user_crud
from mentorbook.exceptions import AuthorizationError, NotFoundError, ValidationError
from mentorbook.models.connection import ConnectionStatus
from mentorbook.services import notification_service
from mentorbook.services.session_scheduler import display_name
from mentorbook.utils.timeutils import ensure_utc

logger = logging.getLogger(__name__)

OPEN_STATUSES = (ConnectionStatus.PENDING.value, ConnectionStatus.ACCEPTED.value)


def connection_to_dict(connection: models.Connection) -> Dict[str, Any]:
    mentor_user = connection.mentor.user if connection.mentor else None
    return {
        "id": connection.id,
        "mentor_id": connection.mentor_id,
        "student_id": connection.student_id,
        "status": connection.status,
        "message": connection.message,
        "mentor_response": connection.mentor_response,
        "mentor_name": display_name(mentor_user, ""),
        "student_name": display_name(connection.student, ""),
        "created_at": ensure_utc(connection.created_at).isoformat() if connection.created_at else None,
    }


def request_connection(
    db: Session, student: models.User, mentor_id: int, message: Optional[str] = None
) -> models.Connection:
    mentor = user_crud.get_mentor(db, mentor_id)
    if mentor is None or not mentor.is_verified or not mentor.is_available:
        raise NotFoundError("Mentor not found or not available", code="mentor_not_found")
    if mentor.user_id == student.id:
        raise ValidationError("Cannot connect with yourself", code="self_connection")

    connection = connection_crud.get_between(db, mentor_id, student.id)
    if connection is not None:
        if connection.status in OPEN_STATUSES:
            raise ValidationError(
                f"Connection already {connection.status}",
                code="connection_exists",
                details={"status": connection.status},
            )
        connection.status = ConnectionStatus.PENDING.value
        connection.message = message
        connection.mentor_response = None
    else:
        connection = models.Connection(
            mentor_id=mentor_id,
            student_id=student.id,
            status=ConnectionStatus.PENDING.value,
            message=message,
        )
        db.add(connection)

    db.commit()
    db.refresh(connection)
    logger.info("Connection %s requested: student %s -> mentor %s", connection.id, student.id, mentor_id)

    mentor_user = mentor.user
    notification_service.dispatch(
        mentor_user.email if mentor_user else None,
        notification_service.CONNECTION_REQUEST,
        {
            "mentor_name": display_name(mentor_user, "there"),
            "student_name": display_name(student, "A student"),
            "message": message,
        },
    )
    return connection


def respond(
    db: Session,
    user: models.User,
    connection_id: int,
    status: str,
    response: Optional[str] = None,
) -> models.Connection:
    """
    Accept or decline a pending request (mentor only), or end an accepted
    connection (either party).
    """
    connection = connection_crud.get_connection(db, connection_id)
    if connection is None:
        raise NotFoundError("Connection not found", code="connection_not_found")

    is_mentor = connection.mentor is not None and connection.mentor.user_id == user.id
    is_student = connection.student_id == user.id
    if not is_mentor and not is_student:
        raise AuthorizationError("Not authorized", code="not_participant")

    if status in (ConnectionStatus.ACCEPTED.value, ConnectionStatus.DECLINED.value):
        if not is_mentor:
            raise AuthorizationError("Only the mentor can respond to a request", code="mentor_only")
        if connection.status != ConnectionStatus.PENDING.value:
            raise ValidationError("Only pending requests can be answered", code="connection_not_pending")
    elif status == ConnectionStatus.ENDED.value:
        if connection.status != ConnectionStatus.ACCEPTED.value:
            raise ValidationError("Only accepted connections can be ended", code="connection_not_active")
    else:
        raise ValidationError(f"Invalid status: {status}", code="invalid_status")

    connection.status = status
    if response is not None and is_mentor:
        connection.mentor_response = response
    db.commit()
    db.refresh(connection)
    logger.info("Connection %s set to %s by user %s", connection.id, status, user.id)

    template = {
        ConnectionStatus.ACCEPTED.value: notification_service.CONNECTION_ACCEPTED,
        ConnectionStatus.DECLINED.value: notification_service.CONNECTION_DECLINED,
    }.get(status)
    if template:
        student = connection.student
        notification_service.dispatch(
            student.email if student else None,
            template,
            {
                "student_name": display_name(student, "there"),
                "mentor_name": display_name(user, "Your mentor"),
                "response": connection.mentor_response,
            },
        )
    return connection


def list_connections(db: Session, user: models.User) -> Dict[str, Any]:
    as_student = [connection_to_dict(c) for c in connection_crud.list_for_student(db, user.id)]
    as_mentor = []
    if user.mentor is not None:
        as_mentor = [connection_to_dict(c) for c in connection_crud.list_for_mentor(db, user.mentor.id)]
    return {"as_student": as_student, "as_mentor": as_mentor}
