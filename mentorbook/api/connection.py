# mentorbook/api/connection.py

from fastapi import APIRouter, Depends, status
from sqlalchemy.orm import Session

from mentorbook import models
from mentorbook.database import get_db
from mentorbook.exceptions import DomainError
from mentorbook.schemas.connection import ConnectionCreate, ConnectionUpdate
from mentorbook.services import connection_service
from mentorbook.utils.security import get_current_user

router = APIRouter(prefix="/connections", tags=["connections"])


@router.get("")
def list_connections(
    current_user: models.User = Depends(get_current_user),
    db: Session = Depends(get_db),
):
    return connection_service.list_connections(db, current_user)


@router.post("", status_code=status.HTTP_201_CREATED)
def request_connection(
    payload: ConnectionCreate,
    current_user: models.User = Depends(get_current_user),
    db: Session = Depends(get_db),
):
    """Ask a mentor to take the caller on."""
    try:
        connection = connection_service.request_connection(
            db, current_user, payload.mentor_id, payload.message
        )
    except DomainError as exc:
        raise exc.to_http_exception()
    return {"connection": connection_service.connection_to_dict(connection)}


@router.patch("/{connection_id}")
def respond_to_connection(
    connection_id: int,
    payload: ConnectionUpdate,
    current_user: models.User = Depends(get_current_user),
    db: Session = Depends(get_db),
):
    try:
        connection = connection_service.respond(
            db, current_user, connection_id, payload.status, payload.response
        )
    except DomainError as exc:
        raise exc.to_http_exception()
    return {"connection": connection_service.connection_to_dict(connection)}
