from typing import List, Optional

from sqlalchemy.orm import Session

from mentorbook import models
from mentorbook.models.connection import ConnectionStatus


def get_connection(db: Session, connection_id: int) -> Optional[models.Connection]:
    return db.query(models.Connection).filter(models.Connection.id == connection_id).first()


def get_between(db: Session, mentor_id: int, student_id: int) -> Optional[models.Connection]:
    return db.query(models.Connection).filter(
        models.Connection.mentor_id == mentor_id,
        models.Connection.student_id == student_id,
    ).first()


def has_accepted_connection(db: Session, mentor_id: int, student_id: int) -> bool:
    return db.query(models.Connection.id).filter(
        models.Connection.mentor_id == mentor_id,
        models.Connection.student_id == student_id,
        models.Connection.status == ConnectionStatus.ACCEPTED.value,
    ).first() is not None


def list_for_student(db: Session, student_id: int) -> List[models.Connection]:
    return db.query(models.Connection).filter(
        models.Connection.student_id == student_id
    ).order_by(models.Connection.created_at.desc()).all()


def list_for_mentor(db: Session, mentor_id: int) -> List[models.Connection]:
    return db.query(models.Connection).filter(
        models.Connection.mentor_id == mentor_id
    ).order_by(models.Connection.created_at.desc()).all()
