from typing import List, Optional

from sqlalchemy.orm import Session

from mentorbook import models
from mentorbook.utils.security import get_password_hash


def create_user(db: Session, *, name: str, email: str, password: str, subscription_tier: str = "free"):
    db_user = models.User(
        name=name,
        email=email,
        password_hash=get_password_hash(password),
        role="student",
        subscription_tier=subscription_tier,
        is_active=True,
    )
    db.add(db_user)
    db.flush()
    return db_user


def get_user_by_email(db: Session, email: str):
    return db.query(models.User).filter(models.User.email == email).first()


def get_mentor(db: Session, mentor_id: int, *, for_update: bool = False) -> Optional[models.Mentor]:
    query = db.query(models.Mentor).filter(models.Mentor.id == mentor_id)
    if for_update:
        query = query.with_for_update()
    return query.first()


def get_mentor_by_user_id(db: Session, user_id: int) -> Optional[models.Mentor]:
    return db.query(models.Mentor).filter(models.Mentor.user_id == user_id).first()


def list_available_mentors(db: Session, *, limit: int = 50) -> List[models.Mentor]:
    return db.query(models.Mentor).filter(
        models.Mentor.is_verified.is_(True),
        models.Mentor.is_available.is_(True),
    ).order_by(models.Mentor.session_count.desc(), models.Mentor.id.asc()).limit(limit).all()
