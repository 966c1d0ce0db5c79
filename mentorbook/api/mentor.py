# mentorbook/api/mentor.py

from fastapi import APIRouter, Depends
from sqlalchemy.orm import Session

from mentorbook import models
from mentorbook.crud import user as user_crud
from mentorbook.database import get_db
from mentorbook.exceptions import NotFoundError
from mentorbook.schemas.mentor import MentorProfileUpdate
from mentorbook.services.availability_service import list_availability
from mentorbook.utils.security import get_current_user

router = APIRouter(prefix="/mentors", tags=["mentors"])


def _mentor_to_dict(mentor: models.Mentor) -> dict:
    return {
        "id": mentor.id,
        "user_id": mentor.user_id,
        "name": mentor.user.name if mentor.user else None,
        "bio": mentor.bio,
        "current_role": mentor.current_role,
        "company": mentor.company,
        "is_available": mentor.is_available,
        "is_verified": mentor.is_verified,
        "session_count": mentor.session_count,
        "average_rating": float(mentor.average_rating) if mentor.average_rating is not None else None,
    }


@router.get("")
def list_mentors(db: Session = Depends(get_db)):
    """Verified mentors currently taking sessions."""
    return {"mentors": [_mentor_to_dict(m) for m in user_crud.list_available_mentors(db)]}


@router.post("/profile")
def upsert_profile(
    payload: MentorProfileUpdate,
    current_user: models.User = Depends(get_current_user),
    db: Session = Depends(get_db),
):
    """Create or update the caller's mentor profile."""
    mentor = user_crud.get_mentor_by_user_id(db, current_user.id)
    if mentor is None:
        mentor = models.Mentor(user_id=current_user.id)
        db.add(mentor)

    for field, value in payload.model_dump(exclude_unset=True).items():
        setattr(mentor, field, value)

    db.commit()
    db.refresh(mentor)
    return _mentor_to_dict(mentor)


@router.get("/{mentor_id}")
def get_mentor(mentor_id: int, db: Session = Depends(get_db)):
    mentor = user_crud.get_mentor(db, mentor_id)
    if mentor is None:
        raise NotFoundError("Mentor not found", code="mentor_not_found").to_http_exception()
    body = _mentor_to_dict(mentor)
    body["availability"] = list_availability(db, mentor.id)
    return body
