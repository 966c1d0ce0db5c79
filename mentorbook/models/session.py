# mentorbook/models/session.py
import enum

from sqlalchemy import Column, Integer, String, Text, ForeignKey, TIMESTAMP, func
from sqlalchemy.orm import relationship
from mentorbook.database import Base


class SessionStatus(str, enum.Enum):
    SCHEDULED = "scheduled"
    COMPLETED = "completed"
    CANCELLED = "cancelled"
    NO_SHOW = "no_show"


# Statuses that still occupy the mentor's calendar.
BLOCKING_STATUSES = (SessionStatus.SCHEDULED.value, SessionStatus.COMPLETED.value)


class Session(Base):
    __tablename__ = "mentorship_sessions"

    id = Column(Integer, primary_key=True, index=True)
    mentor_id = Column(Integer, ForeignKey("mentors.id", ondelete="CASCADE"), nullable=False, index=True)
    student_id = Column(Integer, ForeignKey("users.id", ondelete="CASCADE"), nullable=False, index=True)
    scheduled_at = Column(TIMESTAMP(timezone=True), nullable=False, index=True)
    duration_minutes = Column(Integer, nullable=False, default=60)
    status = Column(String(20), nullable=False, default=SessionStatus.SCHEDULED.value, index=True)
    topic = Column(String(255))
    meeting_url = Column(Text)
    notes = Column(Text)
    student_notes = Column(Text)
    mentor_feedback = Column(Text)
    rating = Column(Integer)
    version = Column(Integer, nullable=False, default=1)
    created_at = Column(TIMESTAMP(timezone=True), server_default=func.now(), nullable=False)
    updated_at = Column(TIMESTAMP(timezone=True), server_default=func.now(), onupdate=func.now())

    __mapper_args__ = {"version_id_col": version}

    mentor = relationship("Mentor", back_populates="sessions")
    student = relationship("User", foreign_keys=[student_id], back_populates="student_sessions")
