import enum

from sqlalchemy import Column, Integer, String, Text, ForeignKey, TIMESTAMP, UniqueConstraint, func
from sqlalchemy.orm import relationship
from mentorbook.database import Base


class ConnectionStatus(str, enum.Enum):
    PENDING = "pending"
    ACCEPTED = "accepted"
    DECLINED = "declined"
    ENDED = "ended"


class Connection(Base):
    __tablename__ = "mentor_connections"
    __table_args__ = (
        UniqueConstraint("mentor_id", "student_id", name="uq_connection_mentor_student"),
    )

    id = Column(Integer, primary_key=True, index=True)
    mentor_id = Column(Integer, ForeignKey("mentors.id", ondelete="CASCADE"), nullable=False, index=True)
    student_id = Column(Integer, ForeignKey("users.id", ondelete="CASCADE"), nullable=False, index=True)
    status = Column(String(20), nullable=False, default=ConnectionStatus.PENDING.value)
    message = Column(Text)
    mentor_response = Column(Text)
    created_at = Column(TIMESTAMP(timezone=True), server_default=func.now())
    updated_at = Column(TIMESTAMP(timezone=True), server_default=func.now(), onupdate=func.now())

    mentor = relationship("Mentor", back_populates="connections")
    student = relationship("User", foreign_keys=[student_id], back_populates="student_connections")
