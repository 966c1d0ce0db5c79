import enum

from sqlalchemy import Column, Integer, String, Boolean, TIMESTAMP, func
from sqlalchemy.orm import relationship
from mentorbook.database import Base


class SubscriptionTier(str, enum.Enum):
    FREE = "free"
    PREMIUM = "premium"
    ENTERPRISE = "enterprise"


# ---------------- USER (AUTH TABLE) ----------------
class User(Base):
    __tablename__ = "users"

    id = Column(Integer, primary_key=True, index=True)
    name = Column(String(100), nullable=False)
    email = Column(String(255), unique=True, index=True, nullable=False)
    password_hash = Column(String(255), nullable=False)
    role = Column(String(20), nullable=False, default="student")
    subscription_tier = Column(String(20), nullable=False, default=SubscriptionTier.FREE.value)
    is_active = Column(Boolean, default=True)
    created_at = Column(TIMESTAMP(timezone=True), server_default=func.now())
    updated_at = Column(TIMESTAMP(timezone=True), onupdate=func.now())

    mentor = relationship("Mentor", back_populates="user", uselist=False, cascade="all, delete-orphan")
    student_sessions = relationship("Session", foreign_keys="Session.student_id", back_populates="student")
    student_connections = relationship(
        "Connection", foreign_keys="Connection.student_id", back_populates="student"
    )
