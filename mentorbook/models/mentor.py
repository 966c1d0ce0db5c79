from sqlalchemy import Column, Integer, String, Boolean, ForeignKey, Numeric, Text, TIMESTAMP, func
from sqlalchemy.orm import relationship
from mentorbook.database import Base


# ---------------- MENTOR PROFILE ----------------
class Mentor(Base):
    __tablename__ = "mentors"

    id = Column(Integer, primary_key=True, index=True)
    user_id = Column(Integer, ForeignKey("users.id", ondelete="CASCADE"), unique=True, nullable=False)
    bio = Column(Text)
    current_role = Column(String(255))
    company = Column(String(255))
    is_available = Column(Boolean, default=True, nullable=False)
    is_verified = Column(Boolean, default=False, nullable=False)
    session_count = Column(Integer, default=0, nullable=False)
    average_rating = Column(Numeric(3, 2))
    created_at = Column(TIMESTAMP(timezone=True), server_default=func.now())
    updated_at = Column(TIMESTAMP(timezone=True), server_default=func.now(), onupdate=func.now())

    user = relationship("User", back_populates="mentor")
    availability = relationship(
        "AvailabilitySlotTemplate", back_populates="mentor", cascade="all, delete-orphan"
    )
    sessions = relationship("Session", back_populates="mentor")
    connections = relationship("Connection", back_populates="mentor")


# ---------------- WEEKLY AVAILABILITY ----------------
class AvailabilitySlotTemplate(Base):
    __tablename__ = "mentor_availability"

    id = Column(Integer, primary_key=True, index=True)
    mentor_id = Column(Integer, ForeignKey("mentors.id", ondelete="CASCADE"), nullable=False, index=True)
    day_of_week = Column(Integer, nullable=False)  # 0 = Sunday
    start_time = Column(String(5), nullable=False)  # HH:MM
    end_time = Column(String(5), nullable=False)
    timezone = Column(String(64), nullable=False)
    is_active = Column(Boolean, default=True, nullable=False)
    created_at = Column(TIMESTAMP(timezone=True), server_default=func.now())

    mentor = relationship("Mentor", back_populates="availability")
