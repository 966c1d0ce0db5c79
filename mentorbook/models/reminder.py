from sqlalchemy import Column, Integer, String, ForeignKey, TIMESTAMP, UniqueConstraint, func
from mentorbook.database import Base


class SentReminder(Base):
    """Ledger of reminders already delivered, keyed by (session, lead time)."""

    __tablename__ = "sent_reminders"
    __table_args__ = (
        UniqueConstraint("session_id", "reminder_type", name="uq_sent_reminder_session_type"),
    )

    id = Column(Integer, primary_key=True, index=True)
    session_id = Column(
        Integer, ForeignKey("mentorship_sessions.id", ondelete="CASCADE"), nullable=False, index=True
    )
    reminder_type = Column(String(8), nullable=False)
    sent_at = Column(TIMESTAMP(timezone=True), server_default=func.now(), nullable=False)
