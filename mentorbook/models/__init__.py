# mentorbook/models/__init__.py
# Import models in dependency order
from .user import User, SubscriptionTier
from .mentor import Mentor, AvailabilitySlotTemplate
from .connection import Connection, ConnectionStatus
from .session import Session, SessionStatus
from .reminder import SentReminder

__all__ = [
    "User",
    "SubscriptionTier",
    "Mentor",
    "AvailabilitySlotTemplate",
    "Connection",
    "ConnectionStatus",
    "Session",
    "SessionStatus",
    "SentReminder",
]
