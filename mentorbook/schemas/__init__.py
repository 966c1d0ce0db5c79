# mentorbook/schemas/__init__.py

# Auth schemas
from .auth import RegisterRequest, LoginRequest, Token

# Mentor and availability schemas
from .mentor import MentorProfileUpdate
from .availability import AvailabilityCreate, AvailabilityReplace, AvailabilityToggle

# Booking schemas
from .session import SessionCreate, SessionUpdate
from .connection import ConnectionCreate, ConnectionUpdate

__all__ = [
    "RegisterRequest",
    "LoginRequest",
    "Token",
    "MentorProfileUpdate",
    "AvailabilityCreate",
    "AvailabilityReplace",
    "AvailabilityToggle",
    "SessionCreate",
    "SessionUpdate",
    "ConnectionCreate",
    "ConnectionUpdate",
]
