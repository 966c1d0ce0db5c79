from pydantic import BaseModel, EmailStr, Field
from typing import Optional

# ======================
# AUTH SCHEMAS
# ======================

class RegisterRequest(BaseModel):
    name: str = Field(..., min_length=1, max_length=100)
    email: EmailStr
    # Bcrypt has a 72-byte limit.
    password: str = Field(..., min_length=6, max_length=72)
    subscription_tier: Optional[str] = "free"


class LoginRequest(BaseModel):
    email: EmailStr
    password: str


class Token(BaseModel):
    access_token: str
    token_type: str
    user_id: int
    is_mentor: bool
