from pydantic import BaseModel, Field
from typing import Optional


class MentorProfileUpdate(BaseModel):
    bio: Optional[str] = None
    current_role: Optional[str] = Field(None, max_length=255)
    company: Optional[str] = Field(None, max_length=255)
    is_available: Optional[bool] = None
