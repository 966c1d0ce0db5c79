from pydantic import BaseModel, Field
from typing import Optional
from datetime import datetime

# ======================
# SESSION REQUEST MODELS
# ======================

class SessionCreate(BaseModel):
    mentor_id: int
    scheduled_at: datetime  # naive values are read as UTC
    duration_minutes: int = 60
    topic: Optional[str] = Field(None, max_length=255)


# ======================
# SESSION UPDATE MODELS
# ======================

class SessionUpdate(BaseModel):
    status: Optional[str] = None  # "completed", "cancelled", "no_show"
    notes: Optional[str] = None
    student_notes: Optional[str] = None
    mentor_feedback: Optional[str] = None
    rating: Optional[int] = None
    expected_version: Optional[int] = None
