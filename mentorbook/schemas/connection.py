from pydantic import BaseModel, Field
from typing import Optional


class ConnectionCreate(BaseModel):
    mentor_id: int
    message: Optional[str] = Field(None, max_length=2000)


class ConnectionUpdate(BaseModel):
    status: str  # "accepted", "declined", "ended"
    response: Optional[str] = Field(None, max_length=2000)
