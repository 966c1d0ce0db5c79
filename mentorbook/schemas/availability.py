from pydantic import BaseModel
from typing import List, Optional

# ======================
# AVAILABILITY REQUEST MODELS
# ======================

# Fields are optional so the service can answer with its own 400 codes.
class AvailabilityCreate(BaseModel):
    day_of_week: Optional[int] = None
    start_time: Optional[str] = None  # HH:MM, 24h
    end_time: Optional[str] = None
    timezone: Optional[str] = None


class AvailabilityReplace(BaseModel):
    slots: List[AvailabilityCreate] = []


class AvailabilityToggle(BaseModel):
    is_active: Optional[bool] = None
