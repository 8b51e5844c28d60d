# medibook/schemas/doctors/doctor.py
from pydantic import BaseModel, Field
from typing import Dict, Optional

class DoctorProfileUpdateRequest(BaseModel):
    fees: Optional[float] = Field(None, ge=0)
    address: Optional[Dict[str, str]] = None
    available: Optional[bool] = None

class ChangeAvailabilityRequest(BaseModel):
    doctor_id: Optional[int] = None
