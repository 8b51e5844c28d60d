# medibook/schemas/appointments/appointment.py
from pydantic import BaseModel, Field
from typing import Optional

class BookAppointmentRequest(BaseModel):
    doctor_id: Optional[int] = None
    slot_date: Optional[str] = Field(None, max_length=32, description="Slot date label, e.g. 2024-01-01")
    slot_time: Optional[str] = Field(None, max_length=16, description="Slot time label, e.g. 10:00")

class AppointmentActionRequest(BaseModel):
    appointment_id: Optional[int] = None
