# medibook/db/models/health/appointment.py
from typing import Optional, Dict, Any
from sqlmodel import SQLModel, Field
from sqlalchemy import Column, JSON
from datetime import datetime, timezone

class Appointment(SQLModel, table=True):
    __tablename__ = "appointments"
    id: Optional[int] = Field(default=None, primary_key=True)
    user_id: str = Field(foreign_key="users.id", index=True)
    doctor_id: int = Field(foreign_key="doctors.id", index=True)
    slot_date: str
    slot_time: str
    user_data: Dict[str, Any] = Field(default_factory=dict, sa_column=Column(JSON))
    doc_data: Dict[str, Any] = Field(default_factory=dict, sa_column=Column(JSON))
    amount: float
    date: datetime = Field(default_factory=lambda: datetime.now(timezone.utc))
    cancelled: bool = Field(default=False)
    payment: bool = Field(default=False)
    is_completed: bool = Field(default=False)
