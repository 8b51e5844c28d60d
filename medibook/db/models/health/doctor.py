# medibook/db/models/health/doctor.py
from typing import Optional, Dict, List
from sqlmodel import SQLModel, Field
from sqlalchemy import Column, JSON
from datetime import datetime, timezone

class Doctor(SQLModel, table=True):
    __tablename__ = "doctors"
    id: Optional[int] = Field(default=None, primary_key=True)
    name: str
    email: str = Field(max_length=255, unique=True, index=True)
    password: str
    image: Optional[str] = None
    speciality: str
    degree: str
    experience: str
    about: str
    available: bool = Field(default=True)
    fees: float
    address: Dict[str, str] = Field(default_factory=dict, sa_column=Column(JSON))
    date: datetime = Field(default_factory=lambda: datetime.now(timezone.utc))

    # date -> booked times; only written through the versioned ledger update
    slots_booked: Dict[str, List[str]] = Field(default_factory=dict, sa_column=Column(JSON))
    slots_version: int = Field(default=0)
