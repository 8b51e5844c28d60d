# medibook/db/models/users/user.py
from typing import Optional, Dict
from sqlmodel import SQLModel, Field
from sqlalchemy import Column, JSON
from datetime import datetime, timezone
import uuid

class User(SQLModel, table=True):
    __tablename__ = "users"
    id: str = Field(default_factory=lambda: str(uuid.uuid4()), primary_key=True)
    name: str = Field(max_length=100)
    email: str = Field(max_length=255, unique=True, index=True)
    password: str = Field(max_length=255)
    image: Optional[str] = Field(max_length=255, default=None)
    phone: Optional[str] = Field(max_length=20, default=None)
    address: Dict[str, str] = Field(default_factory=lambda: {"line1": "", "line2": ""}, sa_column=Column(JSON))
    gender: Optional[str] = Field(max_length=20, default=None)
    dob: Optional[str] = Field(max_length=10, default=None)
    created_at: datetime = Field(default_factory=lambda: datetime.now(timezone.utc))
    updated_at: datetime = Field(default_factory=lambda: datetime.now(timezone.utc))
