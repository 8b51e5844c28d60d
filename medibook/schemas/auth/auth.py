# medibook/schemas/auth/auth.py
from pydantic import BaseModel, Field
from typing import Optional

# Fields are optional so missing values reach the service checks and get
# the same messages as malformed ones.

class RegisterRequest(BaseModel):
    name: Optional[str] = Field(None, max_length=100, description="Full name")
    email: Optional[str] = Field(None, description="Login email")
    password: Optional[str] = Field(None, description="Plain password, at least 6 characters")

class LoginRequest(BaseModel):
    email: Optional[str] = None
    password: Optional[str] = None
