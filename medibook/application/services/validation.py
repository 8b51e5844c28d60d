import json
from datetime import datetime
from typing import Any, Dict, Optional

from email_validator import validate_email, EmailNotValidError
from fastapi import HTTPException

from ...config import settings


def require_fields(message: str = "All fields are required", **values: Any) -> None:
    for value in values.values():
        if value is None or (isinstance(value, str) and not value.strip()):
            raise HTTPException(status_code=400, detail=message)


def normalize_email(email: str) -> str:
    try:
        return validate_email(email.strip(), check_deliverability=False).normalized
    except EmailNotValidError:
        raise HTTPException(status_code=400, detail="Email is not valid")


def check_password(password: str) -> None:
    if len(password) < settings.MIN_PASSWORD_LENGTH:
        raise HTTPException(
            status_code=400,
            detail=f"Password must be at least {settings.MIN_PASSWORD_LENGTH} characters",
        )


def parse_address(raw: Optional[Any]) -> Optional[Dict[str, str]]:
    """Accept an address as a dict or a JSON object string with line1/line2."""
    if raw is None or raw == "":
        return None
    if isinstance(raw, str):
        try:
            raw = json.loads(raw)
        except ValueError:
            raise HTTPException(status_code=400, detail="Invalid address")
    if not isinstance(raw, dict):
        raise HTTPException(status_code=400, detail="Invalid address")
    return {
        "line1": str(raw.get("line1", "") or ""),
        "line2": str(raw.get("line2", "") or ""),
    }


def check_date_of_birth(dob: Optional[str]) -> Optional[str]:
    if dob is None or dob == "":
        return None
    try:
        parsed = datetime.strptime(dob, "%Y-%m-%d")
    except ValueError:
        raise HTTPException(status_code=400, detail="Invalid dob format. Use YYYY-MM-DD")
    if parsed > datetime.now():
        raise HTTPException(status_code=400, detail="Date of birth cannot be in the future")
    return dob
