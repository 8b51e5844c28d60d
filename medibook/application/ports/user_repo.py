from typing import Protocol, Optional, Dict, Any
from datetime import datetime

class DuplicateEmail(Exception):
    pass

class UserDto:
    def __init__(self, id: str, name: str, email: str, password_hash: str, image: Optional[str],
                 phone: Optional[str], address: Dict[str, str], gender: Optional[str], dob: Optional[str],
                 created_at: datetime, updated_at: datetime):
        self.id = id
        self.name = name
        self.email = email
        self.password_hash = password_hash
        self.image = image
        self.phone = phone
        self.address = address
        self.gender = gender
        self.dob = dob
        self.created_at = created_at
        self.updated_at = updated_at

    def public(self) -> Dict[str, Any]:
        return {
            "id": self.id,
            "name": self.name,
            "email": self.email,
            "image": self.image,
            "phone": self.phone,
            "address": dict(self.address or {}),
            "gender": self.gender,
            "dob": self.dob,
        }

class UserRepository(Protocol):
    def get_by_email(self, email: str) -> Optional[UserDto]:
        ...

    def get_by_id(self, user_id: str) -> Optional[UserDto]:
        ...

    def create(self, name: str, email: str, password_hash: str) -> UserDto:
        ...

    def update_profile_fields(self, user_id: str, fields: Dict[str, Any]) -> None:
        ...

    def set_image(self, user_id: str, image_url: Optional[str]) -> None:
        ...

    def count(self) -> int:
        ...
