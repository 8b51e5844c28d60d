from dataclasses import dataclass, field
from typing import Dict, List, Optional, Tuple, Any
from datetime import datetime

from ..slot_ledger import SlotLedger


@dataclass
class DoctorDto:
    id: int
    name: str
    email: str
    image: Optional[str]
    speciality: str
    degree: str
    experience: str
    about: str
    available: bool
    fees: float
    address: Dict[str, str]
    date: datetime
    slots_booked: SlotLedger = field(default_factory=dict)
    password_hash: str = field(default="", repr=False)

    def public(self) -> Dict[str, Any]:
        return {
            "id": self.id,
            "name": self.name,
            "email": self.email,
            "image": self.image,
            "speciality": self.speciality,
            "degree": self.degree,
            "experience": self.experience,
            "about": self.about,
            "available": self.available,
            "fees": self.fees,
            "address": dict(self.address or {}),
            "date": self.date.isoformat() if self.date else None,
            "slots_booked": {d: list(t) for d, t in (self.slots_booked or {}).items()},
        }


@dataclass
class NewDoctor:
    name: str
    email: str
    password_hash: str
    speciality: str
    degree: str
    experience: str
    about: str
    fees: float
    address: Dict[str, str]
    image: Optional[str] = None


class DoctorRepository:
    def get(self, doctor_id: int) -> Optional[DoctorDto]:
        ...

    def get_by_email(self, email: str) -> Optional[DoctorDto]:
        ...

    def list_all(self, speciality: Optional[str] = None, available: Optional[bool] = None) -> List[DoctorDto]:
        ...

    def create(self, doctor: NewDoctor) -> DoctorDto:
        ...

    def update_profile(self, doctor_id: int, fees: Optional[float], address: Optional[Dict[str, str]], available: Optional[bool]) -> None:
        ...

    def set_available(self, doctor_id: int, available: bool) -> None:
        ...

    def get_ledger(self, doctor_id: int) -> Optional[Tuple[SlotLedger, int]]:
        """Return the ledger together with the version it was read at."""
        ...

    def compare_and_set_ledger(self, doctor_id: int, expected_version: int, ledger: SlotLedger) -> bool:
        """Write ledger only if the stored version still equals expected_version."""
        ...

    def count(self) -> int:
        ...
