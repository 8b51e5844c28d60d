from dataclasses import dataclass, asdict
from typing import List, Optional, Dict, Any
from datetime import datetime


@dataclass(frozen=True)
class UserSnapshot:
    id: str
    name: str
    email: str
    image: Optional[str]
    phone: Optional[str]
    gender: Optional[str]
    dob: Optional[str]

    def as_dict(self) -> Dict[str, Any]:
        return asdict(self)


@dataclass(frozen=True)
class DoctorSnapshot:
    id: int
    name: str
    email: str
    image: Optional[str]
    speciality: str
    degree: str
    experience: str
    about: str
    fees: float
    address_line1: str
    address_line2: str

    def as_dict(self) -> Dict[str, Any]:
        return asdict(self)


@dataclass
class AppointmentDto:
    id: int
    user_id: str
    doctor_id: int
    slot_date: str
    slot_time: str
    user_data: Dict[str, Any]
    doc_data: Dict[str, Any]
    amount: float
    date: datetime
    cancelled: bool
    payment: bool
    is_completed: bool

    def public(self) -> Dict[str, Any]:
        out = asdict(self)
        out["date"] = self.date.isoformat() if self.date else None
        return out


class AppointmentsRepository:
    def create(self, user_id: str, doctor_id: int, slot_date: str, slot_time: str, user_data: UserSnapshot, doc_data: DoctorSnapshot, amount: float) -> AppointmentDto:
        ...

    def get_by_id(self, appointment_id: int) -> Optional[AppointmentDto]:
        ...

    def list_for_user(self, user_id: str) -> List[AppointmentDto]:
        ...

    def list_for_doctor(self, doctor_id: int) -> List[AppointmentDto]:
        ...

    def list_all(self) -> List[AppointmentDto]:
        ...

    def set_cancelled(self, appointment_id: int, cancelled: bool) -> bool:
        """Flip the cancelled flag to the given value.

        Conditional on the stored flag being the opposite; returns False when
        another request already made the same change.
        """
        ...

    def mark_completed(self, appointment_id: int) -> None:
        ...

    def mark_paid(self, appointment_id: int) -> None:
        ...

    def count(self) -> int:
        ...
