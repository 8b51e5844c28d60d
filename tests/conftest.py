import os
import tempfile
import threading
from datetime import datetime, timezone
from typing import Dict, List, Optional, Tuple

# Configure the app before anything imports medibook.config
os.environ.setdefault("DATABASE_URL", "sqlite://")
os.environ.setdefault("JWT_SECRET_KEY", "test-secret-key")
os.environ.setdefault("ADMIN_EMAIL", "admin@clinic.com")
os.environ.setdefault("ADMIN_PASSWORD", "admin-pass")
os.environ.setdefault("RATE_LIMIT_PER_MINUTE", "100000")
os.environ.setdefault("UPLOAD_DIR", tempfile.mkdtemp(prefix="medibook-uploads-"))
os.environ.setdefault("LOG_LEVEL", "WARNING")

import pytest

from medibook.application.ports.user_repo import UserDto, DuplicateEmail
from medibook.application.ports.doctor_repo import DoctorDto, NewDoctor
from medibook.application.ports.appointments_repo import AppointmentDto
from medibook.application.ports.payment_gateway import OrderDto
from medibook.application.slot_ledger import copy_ledger
from medibook.utils import hash_password


class FakeUserRepo:
    def __init__(self):
        self.users: Dict[str, UserDto] = {}
        self._id = 1

    def get_by_email(self, email: str) -> Optional[UserDto]:
        return next((u for u in self.users.values() if u.email == email), None)

    def get_by_id(self, user_id: str) -> Optional[UserDto]:
        return self.users.get(user_id)

    def create(self, name: str, email: str, password_hash: str) -> UserDto:
        if self.get_by_email(email):
            raise DuplicateEmail(email)
        now = datetime.now(timezone.utc)
        user = UserDto(
            id=f"u{self._id}", name=name, email=email, password_hash=password_hash,
            image=None, phone=None, address={"line1": "", "line2": ""}, gender=None, dob=None,
            created_at=now, updated_at=now,
        )
        self._id += 1
        self.users[user.id] = user
        return user

    def update_profile_fields(self, user_id: str, fields):
        user = self.users[user_id]
        for name, value in fields.items():
            setattr(user, name, value)

    def set_image(self, user_id: str, image_url):
        self.users[user_id].image = image_url

    def count(self) -> int:
        return len(self.users)


class FakeDoctorRepo:
    def __init__(self):
        self.doctors: Dict[int, DoctorDto] = {}
        self.versions: Dict[int, int] = {}
        self.cas_calls = 0
        self.before_cas = None
        self._lock = threading.Lock()
        self._id = 1

    def add(self, name: str = "Dr. Rao", fees: float = 50.0, available: bool = True, email: str = None) -> DoctorDto:
        doctor = DoctorDto(
            id=self._id, name=name, email=email or f"doc{self._id}@clinic.com", image=None,
            speciality="General physician", degree="MBBS", experience="4 Years", about="About",
            available=available, fees=fees, address={"line1": "17th Cross", "line2": "Richmond"},
            date=datetime.now(timezone.utc), slots_booked={}, password_hash=hash_password("doctor-pass"),
        )
        self.doctors[doctor.id] = doctor
        self.versions[doctor.id] = 0
        self._id += 1
        return doctor

    def get(self, doctor_id: int) -> Optional[DoctorDto]:
        return self.doctors.get(doctor_id)

    def get_by_email(self, email: str) -> Optional[DoctorDto]:
        return next((d for d in self.doctors.values() if d.email == email), None)

    def list_all(self, speciality=None, available=None) -> List[DoctorDto]:
        rows = list(self.doctors.values())
        if available is not None:
            rows = [d for d in rows if d.available == available]
        return rows

    def create(self, doctor: NewDoctor) -> DoctorDto:
        created = self.add(name=doctor.name, fees=doctor.fees, email=doctor.email)
        created.password_hash = doctor.password_hash
        created.address = dict(doctor.address)
        created.image = doctor.image
        return created

    def update_profile(self, doctor_id, fees, address, available):
        d = self.doctors[doctor_id]
        if fees is not None:
            d.fees = fees
        if address is not None:
            d.address = address
        if available is not None:
            d.available = available

    def set_available(self, doctor_id: int, available: bool):
        self.doctors[doctor_id].available = available

    def get_ledger(self, doctor_id: int) -> Optional[Tuple[dict, int]]:
        with self._lock:
            d = self.doctors.get(doctor_id)
            if not d:
                return None
            return copy_ledger(d.slots_booked), self.versions[doctor_id]

    def compare_and_set_ledger(self, doctor_id: int, expected_version: int, ledger) -> bool:
        if self.before_cas:
            self.before_cas(doctor_id)
        with self._lock:
            self.cas_calls += 1
            if self.versions[doctor_id] != expected_version:
                return False
            self.doctors[doctor_id].slots_booked = copy_ledger(ledger)
            self.versions[doctor_id] = expected_version + 1
            return True

    def count(self) -> int:
        return len(self.doctors)


class FakeApptRepo:
    def __init__(self):
        self._id = 1
        self.appts: List[AppointmentDto] = []
        self.fail_create = False
        self.on_create = None

    def create(self, user_id, doctor_id, slot_date, slot_time, user_data, doc_data, amount) -> AppointmentDto:
        if self.on_create:
            self.on_create()
        if self.fail_create:
            raise RuntimeError("insert failed")
        a = AppointmentDto(
            id=self._id, user_id=user_id, doctor_id=doctor_id, slot_date=slot_date, slot_time=slot_time,
            user_data=user_data.as_dict(), doc_data=doc_data.as_dict(), amount=amount,
            date=datetime.now(timezone.utc), cancelled=False, payment=False, is_completed=False,
        )
        self.appts.append(a)
        self._id += 1
        return a

    def get_by_id(self, appointment_id: int) -> Optional[AppointmentDto]:
        return next((a for a in self.appts if a.id == appointment_id), None)

    def list_for_user(self, user_id: str) -> List[AppointmentDto]:
        return [a for a in self.appts if a.user_id == user_id]

    def list_for_doctor(self, doctor_id: int) -> List[AppointmentDto]:
        return [a for a in self.appts if a.doctor_id == doctor_id]

    def list_all(self) -> List[AppointmentDto]:
        return list(self.appts)

    def set_cancelled(self, appointment_id: int, cancelled: bool) -> bool:
        a = self.get_by_id(appointment_id)
        if a is None or a.cancelled == cancelled:
            return False
        a.cancelled = cancelled
        return True

    def mark_completed(self, appointment_id: int):
        self.get_by_id(appointment_id).is_completed = True

    def mark_paid(self, appointment_id: int):
        self.get_by_id(appointment_id).payment = True

    def count(self) -> int:
        return len(self.appts)


class FakeAudit:
    def __init__(self):
        self.entries = []

    def log(self, action, email=None, subject_id=None, success=True, details=None):
        self.entries.append((action, email, subject_id, success))


class FakeGateway:
    def __init__(self, status: str = "created"):
        self.status = status
        self.orders: Dict[str, OrderDto] = {}

    def create_order(self, amount: int, currency: str, receipt: str) -> OrderDto:
        order = OrderDto(id=f"order_{len(self.orders) + 1}", amount=amount, currency=currency, receipt=receipt, status="created")
        self.orders[order.id] = order
        return order

    def fetch_order(self, order_id: str) -> OrderDto:
        order = self.orders[order_id]
        return OrderDto(id=order.id, amount=order.amount, currency=order.currency, receipt=order.receipt, status=self.status)


@pytest.fixture
def users():
    return FakeUserRepo()


@pytest.fixture
def doctors():
    return FakeDoctorRepo()


@pytest.fixture
def appts():
    return FakeApptRepo()


@pytest.fixture
def audit():
    return FakeAudit()


@pytest.fixture
def gateway():
    return FakeGateway()
