import logging
from typing import Dict, List, Optional, Tuple
from sqlalchemy import func, update
from sqlalchemy.exc import IntegrityError
from sqlmodel import Session, select

from .....db.models import Doctor
from .....application.ports.doctor_repo import DoctorRepository, DoctorDto, NewDoctor
from .....application.ports.user_repo import DuplicateEmail
from .....application.slot_ledger import SlotLedger, copy_ledger

logger = logging.getLogger(__name__)


class SqlDoctorRepository(DoctorRepository):
    def __init__(self, session: Session):
        self.session = session

    def _to_dto(self, d: Doctor) -> DoctorDto:
        return DoctorDto(
            id=d.id,
            name=d.name,
            email=d.email,
            image=d.image,
            speciality=d.speciality,
            degree=d.degree,
            experience=d.experience,
            about=d.about,
            available=bool(d.available),
            fees=d.fees,
            address=dict(d.address or {}),
            date=d.date,
            slots_booked=copy_ledger(d.slots_booked),
            password_hash=d.password,
        )

    def _get(self, doctor_id: int, fresh: bool = False) -> Optional[Doctor]:
        stmt = select(Doctor).where(Doctor.id == doctor_id)
        if fresh:
            # Ignore whatever the identity map holds for this row
            stmt = stmt.execution_options(populate_existing=True)
        return self.session.exec(stmt).first()

    def get(self, doctor_id: int) -> Optional[DoctorDto]:
        d = self._get(doctor_id)
        return self._to_dto(d) if d else None

    def get_by_email(self, email: str) -> Optional[DoctorDto]:
        d = self.session.exec(select(Doctor).where(Doctor.email == email)).first()
        return self._to_dto(d) if d else None

    def list_all(self, speciality: Optional[str] = None, available: Optional[bool] = None) -> List[DoctorDto]:
        query = select(Doctor)
        if speciality:
            query = query.where(Doctor.speciality.ilike(f"%{speciality}%"))
        if available is not None:
            query = query.where(Doctor.available == available)
        rows = self.session.exec(query.order_by(Doctor.date.desc(), Doctor.id.desc())).all()
        return [self._to_dto(d) for d in rows]

    def create(self, doctor: NewDoctor) -> DoctorDto:
        d = Doctor(
            name=doctor.name,
            email=doctor.email,
            password=doctor.password_hash,
            image=doctor.image,
            speciality=doctor.speciality,
            degree=doctor.degree,
            experience=doctor.experience,
            about=doctor.about,
            fees=doctor.fees,
            address=dict(doctor.address),
        )
        self.session.add(d)
        try:
            self.session.commit()
        except IntegrityError:
            self.session.rollback()
            raise DuplicateEmail(doctor.email)
        self.session.refresh(d)
        return self._to_dto(d)

    def update_profile(self, doctor_id: int, fees: Optional[float], address: Optional[Dict[str, str]], available: Optional[bool]) -> None:
        d = self._get(doctor_id)
        if not d:
            return
        if fees is not None:
            d.fees = fees
        if address is not None:
            d.address = dict(address)
        if available is not None:
            d.available = available
        self.session.add(d)
        self.session.commit()

    def set_available(self, doctor_id: int, available: bool) -> None:
        d = self._get(doctor_id)
        if not d:
            return
        d.available = available
        self.session.add(d)
        self.session.commit()

    def get_ledger(self, doctor_id: int) -> Optional[Tuple[SlotLedger, int]]:
        d = self._get(doctor_id, fresh=True)
        if not d:
            return None
        return copy_ledger(d.slots_booked), d.slots_version

    def compare_and_set_ledger(self, doctor_id: int, expected_version: int, ledger: SlotLedger) -> bool:
        stmt = (
            update(Doctor)
            .where(Doctor.id == doctor_id)
            .where(Doctor.slots_version == expected_version)
            .values(slots_booked=copy_ledger(ledger), slots_version=expected_version + 1)
            .execution_options(synchronize_session=False)
        )
        result = self.session.exec(stmt)
        if result.rowcount != 1:
            self.session.rollback()
            logger.info(f"Ledger for doctor {doctor_id} changed since version {expected_version}")
            return False
        self.session.commit()
        return True

    def count(self) -> int:
        return self.session.exec(select(func.count()).select_from(Doctor)).one()
