from typing import List, Optional
from sqlalchemy import func, update
from sqlmodel import Session, select

from .....db.models import Appointment
from .....application.ports.appointments_repo import (
    AppointmentsRepository,
    AppointmentDto,
    UserSnapshot,
    DoctorSnapshot,
)


class SqlAppointmentsRepository(AppointmentsRepository):
    def __init__(self, session: Session):
        self.session = session

    def _appt_to_dto(self, a: Appointment) -> AppointmentDto:
        return AppointmentDto(
            id=a.id,
            user_id=a.user_id,
            doctor_id=a.doctor_id,
            slot_date=a.slot_date,
            slot_time=a.slot_time,
            user_data=dict(a.user_data or {}),
            doc_data=dict(a.doc_data or {}),
            amount=a.amount,
            date=a.date,
            cancelled=bool(a.cancelled),
            payment=bool(a.payment),
            is_completed=bool(a.is_completed),
        )

    def _get(self, appointment_id: int) -> Optional[Appointment]:
        return self.session.exec(select(Appointment).where(Appointment.id == appointment_id)).first()

    def _set_flag(self, appointment_id: int, flag: str) -> None:
        a = self._get(appointment_id)
        if not a:
            return
        setattr(a, flag, True)
        self.session.add(a)
        self.session.commit()

    def create(self, user_id: str, doctor_id: int, slot_date: str, slot_time: str, user_data: UserSnapshot, doc_data: DoctorSnapshot, amount: float) -> AppointmentDto:
        appt = Appointment(
            user_id=user_id,
            doctor_id=doctor_id,
            slot_date=slot_date,
            slot_time=slot_time,
            user_data=user_data.as_dict(),
            doc_data=doc_data.as_dict(),
            amount=amount,
        )
        self.session.add(appt)
        try:
            self.session.commit()
        except Exception:
            self.session.rollback()
            raise
        self.session.refresh(appt)
        return self._appt_to_dto(appt)

    def get_by_id(self, appointment_id: int) -> Optional[AppointmentDto]:
        a = self._get(appointment_id)
        return self._appt_to_dto(a) if a else None

    def list_for_user(self, user_id: str) -> List[AppointmentDto]:
        rows = self.session.exec(
            select(Appointment)
            .where(Appointment.user_id == user_id)
            .order_by(Appointment.date.desc(), Appointment.id.desc())
        ).all()
        return [self._appt_to_dto(r) for r in rows]

    def list_for_doctor(self, doctor_id: int) -> List[AppointmentDto]:
        rows = self.session.exec(
            select(Appointment)
            .where(Appointment.doctor_id == doctor_id)
            .order_by(Appointment.date.desc(), Appointment.id.desc())
        ).all()
        return [self._appt_to_dto(r) for r in rows]

    def list_all(self) -> List[AppointmentDto]:
        rows = self.session.exec(
            select(Appointment).order_by(Appointment.date.desc(), Appointment.id.desc())
        ).all()
        return [self._appt_to_dto(r) for r in rows]

    def set_cancelled(self, appointment_id: int, cancelled: bool) -> bool:
        stmt = (
            update(Appointment)
            .where(Appointment.id == appointment_id)
            .where(Appointment.cancelled == (not cancelled))
            .values(cancelled=cancelled)
            .execution_options(synchronize_session=False)
        )
        changed = self.session.exec(stmt).rowcount == 1
        self.session.commit()
        return changed

    def mark_completed(self, appointment_id: int) -> None:
        self._set_flag(appointment_id, "is_completed")

    def mark_paid(self, appointment_id: int) -> None:
        self._set_flag(appointment_id, "payment")

    def count(self) -> int:
        return self.session.exec(select(func.count()).select_from(Appointment)).one()
