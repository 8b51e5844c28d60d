import logging
from dataclasses import dataclass
from typing import Callable, List, Optional
from fastapi import HTTPException

from ..ports.appointments_repo import AppointmentsRepository, AppointmentDto, UserSnapshot, DoctorSnapshot
from ..ports.doctor_repo import DoctorRepository, DoctorDto
from ..ports.user_repo import UserRepository, UserDto
from ..ports.audit_logger import AuditLogger
from ..slot_ledger import SlotLedger, SlotAlreadyBooked, reserve, release

logger = logging.getLogger(__name__)


def snapshot_user(user: UserDto) -> UserSnapshot:
    return UserSnapshot(
        id=user.id,
        name=user.name,
        email=user.email,
        image=user.image,
        phone=user.phone,
        gender=user.gender,
        dob=user.dob,
    )


def snapshot_doctor(doctor: DoctorDto) -> DoctorSnapshot:
    address = doctor.address or {}
    return DoctorSnapshot(
        id=doctor.id,
        name=doctor.name,
        email=doctor.email,
        image=doctor.image,
        speciality=doctor.speciality,
        degree=doctor.degree,
        experience=doctor.experience,
        about=doctor.about,
        fees=doctor.fees,
        address_line1=address.get("line1", ""),
        address_line2=address.get("line2", ""),
    )


@dataclass
class AppointmentsService:
    repo: AppointmentsRepository
    doctor_repo: DoctorRepository
    user_repo: UserRepository
    audit: Optional[AuditLogger] = None
    max_ledger_attempts: int = 5

    def _audit(self, action: str, subject_id: str, appt: AppointmentDto) -> None:
        if self.audit:
            self.audit.log(
                action,
                subject_id=subject_id,
                details={"appointment_id": appt.id, "doctor_id": appt.doctor_id, "slot_date": appt.slot_date, "slot_time": appt.slot_time},
            )

    def _update_ledger(self, doctor_id: int, change: Callable[[SlotLedger], SlotLedger]) -> SlotLedger:
        """Apply change to the doctor's ledger with a compare-and-swap write.

        change is re-evaluated against a fresh read whenever another writer
        got in first, so a booking that lost the race sees the slot taken.
        """
        for attempt in range(1, self.max_ledger_attempts + 1):
            current = self.doctor_repo.get_ledger(doctor_id)
            if current is None:
                raise HTTPException(status_code=404, detail="Doctor not found")
            ledger, version = current
            updated = change(ledger)
            if updated == ledger:
                return ledger
            if self.doctor_repo.compare_and_set_ledger(doctor_id, version, updated):
                return updated
            logger.info(f"Ledger write for doctor {doctor_id} lost a race (attempt {attempt})")
        logger.warning(f"Giving up on ledger write for doctor {doctor_id} after {self.max_ledger_attempts} attempts")
        raise HTTPException(status_code=409, detail="Slot ledger is busy, please try again")

    def _release_slot(self, appt: AppointmentDto) -> None:
        self._update_ledger(appt.doctor_id, lambda ledger: release(ledger, appt.slot_date, appt.slot_time))

    def book(self, user_id: str, doctor_id: Optional[int], slot_date: Optional[str], slot_time: Optional[str]) -> AppointmentDto:
        if doctor_id is None or not slot_date or not slot_time:
            raise HTTPException(status_code=400, detail="All fields are required")

        user = self.user_repo.get_by_id(user_id)
        if not user:
            raise HTTPException(status_code=404, detail="User not found")

        doctor = self.doctor_repo.get(doctor_id)
        if not doctor:
            raise HTTPException(status_code=404, detail="Doctor not found")
        if not doctor.available:
            raise HTTPException(status_code=400, detail="Doctor is not available")

        try:
            self._update_ledger(doctor_id, lambda ledger: reserve(ledger, slot_date, slot_time))
        except SlotAlreadyBooked:
            raise HTTPException(status_code=400, detail="Slot is already booked")

        try:
            appt = self.repo.create(
                user_id=user_id,
                doctor_id=doctor_id,
                slot_date=slot_date,
                slot_time=slot_time,
                user_data=snapshot_user(user),
                doc_data=snapshot_doctor(doctor),
                amount=doctor.fees,
            )
        except Exception:
            logger.exception(f"Failed to record appointment for doctor {doctor_id} at {slot_date} {slot_time}; releasing slot")
            self._update_ledger(doctor_id, lambda ledger: release(ledger, slot_date, slot_time))
            raise

        logger.info(f"Booked appointment {appt.id} with doctor {doctor_id} at {slot_date} {slot_time}")
        self._audit("book_appointment", user_id, appt)
        return appt

    def list_for_user(self, user_id: str) -> List[AppointmentDto]:
        return self.repo.list_for_user(user_id)

    def list_for_doctor(self, doctor_id: int) -> List[AppointmentDto]:
        return self.repo.list_for_doctor(doctor_id)

    def list_all(self) -> List[AppointmentDto]:
        return self.repo.list_all()

    def _get(self, appointment_id: Optional[int]) -> AppointmentDto:
        if appointment_id is None:
            raise HTTPException(status_code=400, detail="All fields are required")
        appt = self.repo.get_by_id(appointment_id)
        if not appt:
            raise HTTPException(status_code=404, detail="Appointment not found")
        return appt

    def _cancel(self, appt: AppointmentDto, actor_id: str) -> None:
        if appt.is_completed:
            raise HTTPException(status_code=400, detail="Cannot cancel completed appointment")
        # Only the request that flips the flag owns the slot release
        if not self.repo.set_cancelled(appt.id, True):
            logger.info(f"Appointment {appt.id} was already cancelled")
            self._audit("cancel_appointment", actor_id, appt)
            return
        try:
            self._release_slot(appt)
        except Exception:
            logger.warning(f"Releasing slot for appointment {appt.id} failed; restoring it")
            self.repo.set_cancelled(appt.id, False)
            raise
        logger.info(f"Cancelled appointment {appt.id}")
        self._audit("cancel_appointment", actor_id, appt)

    def cancel(self, user_id: str, appointment_id: Optional[int]) -> None:
        appt = self._get(appointment_id)
        if appt.user_id != user_id:
            raise HTTPException(status_code=403, detail="You are not authorized to cancel this appointment")
        self._cancel(appt, user_id)

    def cancel_by_doctor(self, doctor_id: int, appointment_id: Optional[int]) -> None:
        appt = self._get(appointment_id)
        if appt.doctor_id != doctor_id:
            raise HTTPException(status_code=403, detail="You are not authorized to cancel this appointment")
        self._cancel(appt, str(doctor_id))

    def cancel_by_admin(self, appointment_id: Optional[int]) -> None:
        appt = self._get(appointment_id)
        self._cancel(appt, "admin")

    def complete_by_doctor(self, doctor_id: int, appointment_id: Optional[int]) -> None:
        appt = self._get(appointment_id)
        if appt.doctor_id != doctor_id:
            raise HTTPException(status_code=403, detail="You are not authorized to complete this appointment")
        if appt.cancelled:
            raise HTTPException(status_code=400, detail="Cannot complete cancelled appointment")
        self.repo.mark_completed(appt.id)
        logger.info(f"Completed appointment {appt.id}")
