import logging
from dataclasses import dataclass
from typing import Any, Dict, List, Optional
from fastapi import HTTPException

from ..ports.doctor_repo import DoctorRepository, DoctorDto
from ..ports.appointments_repo import AppointmentsRepository, AppointmentDto
from ..ports.audit_logger import AuditLogger
from ...utils import verify_password, create_jwt_token
from .validation import require_fields, normalize_email, parse_address

logger = logging.getLogger(__name__)

ROLE_DOCTOR = "doctor"
LATEST_APPOINTMENTS = 5


def summarize_appointments(appointments: List[AppointmentDto]) -> Dict[str, Any]:
    """Counts and recent activity shared by the doctor and admin dashboards."""
    ordered = sorted(appointments, key=lambda a: (a.date, a.id), reverse=True)
    return {
        "appointments": len(appointments),
        "patients": len({a.user_id for a in appointments}),
        "latestAppointments": [a.public() for a in ordered[:LATEST_APPOINTMENTS]],
    }


@dataclass
class DoctorService:
    doctor_repo: DoctorRepository
    appointments_repo: AppointmentsRepository
    audit: Optional[AuditLogger] = None

    def list_doctors(self, speciality: Optional[str] = None, available: Optional[bool] = None) -> List[DoctorDto]:
        return self.doctor_repo.list_all(speciality=speciality, available=available)

    def login(self, email: Optional[str], password: Optional[str]) -> str:
        require_fields(email=email, password=password)
        email = normalize_email(email)
        doctor = self.doctor_repo.get_by_email(email)
        if not doctor or not verify_password(password, doctor.password_hash):
            if self.audit:
                self.audit.log("doctor_login", email=email, success=False)
            raise HTTPException(status_code=400, detail="Invalid credentials")
        if self.audit:
            self.audit.log("doctor_login", email=email, subject_id=str(doctor.id))
        return create_jwt_token(str(doctor.id), ROLE_DOCTOR)

    def get_profile(self, doctor_id: int) -> DoctorDto:
        doctor = self.doctor_repo.get(doctor_id)
        if not doctor:
            raise HTTPException(status_code=404, detail="Doctor not found")
        return doctor

    def update_profile(self, doctor_id: int, fees: Optional[float] = None, address: Optional[Any] = None, available: Optional[bool] = None) -> DoctorDto:
        if fees is not None and fees < 0:
            raise HTTPException(status_code=400, detail="Invalid fees")
        self.get_profile(doctor_id)
        self.doctor_repo.update_profile(doctor_id, fees, parse_address(address), available)
        return self.get_profile(doctor_id)

    def change_availability(self, doctor_id: Optional[int]) -> bool:
        if doctor_id is None:
            raise HTTPException(status_code=400, detail="All fields are required")
        available = not self.get_profile(doctor_id).available
        self.doctor_repo.set_available(doctor_id, available)
        logger.info(f"Doctor {doctor_id} availability set to {available}")
        return available

    def dashboard(self, doctor_id: int) -> Dict[str, Any]:
        self.get_profile(doctor_id)
        appointments = self.appointments_repo.list_for_doctor(doctor_id)
        earnings = sum(a.amount for a in appointments if a.is_completed or a.payment)
        data = {"earnings": earnings}
        data.update(summarize_appointments(appointments))
        return data
