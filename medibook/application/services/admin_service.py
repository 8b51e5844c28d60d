import hmac
import logging
from dataclasses import dataclass
from typing import Any, Dict, Optional
from fastapi import HTTPException

from ..ports.doctor_repo import DoctorRepository, DoctorDto, NewDoctor
from ..ports.appointments_repo import AppointmentsRepository
from ..ports.user_repo import UserRepository, DuplicateEmail
from ..ports.audit_logger import AuditLogger
from ...utils import hash_password, create_jwt_token
from .validation import require_fields, normalize_email, check_password, parse_address
from .doctor_service import summarize_appointments

logger = logging.getLogger(__name__)

ROLE_ADMIN = "admin"


@dataclass
class AdminService:
    doctor_repo: DoctorRepository
    appointments_repo: AppointmentsRepository
    user_repo: UserRepository
    admin_email: str
    admin_password: str
    audit: Optional[AuditLogger] = None

    def login(self, email: Optional[str], password: Optional[str]) -> str:
        require_fields(email=email, password=password)
        # An unset admin password disables admin login entirely
        valid = bool(self.admin_password) and hmac.compare_digest(
            email.strip().lower().encode(), self.admin_email.strip().lower().encode()
        ) and hmac.compare_digest(password.encode(), self.admin_password.encode())
        if self.audit:
            self.audit.log("admin_login", email=email, success=valid)
        if not valid:
            raise HTTPException(status_code=400, detail="Invalid credentials")
        return create_jwt_token(self.admin_email, ROLE_ADMIN)

    def add_doctor(
        self,
        name: Optional[str],
        email: Optional[str],
        password: Optional[str],
        speciality: Optional[str],
        degree: Optional[str],
        experience: Optional[str],
        about: Optional[str],
        fees: Optional[float],
        address: Optional[Any],
        image_url: Optional[str] = None,
    ) -> DoctorDto:
        require_fields(
            "Missing details",
            name=name, email=email, password=password, speciality=speciality,
            degree=degree, experience=experience, about=about, fees=fees, address=address,
        )
        email = normalize_email(email)
        check_password(password)
        if fees < 0:
            raise HTTPException(status_code=400, detail="Invalid fees")
        if self.doctor_repo.get_by_email(email):
            raise HTTPException(status_code=400, detail="Doctor already exists")

        try:
            doctor = self.doctor_repo.create(NewDoctor(
                name=name.strip(),
                email=email,
                password_hash=hash_password(password),
                speciality=speciality.strip(),
                degree=degree.strip(),
                experience=experience.strip(),
                about=about.strip(),
                fees=fees,
                address=parse_address(address),
                image=image_url,
            ))
        except DuplicateEmail:
            raise HTTPException(status_code=400, detail="Doctor already exists")
        logger.info(f"Added doctor {doctor.id}")
        if self.audit:
            self.audit.log("add_doctor", email=email, subject_id=str(doctor.id))
        return doctor

    def dashboard(self) -> Dict[str, Any]:
        data = {
            "doctors": self.doctor_repo.count(),
            "users": self.user_repo.count(),
        }
        summary = summarize_appointments(self.appointments_repo.list_all())
        data["appointments"] = summary["appointments"]
        data["patients"] = summary["patients"]
        data["latestAppointments"] = summary["latestAppointments"]
        return data
