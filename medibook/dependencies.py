import logging
from dataclasses import dataclass
from typing import Optional

from fastapi import Depends, HTTPException
from fastapi.security import HTTPBearer, HTTPAuthorizationCredentials
from sqlmodel import Session

from .config import settings
from .database import get_session
from .utils import decode_jwt_token
from .application.ports.payment_gateway import PaymentGateway
from .application.ports.storage_repo import StorageRepository
from .application.services.account_service import AccountService, ROLE_USER
from .application.services.appointments_service import AppointmentsService
from .application.services.doctor_service import DoctorService, ROLE_DOCTOR
from .application.services.admin_service import AdminService, ROLE_ADMIN
from .application.services.payment_service import PaymentService
from .application.services.image_service import ImageService
from .infrastructure.audit.std_logger import StdAuditLogger
from .infrastructure.payments.razorpay_gateway import RazorpayGateway
from .infrastructure.storage.local_storage import LocalStorageRepository
from .infrastructure.persistence.sqlalchemy.repositories.user_repository_sql import SqlUserRepository
from .infrastructure.persistence.sqlalchemy.repositories.doctor_repository_sql import SqlDoctorRepository
from .infrastructure.persistence.sqlalchemy.repositories.appointments_repository_sql import SqlAppointmentsRepository

logger = logging.getLogger(__name__)

oauth2_scheme = HTTPBearer(auto_error=False)

audit_logger = StdAuditLogger()


@dataclass(frozen=True)
class SessionContext:
    """Identity resolved from the bearer token of a single request."""
    subject_id: str
    role: str


def get_session_context(credentials: Optional[HTTPAuthorizationCredentials] = Depends(oauth2_scheme)) -> SessionContext:
    if not credentials or not credentials.credentials:
        raise HTTPException(status_code=401, detail="Not authorized, login again")
    payload = decode_jwt_token(credentials.credentials)
    if not payload:
        raise HTTPException(status_code=401, detail="Not authorized, login again")
    subject_id = payload.get("sub")
    role = payload.get("role")
    if not subject_id or not role:
        logger.warning("Token missing subject or role")
        raise HTTPException(status_code=401, detail="Not authorized, login again")
    return SessionContext(subject_id=str(subject_id), role=role)


def require_role(role: str):
    def dependency(ctx: SessionContext = Depends(get_session_context)) -> SessionContext:
        if ctx.role != role:
            raise HTTPException(status_code=403, detail="Not allowed for this account")
        return ctx
    return dependency


get_current_user = require_role(ROLE_USER)
get_current_admin = require_role(ROLE_ADMIN)
_doctor_context = require_role(ROLE_DOCTOR)


def get_current_doctor(ctx: SessionContext = Depends(_doctor_context)) -> int:
    try:
        return int(ctx.subject_id)
    except ValueError:
        raise HTTPException(status_code=401, detail="Not authorized, login again")


def get_storage() -> StorageRepository:
    return LocalStorageRepository()


def get_payment_gateway() -> PaymentGateway:
    return RazorpayGateway()


def get_image_service(storage: StorageRepository = Depends(get_storage)) -> ImageService:
    return ImageService(storage=storage)


def get_account_service(session: Session = Depends(get_session)) -> AccountService:
    return AccountService(user_repo=SqlUserRepository(session), audit=audit_logger)


def get_appointments_service(session: Session = Depends(get_session)) -> AppointmentsService:
    return AppointmentsService(
        repo=SqlAppointmentsRepository(session),
        doctor_repo=SqlDoctorRepository(session),
        user_repo=SqlUserRepository(session),
        audit=audit_logger,
        max_ledger_attempts=settings.SLOT_UPDATE_ATTEMPTS,
    )


def get_doctor_service(session: Session = Depends(get_session)) -> DoctorService:
    return DoctorService(
        doctor_repo=SqlDoctorRepository(session),
        appointments_repo=SqlAppointmentsRepository(session),
        audit=audit_logger,
    )


def get_admin_service(session: Session = Depends(get_session)) -> AdminService:
    return AdminService(
        doctor_repo=SqlDoctorRepository(session),
        appointments_repo=SqlAppointmentsRepository(session),
        user_repo=SqlUserRepository(session),
        admin_email=settings.ADMIN_EMAIL,
        admin_password=settings.ADMIN_PASSWORD,
        audit=audit_logger,
    )


def get_payment_service(
    session: Session = Depends(get_session),
    gateway: PaymentGateway = Depends(get_payment_gateway),
) -> PaymentService:
    return PaymentService(repo=SqlAppointmentsRepository(session), gateway=gateway, currency=settings.CURRENCY)
