from typing import Optional
from fastapi import APIRouter, Depends, HTTPException, File, Form, UploadFile
import logging

from ..application.services.admin_service import AdminService
from ..application.services.appointments_service import AppointmentsService
from ..application.services.doctor_service import DoctorService
from ..application.services.image_service import ImageService
from ..dependencies import (
    SessionContext,
    get_current_admin,
    get_admin_service,
    get_appointments_service,
    get_doctor_service,
    get_image_service,
)
from ..exceptions import create_success_response
from ..schemas import LoginRequest, AppointmentActionRequest, ChangeAvailabilityRequest

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/api/v1/admin", tags=["Admin"])


@router.post("/login")
def login(body: LoginRequest, admin: AdminService = Depends(get_admin_service)):
    token = admin.login(body.email, body.password)
    return create_success_response(token=token)


@router.post("/add-doctor", status_code=201)
def add_doctor(
    name: Optional[str] = Form(None),
    email: Optional[str] = Form(None),
    password: Optional[str] = Form(None),
    speciality: Optional[str] = Form(None),
    degree: Optional[str] = Form(None),
    experience: Optional[str] = Form(None),
    about: Optional[str] = Form(None),
    fees: Optional[float] = Form(None),
    address: Optional[str] = Form(None),
    image: Optional[UploadFile] = File(None),
    _: SessionContext = Depends(get_current_admin),
    admin: AdminService = Depends(get_admin_service),
    images: ImageService = Depends(get_image_service),
):
    try:
        image_url = images.upload("doctors", image)
        doctor = admin.add_doctor(
            name=name,
            email=email,
            password=password,
            speciality=speciality,
            degree=degree,
            experience=experience,
            about=about,
            fees=fees,
            address=address,
            image_url=image_url,
        )
        return create_success_response("Doctor added", doctor=doctor.public())
    except HTTPException:
        raise
    except Exception as e:
        logger.error(f"Error creating doctor: {str(e)}")
        raise HTTPException(status_code=500, detail="Failed to create doctor")


@router.get("/all-doctors")
def all_doctors(
    _: SessionContext = Depends(get_current_admin),
    doctors: DoctorService = Depends(get_doctor_service),
):
    return create_success_response(doctors=[d.public() for d in doctors.list_doctors()])


@router.post("/change-availability")
def change_availability(
    body: ChangeAvailabilityRequest,
    _: SessionContext = Depends(get_current_admin),
    doctors: DoctorService = Depends(get_doctor_service),
):
    available = doctors.change_availability(body.doctor_id)
    return create_success_response("Availability changed", available=available)


@router.get("/appointments")
def all_appointments(
    _: SessionContext = Depends(get_current_admin),
    appt_service: AppointmentsService = Depends(get_appointments_service),
):
    return create_success_response(appointments=[a.public() for a in appt_service.list_all()])


@router.post("/cancel-appointment")
def cancel_appointment(
    body: AppointmentActionRequest,
    _: SessionContext = Depends(get_current_admin),
    appt_service: AppointmentsService = Depends(get_appointments_service),
):
    appt_service.cancel_by_admin(body.appointment_id)
    return create_success_response("Appointment cancelled successfully")


@router.get("/dashboard")
def dashboard(
    _: SessionContext = Depends(get_current_admin),
    admin: AdminService = Depends(get_admin_service),
):
    return create_success_response(dashData=admin.dashboard())
