from typing import Optional
from fastapi import APIRouter, Depends, HTTPException, Query
import logging

from ..application.services.appointments_service import AppointmentsService
from ..application.services.doctor_service import DoctorService
from ..dependencies import get_current_doctor, get_appointments_service, get_doctor_service
from ..exceptions import create_success_response
from ..schemas import LoginRequest, AppointmentActionRequest, DoctorProfileUpdateRequest

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/api/v1/doctor", tags=["Doctors"])


def _listing(doctor) -> dict:
    data = doctor.public()
    # Public listing never exposes contact email or the booked slot map
    data.pop("email", None)
    data.pop("slots_booked", None)
    return data


@router.get("/all-doctors")
def list_doctors(
    speciality: Optional[str] = Query(None),
    available: Optional[bool] = Query(None),
    doctors: DoctorService = Depends(get_doctor_service),
):
    try:
        return create_success_response(doctors=[_listing(d) for d in doctors.list_doctors(speciality, available)])
    except Exception as e:
        logger.error(f"Error retrieving doctors: {str(e)}")
        raise HTTPException(status_code=500, detail="Failed to retrieve doctors")


@router.get("/{doctor_id}/slots")
def get_booked_slots(doctor_id: int, doctors: DoctorService = Depends(get_doctor_service)):
    doctor = doctors.get_profile(doctor_id)
    return create_success_response(slots_booked=doctor.slots_booked)


@router.post("/login")
def login(body: LoginRequest, doctors: DoctorService = Depends(get_doctor_service)):
    token = doctors.login(body.email, body.password)
    return create_success_response(token=token)


@router.get("/appointments")
def list_appointments(
    doctor_id: int = Depends(get_current_doctor),
    appt_service: AppointmentsService = Depends(get_appointments_service),
):
    appts = appt_service.list_for_doctor(doctor_id)
    return create_success_response(appointments=[a.public() for a in appts])


@router.post("/complete-appointment")
def complete_appointment(
    body: AppointmentActionRequest,
    doctor_id: int = Depends(get_current_doctor),
    appt_service: AppointmentsService = Depends(get_appointments_service),
):
    appt_service.complete_by_doctor(doctor_id, body.appointment_id)
    return create_success_response("Appointment completed")


@router.post("/cancel-appointment")
def cancel_appointment(
    body: AppointmentActionRequest,
    doctor_id: int = Depends(get_current_doctor),
    appt_service: AppointmentsService = Depends(get_appointments_service),
):
    appt_service.cancel_by_doctor(doctor_id, body.appointment_id)
    return create_success_response("Appointment cancelled successfully")


@router.get("/dashboard")
def dashboard(
    doctor_id: int = Depends(get_current_doctor),
    doctors: DoctorService = Depends(get_doctor_service),
):
    return create_success_response(dashData=doctors.dashboard(doctor_id))


@router.get("/profile")
def profile(
    doctor_id: int = Depends(get_current_doctor),
    doctors: DoctorService = Depends(get_doctor_service),
):
    return create_success_response(profileData=doctors.get_profile(doctor_id).public())


@router.post("/update-profile")
def update_profile(
    body: DoctorProfileUpdateRequest,
    doctor_id: int = Depends(get_current_doctor),
    doctors: DoctorService = Depends(get_doctor_service),
):
    doctor = doctors.update_profile(doctor_id, fees=body.fees, address=body.address, available=body.available)
    return create_success_response("Profile updated", profileData=doctor.public())


@router.post("/change-availability")
def change_availability(
    doctor_id: int = Depends(get_current_doctor),
    doctors: DoctorService = Depends(get_doctor_service),
):
    available = doctors.change_availability(doctor_id)
    return create_success_response("Availability changed", available=available)
