from typing import Optional
from fastapi import APIRouter, Depends, HTTPException, File, Form, UploadFile
import logging

from ..application.ports.payment_gateway import PaymentGatewayError
from ..application.services.account_service import AccountService
from ..application.services.appointments_service import AppointmentsService
from ..application.services.image_service import ImageService
from ..application.services.payment_service import PaymentService
from ..dependencies import (
    SessionContext,
    get_current_user,
    get_account_service,
    get_appointments_service,
    get_image_service,
    get_payment_service,
)
from ..exceptions import create_success_response
from ..schemas import RegisterRequest, LoginRequest, BookAppointmentRequest, AppointmentActionRequest, VerifyPaymentRequest

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/api/v1/user", tags=["User"])


@router.post("/register", status_code=201)
def register(body: RegisterRequest, accounts: AccountService = Depends(get_account_service)):
    try:
        token = accounts.register(body.name, body.email, body.password)
        return create_success_response(token=token)
    except HTTPException:
        raise
    except Exception as e:
        logger.error(f"Error registering user: {str(e)}")
        raise HTTPException(status_code=500, detail="Failed to register user")


@router.post("/login")
def login(body: LoginRequest, accounts: AccountService = Depends(get_account_service)):
    try:
        token, user = accounts.login(body.email, body.password)
        return create_success_response(token=token, user=user.public())
    except HTTPException:
        raise
    except Exception as e:
        logger.error(f"Error logging in user: {str(e)}")
        raise HTTPException(status_code=500, detail="Failed to login")


@router.get("/profile")
def get_profile(
    ctx: SessionContext = Depends(get_current_user),
    accounts: AccountService = Depends(get_account_service),
):
    user = accounts.get_profile(ctx.subject_id)
    return create_success_response(user=user.public())


@router.post("/profile")
def update_profile(
    name: Optional[str] = Form(None),
    phone: Optional[str] = Form(None),
    email: Optional[str] = Form(None),
    address: Optional[str] = Form(None),
    dob: Optional[str] = Form(None),
    gender: Optional[str] = Form(None),
    image: Optional[UploadFile] = File(None),
    ctx: SessionContext = Depends(get_current_user),
    accounts: AccountService = Depends(get_account_service),
    images: ImageService = Depends(get_image_service),
):
    try:
        image_url = images.upload("profiles", image)
        user = accounts.update_profile(
            ctx.subject_id,
            name=name,
            phone=phone,
            email=email,
            address=address,
            dob=dob,
            gender=gender,
            image_url=image_url,
        )
        return create_success_response("Profile updated", user=user.public())
    except HTTPException:
        raise
    except Exception as e:
        logger.error(f"Error updating profile for {ctx.subject_id}: {str(e)}")
        raise HTTPException(status_code=500, detail="Failed to update profile")


@router.post("/book-appointment", status_code=201)
def book_appointment(
    body: BookAppointmentRequest,
    ctx: SessionContext = Depends(get_current_user),
    appt_service: AppointmentsService = Depends(get_appointments_service),
):
    try:
        appt = appt_service.book(ctx.subject_id, body.doctor_id, body.slot_date, body.slot_time)
        return create_success_response("Appointment Booked Successfully", appointment=appt.public())
    except HTTPException:
        raise
    except Exception as e:
        logger.error(f"Error booking appointment: {str(e)}")
        raise HTTPException(status_code=500, detail="Failed to book appointment")


@router.get("/appointments")
def list_appointments(
    ctx: SessionContext = Depends(get_current_user),
    appt_service: AppointmentsService = Depends(get_appointments_service),
):
    appts = appt_service.list_for_user(ctx.subject_id)
    return create_success_response(appointments=[a.public() for a in appts])


@router.post("/cancel-appointment")
def cancel_appointment(
    body: AppointmentActionRequest,
    ctx: SessionContext = Depends(get_current_user),
    appt_service: AppointmentsService = Depends(get_appointments_service),
):
    try:
        appt_service.cancel(ctx.subject_id, body.appointment_id)
        return create_success_response("Appointment cancelled successfully")
    except HTTPException:
        raise
    except Exception as e:
        logger.error(f"Error cancelling appointment {body.appointment_id}: {str(e)}")
        raise HTTPException(status_code=500, detail="Failed to cancel appointment")


@router.post("/payment")
def create_payment(
    body: AppointmentActionRequest,
    ctx: SessionContext = Depends(get_current_user),
    payments: PaymentService = Depends(get_payment_service),
):
    try:
        order = payments.create_order(ctx.subject_id, body.appointment_id)
        return create_success_response(order=order.raw or {
            "id": order.id,
            "amount": order.amount,
            "currency": order.currency,
            "receipt": order.receipt,
            "status": order.status,
        })
    except (HTTPException, PaymentGatewayError):
        raise
    except Exception as e:
        logger.error(f"Error creating payment for appointment {body.appointment_id}: {str(e)}")
        raise HTTPException(status_code=500, detail="Failed to create payment order")


@router.post("/verify-payment")
def verify_payment(
    body: VerifyPaymentRequest,
    ctx: SessionContext = Depends(get_current_user),
    payments: PaymentService = Depends(get_payment_service),
):
    try:
        payments.verify(ctx.subject_id, body.order_id)
        return create_success_response("Payment successful")
    except (HTTPException, PaymentGatewayError):
        raise
    except Exception as e:
        logger.error(f"Error verifying payment order {body.order_id}: {str(e)}")
        raise HTTPException(status_code=500, detail="Failed to verify payment")
