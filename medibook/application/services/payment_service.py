import logging
from dataclasses import dataclass
from typing import Optional
from fastapi import HTTPException

from ..ports.appointments_repo import AppointmentsRepository
from ..ports.payment_gateway import PaymentGateway, OrderDto

logger = logging.getLogger(__name__)

PAID = "paid"


def to_minor_units(amount: float) -> int:
    return int(round(amount * 100))


@dataclass
class PaymentService:
    repo: AppointmentsRepository
    gateway: PaymentGateway
    currency: str = "INR"

    def create_order(self, user_id: str, appointment_id: Optional[int]) -> OrderDto:
        if appointment_id is None:
            raise HTTPException(status_code=400, detail="All fields are required")
        appt = self.repo.get_by_id(appointment_id)
        if not appt or appt.cancelled or appt.user_id != user_id:
            raise HTTPException(status_code=400, detail="Appointment not found or already cancelled")
        if appt.payment:
            raise HTTPException(status_code=400, detail="Appointment is already paid")

        order = self.gateway.create_order(
            amount=to_minor_units(appt.amount),
            currency=self.currency,
            receipt=str(appt.id),
        )
        if not order.id:
            raise HTTPException(status_code=400, detail="Unable to create order")
        logger.info(f"Order {order.id} created for appointment {appt.id}")
        return order

    def verify(self, user_id: str, order_id: Optional[str]) -> None:
        if not order_id:
            raise HTTPException(status_code=400, detail="All fields are required")
        order = self.gateway.fetch_order(order_id)
        if order.status != PAID:
            logger.info(f"Order {order_id} not paid (status={order.status})")
            raise HTTPException(status_code=400, detail="Payment failed")

        try:
            appointment_id = int(order.receipt)
        except (TypeError, ValueError):
            raise HTTPException(status_code=400, detail="Payment failed")
        appt = self.repo.get_by_id(appointment_id)
        if not appt or appt.user_id != user_id:
            raise HTTPException(status_code=404, detail="Appointment not found")
        if not appt.payment:
            self.repo.mark_paid(appt.id)
        logger.info(f"Appointment {appt.id} marked paid by order {order_id}")
