# medibook/schemas/payments/payment.py
from pydantic import BaseModel
from typing import Optional

class VerifyPaymentRequest(BaseModel):
    order_id: Optional[str] = None
