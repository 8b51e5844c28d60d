import logging
from typing import Any, Dict, Optional

import requests

from ...config import settings
from ...application.ports.payment_gateway import PaymentGateway, PaymentGatewayError, OrderDto

logger = logging.getLogger(__name__)


class RazorpayGateway(PaymentGateway):
    """Orders API client. One attempt per call; failures surface as PaymentGatewayError."""

    def __init__(
        self,
        key_id: Optional[str] = None,
        key_secret: Optional[str] = None,
        base_url: Optional[str] = None,
        timeout: Optional[float] = None,
        session: Optional[requests.Session] = None,
    ):
        self.key_id = key_id if key_id is not None else settings.RAZORPAY_KEY_ID
        self.key_secret = key_secret if key_secret is not None else settings.RAZORPAY_KEY_SECRET
        self.base_url = (base_url or settings.RAZORPAY_API_URL).rstrip("/")
        self.timeout = timeout or settings.PAYMENT_TIMEOUT_SECONDS
        self.http = session or requests.Session()

    def _request(self, method: str, path: str, payload: Optional[Dict[str, Any]] = None) -> Dict[str, Any]:
        if not self.key_id or not self.key_secret:
            raise PaymentGatewayError("Razorpay credentials not configured")
        url = f"{self.base_url}{path}"
        try:
            response = self.http.request(
                method,
                url,
                json=payload,
                auth=(self.key_id, self.key_secret),
                timeout=self.timeout,
            )
            response.raise_for_status()
            return response.json()
        except requests.HTTPError as e:
            logger.error(f"Razorpay {method} {path} failed with status {e.response.status_code if e.response is not None else '?'}")
            raise PaymentGatewayError(f"Razorpay request failed: {e}") from e
        except (requests.RequestException, ValueError) as e:
            logger.error(f"Razorpay {method} {path} failed: {e}")
            raise PaymentGatewayError(f"Razorpay request failed: {e}") from e

    @staticmethod
    def _to_order(data: Dict[str, Any]) -> OrderDto:
        return OrderDto(
            id=str(data.get("id", "")),
            amount=int(data.get("amount", 0)),
            currency=str(data.get("currency", "")),
            receipt=str(data.get("receipt") or ""),
            status=str(data.get("status", "")),
            raw=data,
        )

    def create_order(self, amount: int, currency: str, receipt: str) -> OrderDto:
        data = self._request("POST", "/orders", {"amount": amount, "currency": currency, "receipt": receipt})
        logger.info(f"Created payment order {data.get('id')} for receipt {receipt}")
        return self._to_order(data)

    def fetch_order(self, order_id: str) -> OrderDto:
        return self._to_order(self._request("GET", f"/orders/{order_id}"))
