from dataclasses import dataclass, field
from typing import Protocol, Dict, Any


class PaymentGatewayError(Exception):
    pass


@dataclass
class OrderDto:
    id: str
    amount: int
    currency: str
    receipt: str
    status: str
    raw: Dict[str, Any] = field(default_factory=dict)


class PaymentGateway(Protocol):
    def create_order(self, amount: int, currency: str, receipt: str) -> OrderDto:
        ...

    def fetch_order(self, order_id: str) -> OrderDto:
        ...
