from abc import ABC, abstractmethod
from typing import Any
from ...config import Settings


class PaymentGatewayError(Exception):
    pass


class BasePaymentGateway(ABC):
    def __init__(self, settings: Settings) -> None:
        self.settings = settings

    @abstractmethod
    def refund(
        self,
        order_id: str,
        amount: float,
        currency: str,
        reason: str | None,
        metadata: dict[str, Any],
    ) -> dict[str, Any]:
        raise NotImplementedError

    @abstractmethod
    def parse_webhook(self, data: dict[str, Any]) -> dict[str, Any]:
        raise NotImplementedError


def get_gateway(settings: Settings) -> BasePaymentGateway:
    if settings.payment_provider == "stub":
        from .stub import StubGateway

        return StubGateway(settings)
    if settings.payment_provider == "http":
        from .http_gateway import HttpPaymentGateway

        return HttpPaymentGateway(settings)
    raise ValueError(f"Unsupported payment provider {settings.payment_provider}")
