import logging
from typing import Any

import httpx

from .gateway import BasePaymentGateway, PaymentGatewayError

logger = logging.getLogger(__name__)


class HttpPaymentGateway(BasePaymentGateway):
    """Talks JSON to the federation payment service."""

    def __init__(self, settings, transport: httpx.BaseTransport | None = None) -> None:
        super().__init__(settings)
        self._transport = transport

    def _client(self) -> httpx.Client:
        headers = {}
        if self.settings.payment_api_key:
            headers["Authorization"] = f"Bearer {self.settings.payment_api_key}"
        return httpx.Client(
            base_url=self.settings.payment_service_url,
            headers=headers,
            timeout=10,
            transport=self._transport,
        )

    def refund(
        self,
        order_id: str,
        amount: float,
        currency: str,
        reason: str | None,
        metadata: dict[str, Any],
    ) -> dict[str, Any]:
        logger.info("Requesting refund", extra={"order_id": order_id, "amount": amount})
        try:
            with self._client() as client:
                response = client.post(
                    "/refunds",
                    json={
                        "order_id": order_id,
                        "amount": amount,
                        "currency": currency,
                        "reason": reason,
                        "metadata": metadata,
                    },
                )
                response.raise_for_status()
        except httpx.HTTPError as exc:
            raise PaymentGatewayError(f"Refund request for {order_id} failed") from exc
        return response.json()

    def parse_webhook(self, data: dict[str, Any]) -> dict[str, Any]:
        payment = data.get("payment", {})
        return {
            "order_id": payment.get("order_id"),
            "status": payment.get("status"),
            "provider_payment_id": payment.get("id"),
        }
