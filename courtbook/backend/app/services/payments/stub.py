from __future__ import annotations

from typing import Any

from .gateway import BasePaymentGateway


class StubGateway(BasePaymentGateway):
    """Simple payment gateway stub that pretends every refund succeeds."""

    def refund(
        self,
        order_id: str,
        amount: float,
        currency: str,
        reason: str | None,
        metadata: dict[str, Any],
    ) -> dict[str, Any]:
        return {
            "order_id": order_id,
            "amount": amount,
            "currency": currency,
            "status": "refunded",
            "reason": reason,
            "metadata": metadata,
        }

    def parse_webhook(self, data: dict[str, Any]) -> dict[str, Any]:
        # The stub has no provider format of its own, simply echo data back
        return {
            "order_id": data.get("order_id"),
            "status": data.get("status", "succeeded"),
            "provider_payment_id": data.get("provider_payment_id"),
        }
