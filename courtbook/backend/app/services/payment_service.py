import logging
from decimal import Decimal
from typing import Any

from ..config import get_settings
from ..db import models
from .payments import gateway

logger = logging.getLogger(__name__)

_REFERENCE_PREFIX = "reservation-"


def order_reference(reservation_id: int) -> str:
    return f"{_REFERENCE_PREFIX}{reservation_id}"


def reservation_id_from_reference(order_id: str | None) -> int | None:
    if not order_id or not order_id.startswith(_REFERENCE_PREFIX):
        return None
    suffix = order_id[len(_REFERENCE_PREFIX):]
    return int(suffix) if suffix.isdigit() else None


def payment_signal(reservation: models.Reservation) -> dict[str, Any]:
    amount = Decimal(reservation.final_amount or 0)
    return {"payment_required": amount > 0, "payment_amount": float(amount)}


def parse_webhook(data: dict[str, Any]) -> dict[str, Any]:
    return gateway.get_gateway(get_settings()).parse_webhook(data)


def issue_refund(
    reservation: models.Reservation,
    gateway_client: gateway.BasePaymentGateway | None = None,
) -> dict[str, Any] | None:
    """Hand the recorded refund to the payment provider.

    The cancellation is already committed at this point; a provider failure
    is logged for manual follow-up and does not undo it.
    """
    amount = Decimal(reservation.refund_amount or 0)
    if amount <= 0:
        return None
    settings = get_settings()
    gateway_client = gateway_client or gateway.get_gateway(settings)
    order_id = order_reference(reservation.id)
    try:
        response = gateway_client.refund(
            order_id=order_id,
            amount=float(amount),
            currency=settings.payment_currency.upper(),
            reason=reservation.cancellation_reason,
            metadata={
                "reservation_id": reservation.id,
                "requester_id": reservation.requester_id,
            },
        )
    except gateway.PaymentGatewayError:
        logger.exception("Refund hand-off failed", extra={"reservation_id": reservation.id})
        return None
    logger.info(
        "Refund handed to payment provider",
        extra={"reservation_id": reservation.id, "amount": str(amount)},
    )
    return response
