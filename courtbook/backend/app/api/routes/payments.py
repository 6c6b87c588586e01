from fastapi import APIRouter, HTTPException
from ...api.deps import CurrentClock, DbSession
from ...db import schemas
from ...services import payment_service, reservation_service

router = APIRouter(prefix="/payments", tags=["payments"])

_PAID_STATUSES = {"succeeded", "paid"}
_FAILED_STATUSES = {"failed", "canceled", "cancelled"}


@router.post("/webhook", response_model=schemas.Reservation)
def payments_webhook(payload: dict, db: DbSession, clock: CurrentClock):
    parsed = payment_service.parse_webhook(payload)
    reservation_id = payment_service.reservation_id_from_reference(parsed.get("order_id"))
    if reservation_id is None:
        raise HTTPException(status_code=400, detail="Invalid webhook")
    payment_status = (parsed.get("status") or "").lower()
    if payment_status in _PAID_STATUSES:
        return reservation_service.confirm_reservation(
            db, reservation_id, clock=clock, actor="payment_provider"
        )
    if payment_status in _FAILED_STATUSES:
        return reservation_service.release_pending_reservation(
            db, reservation_id, clock=clock, reason=f"payment_{payment_status}"
        )
    return reservation_service.get_reservation(db, reservation_id)
