from datetime import date

from fastapi import APIRouter, status
from ...api.deps import CurrentClock, DbSession
from ...db import schemas
from ...db.models import ReservationStatus
from ...services import conflict_service, payment_service, reservation_service

router = APIRouter(prefix="/reservations", tags=["reservations"])


@router.get("", response_model=list[schemas.Reservation])
def list_reservations(
    db: DbSession,
    court_id: int | None = None,
    requester_id: int | None = None,
    status: ReservationStatus | None = None,
    start_date: date | None = None,
    end_date: date | None = None,
):
    return reservation_service.list_reservations(
        db,
        court_id=court_id,
        requester_id=requester_id,
        status=status,
        start_date=start_date,
        end_date=end_date,
    )


@router.post("", response_model=schemas.ReservationCreated, status_code=status.HTTP_201_CREATED)
def create_reservation(payload: schemas.ReservationCreate, db: DbSession, clock: CurrentClock):
    reservation = reservation_service.create_reservation(
        db,
        court_id=payload.court_id,
        requester_id=payload.requester_id,
        start_time=payload.start_time,
        end_time=payload.end_time,
        member_discount=payload.member_discount,
        booking_source=payload.booking_source,
        details=payload.to_details(),
        clock=clock,
    )
    return {"reservation": reservation, **payment_service.payment_signal(reservation)}


@router.post(
    "/recurring",
    response_model=schemas.RecurringReservationResult,
    status_code=status.HTTP_201_CREATED,
)
def create_recurring_reservation(
    payload: schemas.RecurringReservationCreate, db: DbSession, clock: CurrentClock
):
    return reservation_service.create_recurring_reservations(
        db,
        court_id=payload.court_id,
        requester_id=payload.requester_id,
        start_time=payload.start_time,
        duration_hours=payload.duration_hours,
        rule=payload.recurrence.to_rule(),
        member_discount=payload.member_discount,
        details=payload.to_details(),
        clock=clock,
    )


@router.post("/check-conflicts", response_model=schemas.ConflictCheckResult)
def check_conflicts(payload: schemas.ConflictCheck, db: DbSession):
    conflicts = conflict_service.check_conflicts(
        db,
        payload.court_id,
        payload.dates,
        payload.start_time,
        payload.duration_hours,
    )
    return {"conflicts": conflicts}


@router.get("/{reservation_id}", response_model=schemas.Reservation)
def get_reservation(reservation_id: int, db: DbSession):
    return reservation_service.get_reservation(db, reservation_id)


@router.post("/{reservation_id}/confirm", response_model=schemas.Reservation)
def confirm_reservation(
    reservation_id: int,
    payload: schemas.ReservationAction,
    db: DbSession,
    clock: CurrentClock,
):
    return reservation_service.confirm_reservation(
        db, reservation_id, clock=clock, actor=payload.actor
    )


@router.post("/{reservation_id}/cancel", response_model=schemas.Reservation)
def cancel_reservation(
    reservation_id: int,
    payload: schemas.ReservationCancel,
    db: DbSession,
    clock: CurrentClock,
):
    return reservation_service.cancel_reservation(
        db,
        reservation_id,
        actor=payload.cancelled_by,
        reason=payload.reason,
        clock=clock,
    )


@router.post("/{reservation_id}/complete", response_model=schemas.Reservation)
def complete_reservation(
    reservation_id: int,
    payload: schemas.ReservationAction,
    db: DbSession,
    clock: CurrentClock,
):
    return reservation_service.complete_reservation(
        db, reservation_id, clock=clock, actor=payload.actor or "admin"
    )


@router.post("/{reservation_id}/no-show", response_model=schemas.Reservation)
def mark_no_show(
    reservation_id: int,
    payload: schemas.ReservationAction,
    db: DbSession,
    clock: CurrentClock,
):
    return reservation_service.mark_no_show(
        db, reservation_id, clock=clock, actor=payload.actor or "admin"
    )
