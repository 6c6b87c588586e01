from datetime import date
from decimal import Decimal

from fastapi import APIRouter, Query
from ...api.deps import CurrentClock, DbSession
from ...db import schemas
from ...services import availability_service, court_service, reservation_service

router = APIRouter(prefix="/courts", tags=["courts"])


@router.get("/{court_id}/availability", response_model=list[schemas.AvailableSlot])
def court_availability(
    court_id: int,
    db: DbSession,
    clock: CurrentClock,
    date: date | None = None,
    duration_hours: Decimal = Query(default=Decimal("1"), gt=0),
):
    court = court_service.get_court(db, court_id)
    now = clock.now()
    day = date or now.astimezone(court_service.local_timezone()).date()
    return list(availability_service.generate_slots(db, court, day, duration_hours, now=now))


@router.get("/{court_id}/reservations", response_model=list[schemas.Reservation])
def court_reservations(
    court_id: int,
    db: DbSession,
    clock: CurrentClock,
    date: date | None = None,
):
    court = court_service.get_court(db, court_id)
    day = date or clock.now().astimezone(court_service.local_timezone()).date()
    return reservation_service.court_calendar(db, court, day)
