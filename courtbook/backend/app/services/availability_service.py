from __future__ import annotations

from collections.abc import Iterator
from dataclasses import dataclass
from datetime import date, datetime
from decimal import Decimal

from sqlalchemy.orm import Session

from ..core.errors import InvalidInterval
from ..core.intervals import Interval, overlaps
from ..db import models
from . import conflict_service, court_service


@dataclass(slots=True)
class AvailableSlot:
    start_time: datetime
    end_time: datetime
    available: bool = True


def generate_slots(
    db: Session,
    court: models.Court,
    day: date,
    duration_hours: Decimal | float | int,
    now: datetime | None = None,
) -> Iterator[AvailableSlot]:
    """Yield the free ``duration_hours`` slots of ``court`` on ``day``.

    Candidates start on every whole hour from opening time and must end by
    closing time. A candidate is dropped when it overlaps a pending or
    confirmed reservation, or when it has already started relative to
    ``now``. Existing reservations are read once per call.
    """
    duration = Decimal(str(duration_hours))
    if duration <= 0:
        raise InvalidInterval("Duration must be positive", {"duration_hours": str(duration)})
    if duration > court.close_hour - court.open_hour:
        return

    window = court_service.operating_window(court, day)
    booked = [
        reservation.interval
        for reservation in conflict_service.active_reservations(db, court.id, window)
    ]
    hour = court.open_hour
    while hour + duration <= court.close_hour:
        candidate = Interval.from_duration(court_service.local_datetime(day, hour), duration)
        hour += 1
        if now is not None and candidate.start <= now:
            continue
        if any(overlaps(candidate, interval) for interval in booked):
            continue
        yield AvailableSlot(start_time=candidate.start, end_time=candidate.end)
