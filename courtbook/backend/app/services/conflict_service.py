from __future__ import annotations

import threading
from collections.abc import Iterable, Iterator
from contextlib import contextmanager
from datetime import date, datetime, time
from decimal import Decimal

from sqlalchemy import select
from sqlalchemy.orm import Session

from ..core.intervals import Interval, overlap_clause
from ..db import models
from . import court_service

_court_locks: dict[int, threading.Lock] = {}
_court_locks_guard = threading.Lock()


@contextmanager
def court_lock(court_id: int) -> Iterator[None]:
    """Serialise check-then-insert sequences for one court inside this process.

    Writers also take a row lock on the court, which covers other processes
    on databases that support ``SELECT ... FOR UPDATE``.
    """
    with _court_locks_guard:
        lock = _court_locks.setdefault(court_id, threading.Lock())
    with lock:
        yield


def active_reservations(
    db: Session,
    court_id: int,
    window: Interval,
    exclude_reservation_id: int | None = None,
) -> list[models.Reservation]:
    stmt = (
        select(models.Reservation)
        .where(
            models.Reservation.court_id == court_id,
            models.Reservation.status.in_(models.ACTIVE_STATUSES),
            overlap_clause(models.Reservation.start_time, models.Reservation.end_time, window),
        )
        .order_by(models.Reservation.start_time)
    )
    if exclude_reservation_id is not None:
        stmt = stmt.where(models.Reservation.id != exclude_reservation_id)
    return list(db.execute(stmt).scalars().all())


def find_conflict(
    db: Session,
    court_id: int,
    interval: Interval,
    exclude_reservation_id: int | None = None,
) -> models.Reservation | None:
    candidates = active_reservations(db, court_id, interval, exclude_reservation_id)
    return candidates[0] if candidates else None


def has_conflict(
    db: Session,
    court_id: int,
    interval: Interval,
    exclude_reservation_id: int | None = None,
) -> bool:
    return find_conflict(db, court_id, interval, exclude_reservation_id) is not None


def check_conflicts(
    db: Session,
    court_id: int,
    dates: Iterable[date],
    start_time: time,
    duration_hours: Decimal,
) -> list[dict]:
    """Dry run: report which of ``dates`` would collide at ``start_time``.

    A naive ``start_time`` is facility-local wall-clock time; one carrying an
    offset is converted, and ``time`` is reported in facility-local form.
    """
    court_service.get_court(db, court_id)
    tz = court_service.local_timezone()
    conflicts = []
    for day in dates:
        if start_time.tzinfo is None:
            start = datetime.combine(day, start_time, tzinfo=tz)
        else:
            start = datetime.combine(day, start_time).astimezone(tz)
        existing = find_conflict(db, court_id, Interval.from_duration(start, duration_hours))
        if existing is not None:
            conflicts.append(
                {
                    "date": day,
                    "time": start.strftime("%H:%M"),
                    "existing_reservation_id": existing.id,
                }
            )
    return conflicts
