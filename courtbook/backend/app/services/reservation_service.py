from __future__ import annotations

import logging
import uuid
from dataclasses import dataclass, field
from datetime import date, datetime, timedelta
from decimal import ROUND_HALF_UP, Decimal
from typing import Any

from sqlalchemy import select, update
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

from ..core.clock import Clock
from ..core.constants import (
    CANCELLATION_CUTOFF_HOURS,
    FULL_REFUND_HOURS,
    FULL_REFUND_RATE,
    MONEY_QUANT,
    PARTIAL_REFUND_RATE,
    PAYMENT_TIMEOUT_REASON,
    SYSTEM_ACTOR,
)
from ..core.errors import (
    Conflict,
    InvalidInterval,
    InvalidState,
    NotFound,
    PolicyViolation,
    ReservationError,
)
from ..core.intervals import Interval, ensure_aware, hours_between, to_utc
from ..db import models
from ..db.models import BookingSource, MatchType, ReservationStatus
from . import conflict_service, court_service, payment_service
from .recurrence import RecurrenceRule, expand

logger = logging.getLogger(__name__)

_TRANSITIONS: dict[ReservationStatus, frozenset[ReservationStatus]] = {
    ReservationStatus.pending: frozenset({ReservationStatus.confirmed, ReservationStatus.cancelled}),
    ReservationStatus.confirmed: frozenset(
        {ReservationStatus.cancelled, ReservationStatus.completed, ReservationStatus.no_show}
    ),
    ReservationStatus.cancelled: frozenset(),
    ReservationStatus.completed: frozenset(),
    ReservationStatus.no_show: frozenset(),
}


def can_transition(current: ReservationStatus, target: ReservationStatus) -> bool:
    return target in _TRANSITIONS[current]


def _money(value: Decimal) -> Decimal:
    return value.quantize(MONEY_QUANT, rounding=ROUND_HALF_UP)


@dataclass(frozen=True, slots=True)
class Pricing:
    hourly_rate: Decimal
    duration_hours: Decimal
    total_amount: Decimal
    member_discount: Decimal
    final_amount: Decimal


@dataclass(frozen=True, slots=True)
class BookingDetails:
    """What the requester plans to do on court; stored as given."""

    purpose: str | None = None
    match_type: MatchType | None = None
    participants: list[int] | None = None
    guest_count: int = 0
    special_requests: str | None = None
    equipment_needed: list[str] | None = None
    notes: str | None = None


def price_reservation(
    hourly_rate: Decimal | float | int,
    duration_hours: Decimal,
    member_discount: Decimal | float | int = 0,
) -> Pricing:
    rate = _money(Decimal(str(hourly_rate or 0)))
    # priced on the exact duration, only the stored hours are rounded
    exact_hours = Decimal(str(duration_hours))
    total = _money(rate * exact_hours)
    # a discount never turns a booking into a credit
    discount = min(max(_money(Decimal(str(member_discount or 0))), Decimal("0")), total)
    return Pricing(
        hourly_rate=rate,
        duration_hours=_money(exact_hours),
        total_amount=total,
        member_discount=discount,
        final_amount=total - discount,
    )


def hours_until_start(start_time: datetime, now: datetime) -> Decimal:
    return hours_between(now, start_time)


def refund_percentage(hours_before_start: Decimal | float) -> Decimal:
    """Share of the paid amount returned on cancellation.

    Below the cancellation cutoff nothing is refunded (and the booking can
    not be cancelled at all), 50% up to the full-refund threshold, 100% after.
    """
    hours = Decimal(str(hours_before_start))
    if hours < CANCELLATION_CUTOFF_HOURS:
        return Decimal("0")
    if hours < FULL_REFUND_HOURS:
        return PARTIAL_REFUND_RATE
    return FULL_REFUND_RATE


def calculate_refund(final_amount: Decimal, hours_before_start: Decimal | float) -> Decimal:
    return _money(Decimal(final_amount) * refund_percentage(hours_before_start))


def get_reservation(db: Session, reservation_id: int) -> models.Reservation:
    reservation = db.get(models.Reservation, reservation_id)
    if reservation is None:
        raise NotFound("Reservation not found", {"reservation_id": reservation_id})
    return reservation


def list_reservations(
    db: Session,
    court_id: int | None = None,
    requester_id: int | None = None,
    status: ReservationStatus | None = None,
    start_date: date | None = None,
    end_date: date | None = None,
) -> list[models.Reservation]:
    stmt = select(models.Reservation)
    if court_id:
        stmt = stmt.where(models.Reservation.court_id == court_id)
    if requester_id:
        stmt = stmt.where(models.Reservation.requester_id == requester_id)
    if status:
        stmt = stmt.where(models.Reservation.status == status)
    if start_date:
        stmt = stmt.where(
            models.Reservation.start_time >= to_utc(court_service.local_datetime(start_date))
        )
    if end_date:
        stmt = stmt.where(
            models.Reservation.start_time < to_utc(court_service.local_datetime(end_date, 24))
        )
    return list(db.execute(stmt.order_by(models.Reservation.start_time.desc())).scalars().all())


def court_calendar(db: Session, court: models.Court, day: date) -> list[models.Reservation]:
    """Active reservations touching ``day``, earliest first."""
    day_window = Interval(court_service.local_datetime(day), court_service.local_datetime(day, 24))
    return conflict_service.active_reservations(db, court.id, day_window)


def _audit(
    db: Session,
    action: str,
    reservation: models.Reservation,
    actor: str | None,
    payload: dict[str, Any] | None = None,
) -> None:
    actor_type = models.ActorType.system if actor == SYSTEM_ACTOR else models.ActorType.user
    db.add(
        models.AuditLog(
            actor_type=actor_type,
            actor_id=actor,
            action=action,
            reservation_id=reservation.id,
            payload=payload or {},
        )
    )


def _validate_booking(court: models.Court, interval: Interval, now: datetime) -> None:
    if not court.is_available:
        raise Conflict("Court is not available for booking", rule="court_unavailable")
    if interval.start <= now:
        raise InvalidInterval(
            "Start time must be in the future", {"start_time": interval.start.isoformat()}
        )
    tz = court_service.local_timezone()
    window = court_service.operating_window(court, interval.start.astimezone(tz).date())
    if interval.start < window.start or interval.end > window.end:
        raise Conflict(
            "Reservation is outside the court's operating hours",
            rule="outside_operating_hours",
            details={"open_hour": court.open_hour, "close_hour": court.close_hour},
        )


def _book_interval(
    db: Session,
    court: models.Court,
    interval: Interval,
    *,
    requester_id: int,
    now: datetime,
    member_discount: Decimal | float | int = 0,
    status: ReservationStatus = ReservationStatus.pending,
    booking_source: BookingSource = BookingSource.web,
    recurrence_group: str | None = None,
    details: BookingDetails | None = None,
) -> models.Reservation:
    details = details or BookingDetails()
    if status not in (ReservationStatus.pending, ReservationStatus.confirmed):
        raise InvalidState(f"Reservations cannot be created as {status.value}")
    _validate_booking(court, interval, now)
    with conflict_service.court_lock(court.id):
        try:
            locked_court = db.execute(
                select(models.Court)
                .where(models.Court.id == court.id)
                .with_for_update()
                .execution_options(populate_existing=True)
            ).scalar_one()
            if not locked_court.is_available:
                raise Conflict("Court is not available for booking", rule="court_unavailable")
            existing = conflict_service.find_conflict(db, locked_court.id, interval)
            if existing is not None:
                raise Conflict(
                    "Court is already booked for this time period",
                    rule="overlapping_reservation",
                    details={"existing_reservation_id": existing.id},
                )
            pricing = price_reservation(
                locked_court.hourly_rate, interval.duration_hours, member_discount
            )
            reservation = models.Reservation(
                court_id=locked_court.id,
                requester_id=requester_id,
                facility_id=locked_court.facility_id,
                start_time=interval.start,
                end_time=interval.end,
                duration_hours=pricing.duration_hours,
                status=status,
                hourly_rate=pricing.hourly_rate,
                total_amount=pricing.total_amount,
                member_discount=pricing.member_discount,
                final_amount=pricing.final_amount,
                refund_amount=Decimal("0"),
                booking_source=booking_source,
                recurrence_group=recurrence_group,
                purpose=details.purpose,
                match_type=details.match_type,
                participants=details.participants,
                guest_count=details.guest_count,
                special_requests=details.special_requests,
                equipment_needed=details.equipment_needed,
                notes=details.notes,
                created_at=now,
            )
            db.add(reservation)
            db.flush()
            _audit(
                db,
                "reservation_created",
                reservation,
                str(requester_id),
                {"status": status.value, "final_amount": str(pricing.final_amount)},
            )
            db.commit()
        except Exception:
            db.rollback()
            raise
    db.refresh(reservation)
    return reservation


def create_reservation(
    db: Session,
    *,
    court_id: int,
    requester_id: int,
    start_time: datetime,
    end_time: datetime,
    clock: Clock,
    member_discount: Decimal | float | int = 0,
    status: ReservationStatus = ReservationStatus.pending,
    booking_source: BookingSource = BookingSource.web,
    details: BookingDetails | None = None,
) -> models.Reservation:
    now = clock.now()
    court = court_service.get_court(db, court_id)
    if not court.is_available:
        raise Conflict("Court is not available for booking", rule="court_unavailable")
    if to_utc(start_time) <= now:
        raise InvalidInterval(
            "Start time must be in the future", {"start_time": ensure_aware(start_time).isoformat()}
        )
    interval = Interval(start_time, end_time)
    try:
        reservation = _book_interval(
            db,
            court,
            interval,
            requester_id=requester_id,
            now=now,
            member_discount=member_discount,
            status=status,
            booking_source=booking_source,
            details=details,
        )
    except Conflict as exc:
        logger.info(
            "Booking rejected",
            extra={"court_id": court_id, "requester_id": requester_id, "rule": exc.rule},
        )
        raise
    logger.info(
        "Court booked",
        extra={
            "court_id": court_id,
            "requester_id": requester_id,
            "reservation_id": reservation.id,
            "start_time": interval.start.isoformat(),
        },
    )
    return reservation


@dataclass(slots=True)
class OccurrenceConflict:
    occurrence: int
    date: date
    time: str
    reason: str
    message: str
    existing_reservation_id: int | None = None


@dataclass(slots=True)
class RecurringBookingResult:
    reservations: list[models.Reservation] = field(default_factory=list)
    conflicts: list[OccurrenceConflict] = field(default_factory=list)

    @property
    def created_count(self) -> int:
        return len(self.reservations)

    @property
    def conflict_count(self) -> int:
        return len(self.conflicts)


def create_recurring_reservations(
    db: Session,
    *,
    court_id: int,
    requester_id: int,
    start_time: datetime,
    duration_hours: Decimal | float | int,
    rule: RecurrenceRule,
    clock: Clock,
    member_discount: Decimal | float | int = 0,
    status: ReservationStatus = ReservationStatus.pending,
    details: BookingDetails | None = None,
) -> RecurringBookingResult:
    """Book every occurrence of ``rule`` that is free.

    Occurrences are independent: each one is checked and committed on its
    own, and a rejected occurrence is reported in ``conflicts`` without
    touching the others.
    """
    now = clock.now()
    court = court_service.get_court(db, court_id)
    tz = court_service.local_timezone()
    local_start = ensure_aware(start_time).astimezone(tz)
    group = str(uuid.uuid4())
    result = RecurringBookingResult()

    for index, interval in enumerate(expand(local_start, duration_hours, rule), start=1):
        local = interval.start.astimezone(tz)
        try:
            reservation = _book_interval(
                db,
                court,
                interval,
                requester_id=requester_id,
                now=now,
                member_discount=member_discount,
                status=status,
                booking_source=BookingSource.recurring,
                recurrence_group=group,
                details=details,
            )
        except ReservationError as exc:
            result.conflicts.append(
                OccurrenceConflict(
                    occurrence=index,
                    date=local.date(),
                    time=local.strftime("%H:%M"),
                    reason=exc.details.get("rule", exc.code),
                    message=exc.message,
                    existing_reservation_id=exc.details.get("existing_reservation_id"),
                )
            )
            continue
        except SQLAlchemyError:
            logger.exception(
                "Failed to store recurring occurrence",
                extra={"court_id": court_id, "occurrence": index},
            )
            result.conflicts.append(
                OccurrenceConflict(
                    occurrence=index,
                    date=local.date(),
                    time=local.strftime("%H:%M"),
                    reason="persistence_error",
                    message="Reservation could not be stored",
                )
            )
            continue
        result.reservations.append(reservation)

    logger.info(
        "Recurring reservations created",
        extra={
            "court_id": court_id,
            "requester_id": requester_id,
            "recurrence_group": group,
            "created": result.created_count,
            "conflicts": result.conflict_count,
        },
    )
    return result


def _apply_transition(
    db: Session,
    reservation: models.Reservation,
    target: ReservationStatus,
    *,
    now: datetime,
    actor: str | None,
    action: str,
    payload: dict[str, Any] | None = None,
    **values: Any,
) -> models.Reservation:
    """Move ``reservation`` to ``target`` with a compare-and-set on its status.

    The update only matches while the row still holds the status this
    session read, so a concurrent writer makes it fail with ``InvalidState``.
    """
    current = reservation.status
    if not can_transition(current, target):
        raise InvalidState(
            f"Cannot move a {current.value} reservation to {target.value}",
            {"status": current.value},
        )
    result = db.execute(
        update(models.Reservation)
        .where(
            models.Reservation.id == reservation.id,
            models.Reservation.status == current,
        )
        .values(status=target, updated_at=now, **values)
        .execution_options(synchronize_session=False)
    )
    if result.rowcount != 1:
        db.rollback()
        db.refresh(reservation)
        raise InvalidState(
            "Reservation was modified by another request",
            {"status": reservation.status.value},
        )
    _audit(db, action, reservation, actor, {"from": current.value, "to": target.value, **(payload or {})})
    db.commit()
    db.refresh(reservation)
    return reservation


def confirm_reservation(
    db: Session,
    reservation_id: int,
    *,
    clock: Clock,
    actor: str | None = None,
) -> models.Reservation:
    now = clock.now()
    reservation = get_reservation(db, reservation_id)
    # a late payment cannot revive a hold whose slot has begun
    if ensure_aware(reservation.start_time) <= now:
        raise InvalidState("Reservation has already started", {"status": reservation.status.value})
    reservation = _apply_transition(
        db,
        reservation,
        ReservationStatus.confirmed,
        now=now,
        actor=actor,
        action="reservation_confirmed",
    )
    logger.info("Reservation confirmed", extra={"reservation_id": reservation.id})
    return reservation


def cancel_reservation(
    db: Session,
    reservation_id: int,
    *,
    actor: str,
    clock: Clock,
    reason: str | None = None,
) -> models.Reservation:
    now = clock.now()
    reservation = get_reservation(db, reservation_id)
    if reservation.status != ReservationStatus.confirmed:
        raise InvalidState(
            f"Cannot cancel a {reservation.status.value} reservation",
            {"status": reservation.status.value},
        )
    hours = hours_until_start(reservation.start_time, now)
    if hours < CANCELLATION_CUTOFF_HOURS:
        raise PolicyViolation(
            f"Reservations cannot be cancelled less than {CANCELLATION_CUTOFF_HOURS} hours before start",
            {"hours_until_start": float(hours)},
        )
    refund = calculate_refund(reservation.final_amount, hours)
    reservation = _apply_transition(
        db,
        reservation,
        ReservationStatus.cancelled,
        now=now,
        actor=actor,
        action="reservation_cancelled",
        payload={"refund_amount": str(refund), "reason": reason},
        cancelled_at=now,
        cancelled_by=actor,
        cancellation_reason=reason,
        refund_amount=refund,
    )
    logger.info(
        "Reservation cancelled",
        extra={"reservation_id": reservation.id, "refund_amount": str(refund), "actor": actor},
    )
    payment_service.issue_refund(reservation)
    return reservation


def complete_reservation(
    db: Session,
    reservation_id: int,
    *,
    clock: Clock,
    actor: str = SYSTEM_ACTOR,
) -> models.Reservation:
    now = clock.now()
    reservation = get_reservation(db, reservation_id)
    if ensure_aware(reservation.end_time) > now:
        raise InvalidState("Reservation has not ended yet", {"status": reservation.status.value})
    return _apply_transition(
        db,
        reservation,
        ReservationStatus.completed,
        now=now,
        actor=actor,
        action="reservation_completed",
    )


def mark_no_show(
    db: Session,
    reservation_id: int,
    *,
    clock: Clock,
    actor: str,
) -> models.Reservation:
    now = clock.now()
    reservation = get_reservation(db, reservation_id)
    if ensure_aware(reservation.start_time) > now:
        raise InvalidState("Reservation has not started yet", {"status": reservation.status.value})
    return _apply_transition(
        db,
        reservation,
        ReservationStatus.no_show,
        now=now,
        actor=actor,
        action="reservation_no_show",
    )


def complete_elapsed_reservations(db: Session, clock: Clock) -> int:
    now = clock.now()
    elapsed = db.execute(
        select(models.Reservation.id).where(
            models.Reservation.status == ReservationStatus.confirmed,
            models.Reservation.end_time <= now,
        )
    ).scalars().all()
    completed = 0
    for reservation_id in elapsed:
        try:
            complete_reservation(db, reservation_id, clock=clock)
        except InvalidState:
            continue
        completed += 1
    return completed


def release_pending_reservation(
    db: Session,
    reservation_id: int,
    *,
    clock: Clock,
    reason: str,
    actor: str = SYSTEM_ACTOR,
) -> models.Reservation:
    """Withdraw an unpaid hold so it stops blocking the court."""
    now = clock.now()
    reservation = get_reservation(db, reservation_id)
    if reservation.status != ReservationStatus.pending:
        raise InvalidState(
            f"Cannot release a {reservation.status.value} reservation",
            {"status": reservation.status.value},
        )
    reservation = _apply_transition(
        db,
        reservation,
        ReservationStatus.cancelled,
        now=now,
        actor=actor,
        action="reservation_expired",
        payload={"reason": reason},
        cancelled_at=now,
        cancelled_by=actor,
        cancellation_reason=reason,
        refund_amount=Decimal("0"),
    )
    logger.info("Pending reservation released", extra={"reservation_id": reservation.id, "reason": reason})
    return reservation


def expire_pending_reservations(db: Session, clock: Clock, timeout: timedelta) -> int:
    """Release unpaid holds that have been pending longer than ``timeout``."""
    cutoff = clock.now() - timeout
    stale = db.execute(
        select(models.Reservation.id).where(
            models.Reservation.status == ReservationStatus.pending,
            models.Reservation.created_at < cutoff,
        )
    ).scalars().all()
    expired = 0
    for reservation_id in stale:
        try:
            release_pending_reservation(db, reservation_id, clock=clock, reason=PAYMENT_TIMEOUT_REASON)
        except InvalidState:
            continue
        expired += 1
    return expired
