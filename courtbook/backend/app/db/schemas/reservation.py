from datetime import date, datetime, time
from decimal import Decimal
from pydantic import BaseModel, Field, field_validator, model_validator

from ..models.reservation import BookingSource, MatchType, ReservationStatus
from ...core.constants import DEFAULT_MAX_OCCURRENCES
from ...core.intervals import ensure_aware
from ...services.recurrence import RecurrencePattern, RecurrenceRule
from ...services.reservation_service import BookingDetails


class ReservationBase(BaseModel):
    court_id: int
    requester_id: int


class BookingDetailsIn(BaseModel):
    purpose: str | None = Field(default=None, max_length=200)
    match_type: MatchType | None = None
    participants: list[int] | None = None
    guest_count: int = Field(default=0, ge=0)
    special_requests: str | None = None
    equipment_needed: list[str] | None = None
    notes: str | None = None

    def to_details(self) -> BookingDetails:
        return BookingDetails(
            purpose=self.purpose,
            match_type=self.match_type,
            participants=self.participants,
            guest_count=self.guest_count,
            special_requests=self.special_requests,
            equipment_needed=self.equipment_needed,
            notes=self.notes,
        )


class ReservationCreate(ReservationBase, BookingDetailsIn):
    start_time: datetime
    end_time: datetime
    member_discount: Decimal = Field(default=Decimal("0"), ge=0)
    booking_source: BookingSource = BookingSource.web


class RecurrenceRuleIn(BaseModel):
    pattern: RecurrencePattern
    interval: int = Field(default=1, ge=1)
    days_of_week: list[str] = Field(default_factory=list)
    max_occurrences: int = Field(default=DEFAULT_MAX_OCCURRENCES, ge=1)
    end_date: date | None = None

    @field_validator("days_of_week", mode="before")
    @classmethod
    def normalize_days(cls, value: object) -> object:
        if isinstance(value, list):
            return [day.strip().lower() if isinstance(day, str) else day for day in value]
        return value

    @model_validator(mode="after")
    def check_rule(self) -> "RecurrenceRuleIn":
        self.to_rule()
        return self

    def to_rule(self) -> RecurrenceRule:
        return RecurrenceRule(
            pattern=self.pattern,
            interval=self.interval,
            days_of_week=tuple(self.days_of_week),
            max_occurrences=self.max_occurrences,
            end_date=self.end_date,
        )


class RecurringReservationCreate(ReservationBase, BookingDetailsIn):
    start_time: datetime
    duration_hours: Decimal = Field(gt=0)
    recurrence: RecurrenceRuleIn
    member_discount: Decimal = Field(default=Decimal("0"), ge=0)


class ReservationCancel(BaseModel):
    cancelled_by: str
    reason: str | None = None


class ReservationAction(BaseModel):
    actor: str | None = None


class ConflictCheck(BaseModel):
    court_id: int
    dates: list[date]
    start_time: time
    duration_hours: Decimal = Field(gt=0)


class ConflictEntry(BaseModel):
    date: date
    time: str
    existing_reservation_id: int


class ConflictCheckResult(BaseModel):
    conflicts: list[ConflictEntry]


class Reservation(ReservationBase):
    id: int
    facility_id: int
    start_time: datetime
    end_time: datetime
    duration_hours: float
    status: ReservationStatus
    hourly_rate: float
    total_amount: float
    member_discount: float
    final_amount: float
    refund_amount: float
    cancelled_at: datetime | None = None
    cancelled_by: str | None = None
    cancellation_reason: str | None = None
    booking_source: BookingSource
    recurrence_group: str | None = None
    purpose: str | None = None
    match_type: MatchType | None = None
    participants: list[int] | None = None
    guest_count: int = 0
    special_requests: str | None = None
    equipment_needed: list[str] | None = None
    notes: str | None = None
    created_at: datetime
    updated_at: datetime | None = None

    @field_validator("start_time", "end_time", "cancelled_at", "created_at", "updated_at")
    @classmethod
    def assume_utc(cls, value: datetime | None) -> datetime | None:
        # SQLite hands back naive values; everything is stored in UTC
        return ensure_aware(value) if value is not None else None

    class Config:
        from_attributes = True


class ReservationCreated(BaseModel):
    reservation: Reservation
    payment_required: bool
    payment_amount: float


class OccurrenceConflict(BaseModel):
    occurrence: int
    date: date
    time: str
    reason: str
    message: str
    existing_reservation_id: int | None = None

    class Config:
        from_attributes = True


class RecurringReservationResult(BaseModel):
    reservations: list[Reservation]
    conflicts: list[OccurrenceConflict]
    created_count: int
    conflict_count: int

    class Config:
        from_attributes = True

