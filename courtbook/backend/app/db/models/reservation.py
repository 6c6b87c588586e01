from datetime import datetime
from decimal import Decimal
from enum import Enum as PyEnum
from sqlalchemy import (
    JSON,
    CheckConstraint,
    DateTime,
    Enum,
    ForeignKey,
    Index,
    Integer,
    Numeric,
    String,
    Text,
    func,
)
from sqlalchemy.orm import Mapped, mapped_column, relationship
from ..session import Base
from ...core.intervals import Interval


class ReservationStatus(str, PyEnum):
    pending = "pending"
    confirmed = "confirmed"
    cancelled = "cancelled"
    completed = "completed"
    no_show = "no_show"

    @property
    def is_terminal(self) -> bool:
        return self in TERMINAL_STATUSES


TERMINAL_STATUSES = frozenset(
    {ReservationStatus.cancelled, ReservationStatus.completed, ReservationStatus.no_show}
)
# Reservations in these states occupy the court
ACTIVE_STATUSES = (ReservationStatus.pending, ReservationStatus.confirmed)


class BookingSource(str, PyEnum):
    web = "web"
    mobile = "mobile"
    phone = "phone"
    in_person = "in_person"
    recurring = "recurring"


class MatchType(str, PyEnum):
    singles = "singles"
    doubles = "doubles"
    mixed_doubles = "mixed_doubles"
    practice = "practice"
    lesson = "lesson"
    other = "other"


class Reservation(Base):
    __tablename__ = "court_reservations"
    __table_args__ = (
        CheckConstraint("end_time > start_time", name="ck_reservation_interval"),
        Index("ix_reservation_court_window", "court_id", "start_time", "end_time"),
    )

    id: Mapped[int] = mapped_column(Integer, primary_key=True)
    court_id: Mapped[int] = mapped_column(ForeignKey("courts.id", ondelete="CASCADE"))
    requester_id: Mapped[int] = mapped_column(Integer, index=True)
    facility_id: Mapped[int] = mapped_column(Integer, index=True)
    start_time: Mapped[datetime] = mapped_column(DateTime(timezone=True))
    end_time: Mapped[datetime] = mapped_column(DateTime(timezone=True))
    duration_hours: Mapped[Decimal] = mapped_column(Numeric(5, 2))
    purpose: Mapped[str | None] = mapped_column(String(200))
    match_type: Mapped[MatchType | None] = mapped_column(Enum(MatchType))
    # user ids of the players on court
    participants: Mapped[list | None] = mapped_column(JSON)
    guest_count: Mapped[int] = mapped_column(Integer, default=0, nullable=False)
    status: Mapped[ReservationStatus] = mapped_column(
        Enum(ReservationStatus), default=ReservationStatus.pending, index=True
    )
    hourly_rate: Mapped[Decimal] = mapped_column(Numeric(8, 2))
    total_amount: Mapped[Decimal] = mapped_column(Numeric(10, 2))
    member_discount: Mapped[Decimal] = mapped_column(Numeric(8, 2), default=Decimal("0"))
    final_amount: Mapped[Decimal] = mapped_column(Numeric(10, 2))
    cancelled_at: Mapped[datetime | None] = mapped_column(DateTime(timezone=True))
    cancelled_by: Mapped[str | None] = mapped_column(String(64))
    cancellation_reason: Mapped[str | None] = mapped_column(String(500))
    refund_amount: Mapped[Decimal] = mapped_column(Numeric(10, 2), default=Decimal("0"))
    booking_source: Mapped[BookingSource] = mapped_column(Enum(BookingSource), default=BookingSource.web)
    recurrence_group: Mapped[str | None] = mapped_column(String(36), index=True)
    special_requests: Mapped[str | None] = mapped_column(Text)
    equipment_needed: Mapped[list | None] = mapped_column(JSON)
    notes: Mapped[str | None] = mapped_column(Text)
    created_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), server_default=func.now())
    updated_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), server_default=func.now(), onupdate=func.now()
    )

    court = relationship("Court", back_populates="reservations")

    @property
    def interval(self) -> Interval:
        return Interval(self.start_time, self.end_time)
