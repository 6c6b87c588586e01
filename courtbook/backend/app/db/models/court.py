from datetime import datetime
from decimal import Decimal
from sqlalchemy import Boolean, CheckConstraint, DateTime, Integer, Numeric, String, func
from sqlalchemy.orm import Mapped, mapped_column, relationship
from ..session import Base
from ...core.constants import DEFAULT_CLOSE_HOUR, DEFAULT_OPEN_HOUR


class Court(Base):
    __tablename__ = "courts"
    __table_args__ = (
        CheckConstraint(
            "open_hour >= 0 AND close_hour <= 24 AND open_hour < close_hour",
            name="ck_court_operating_hours",
        ),
        CheckConstraint("hourly_rate >= 0", name="ck_court_hourly_rate_non_negative"),
    )

    id: Mapped[int] = mapped_column(Integer, primary_key=True)
    facility_id: Mapped[int] = mapped_column(Integer, index=True)
    name: Mapped[str] = mapped_column(String(100))
    open_hour: Mapped[int] = mapped_column(Integer, default=DEFAULT_OPEN_HOUR)
    close_hour: Mapped[int] = mapped_column(Integer, default=DEFAULT_CLOSE_HOUR)
    hourly_rate: Mapped[Decimal] = mapped_column(Numeric(10, 2), default=Decimal("0"))
    is_available: Mapped[bool] = mapped_column(Boolean, default=True)
    created_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), server_default=func.now())

    reservations = relationship("Reservation", back_populates="court")
