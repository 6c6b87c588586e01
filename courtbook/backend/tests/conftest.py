import os

os.environ.setdefault("DATABASE_URL", "sqlite+pysqlite:///:memory:")
os.environ.setdefault("TIMEZONE", "UTC")
os.environ.setdefault("PAYMENT_PROVIDER", "stub")

from datetime import datetime, timezone
from decimal import Decimal

import pytest
from sqlalchemy import create_engine
from sqlalchemy.orm import sessionmaker

from app.core.clock import FixedClock
from app.core.intervals import Interval
from app.db import models
from app.db.session import Base
from app.services import reservation_service

# Saturday morning; 2024-06-03 is the following Monday
NOW = datetime(2024, 6, 1, 9, 0, tzinfo=timezone.utc)


@pytest.fixture()
def db_session():
    engine = create_engine("sqlite+pysqlite:///:memory:", future=True)
    TestingSessionLocal = sessionmaker(bind=engine, autoflush=False, autocommit=False)
    Base.metadata.create_all(bind=engine)
    session = TestingSessionLocal()
    try:
        yield session
    finally:
        session.close()


@pytest.fixture()
def file_sessionmaker(tmp_path):
    """Sessions on a shared database file, for tests that need several connections."""
    engine = create_engine(
        f"sqlite+pysqlite:///{tmp_path / 'courtbook.db'}",
        connect_args={"check_same_thread": False, "timeout": 30},
        future=True,
    )
    Base.metadata.create_all(bind=engine)
    try:
        yield sessionmaker(bind=engine, autoflush=False, autocommit=False, expire_on_commit=False)
    finally:
        engine.dispose()


@pytest.fixture()
def clock():
    return FixedClock(NOW)


def create_court(session, **overrides) -> models.Court:
    data = {"facility_id": 1, "name": "Court 1", "hourly_rate": Decimal("40.00")}
    data.update(overrides)
    court = models.Court(**data)
    session.add(court)
    session.commit()
    session.refresh(court)
    return court


def add_reservation(
    session,
    court: models.Court,
    start: datetime,
    end: datetime,
    status: models.ReservationStatus = models.ReservationStatus.confirmed,
    requester_id: int = 99,
) -> models.Reservation:
    """Insert a reservation directly, bypassing the booking rules."""
    pricing = reservation_service.price_reservation(
        court.hourly_rate, Interval(start, end).duration_hours
    )
    reservation = models.Reservation(
        court_id=court.id,
        requester_id=requester_id,
        facility_id=court.facility_id,
        start_time=start,
        end_time=end,
        duration_hours=pricing.duration_hours,
        status=status,
        hourly_rate=pricing.hourly_rate,
        total_amount=pricing.total_amount,
        member_discount=pricing.member_discount,
        final_amount=pricing.final_amount,
        refund_amount=Decimal("0"),
        created_at=NOW,
    )
    session.add(reservation)
    session.commit()
    session.refresh(reservation)
    return reservation


def at(day: int, hour: int, minute: int = 0, month: int = 6) -> datetime:
    return datetime(2024, month, day, hour, minute, tzinfo=timezone.utc)
