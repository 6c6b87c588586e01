"""Read-only access to courts.

Courts are owned by club management; the reservation engine only looks
them up and reads their operating window, rate and availability flag.
"""

from datetime import date, datetime, time, timedelta
from zoneinfo import ZoneInfo

from sqlalchemy.orm import Session

from ..config import get_settings
from ..core.errors import NotFound
from ..core.intervals import Interval
from ..db import models


def local_timezone() -> ZoneInfo:
    return ZoneInfo(get_settings().timezone)


def get_court(db: Session, court_id: int) -> models.Court:
    court = db.get(models.Court, court_id)
    if court is None:
        raise NotFound("Court not found", {"court_id": court_id})
    return court


def local_datetime(day: date, hour: int = 0) -> datetime:
    # aware arithmetic is wall-clock, so 06:00 stays 06:00 across DST changes
    return datetime.combine(day, time(), tzinfo=local_timezone()) + timedelta(hours=hour)


def operating_window(court: models.Court, day: date) -> Interval:
    return Interval(local_datetime(day, court.open_hour), local_datetime(day, court.close_hour))
