"""Half-open time intervals and the overlap rule shared by the whole engine."""

from __future__ import annotations

from dataclasses import dataclass
from datetime import datetime, timedelta, timezone
from decimal import Decimal

from sqlalchemy import and_
from sqlalchemy.sql.elements import ColumnElement

from .errors import InvalidInterval

_SECONDS_PER_HOUR = Decimal(3600)


def ensure_aware(value: datetime) -> datetime:
    """Treat naive datetimes (as returned by SQLite) as UTC."""
    if value.tzinfo is None:
        return value.replace(tzinfo=timezone.utc)
    return value


def to_utc(value: datetime) -> datetime:
    return ensure_aware(value).astimezone(timezone.utc)


def hours_between(start: datetime, end: datetime) -> Decimal:
    delta = to_utc(end) - to_utc(start)
    return Decimal(int(delta.total_seconds())) / _SECONDS_PER_HOUR


@dataclass(frozen=True, slots=True)
class Interval:
    """``[start, end)`` in UTC. Construction fails unless ``end > start``."""

    start: datetime
    end: datetime

    def __post_init__(self) -> None:
        start = to_utc(self.start)
        end = to_utc(self.end)
        if end <= start:
            raise InvalidInterval(
                "End time must be after start time",
                {"start_time": start.isoformat(), "end_time": end.isoformat()},
            )
        object.__setattr__(self, "start", start)
        object.__setattr__(self, "end", end)

    @classmethod
    def from_duration(cls, start: datetime, hours: Decimal | float | int) -> Interval:
        hours = Decimal(str(hours))
        if hours <= 0:
            raise InvalidInterval("Duration must be positive", {"duration_hours": str(hours)})
        return cls(start, start + timedelta(seconds=float(hours * _SECONDS_PER_HOUR)))

    @property
    def duration(self) -> timedelta:
        return self.end - self.start

    @property
    def duration_hours(self) -> Decimal:
        return hours_between(self.start, self.end)

    def overlaps(self, other: Interval) -> bool:
        return overlaps(self, other)


def overlaps(a: Interval, b: Interval) -> bool:
    # touching endpoints do not overlap
    return a.start < b.end and a.end > b.start


def overlap_clause(start_column, end_column, interval: Interval) -> ColumnElement[bool]:
    """SQL form of :func:`overlaps` against stored ``start``/``end`` columns."""
    return and_(start_column < interval.end, end_column > interval.start)
