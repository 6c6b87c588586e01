"""Expansion of recurring booking requests into concrete intervals.

Nothing in here touches the database: :func:`expand` is a deterministic
generator, so the same request always yields the same occurrences.
"""

from __future__ import annotations

import calendar
from collections.abc import Iterator
from dataclasses import dataclass
from datetime import date, datetime, timedelta
from decimal import Decimal
from enum import Enum

from ..core.constants import DEFAULT_MAX_OCCURRENCES, MAX_RECURRENCE_OCCURRENCES
from ..core.intervals import Interval, ensure_aware

WEEKDAY_NAMES = (
    "monday",
    "tuesday",
    "wednesday",
    "thursday",
    "friday",
    "saturday",
    "sunday",
)


class RecurrencePattern(str, Enum):
    daily = "daily"
    weekly = "weekly"
    monthly = "monthly"


@dataclass(frozen=True, slots=True)
class RecurrenceRule:
    pattern: RecurrencePattern
    interval: int = 1
    days_of_week: tuple[str, ...] = ()
    max_occurrences: int = DEFAULT_MAX_OCCURRENCES
    end_date: date | None = None

    def __post_init__(self) -> None:
        object.__setattr__(self, "pattern", RecurrencePattern(self.pattern))
        if self.interval < 1:
            raise ValueError("Recurrence interval must be at least 1")
        if self.max_occurrences < 1:
            raise ValueError("max_occurrences must be at least 1")
        days = tuple(day.strip().lower() for day in self.days_of_week)
        unknown = [day for day in days if day not in WEEKDAY_NAMES]
        if unknown:
            raise ValueError(f"Unknown weekday names: {', '.join(unknown)}")
        if self.pattern == RecurrencePattern.weekly and not days:
            raise ValueError("Weekly recurrence requires at least one weekday")
        object.__setattr__(self, "days_of_week", days)


def add_months(day: date, months: int) -> date:
    """Calendar month arithmetic; the day is clamped to the target month's length."""
    month_index = day.month - 1 + months
    year = day.year + month_index // 12
    month = month_index % 12 + 1
    last_day = calendar.monthrange(year, month)[1]
    return day.replace(year=year, month=month, day=min(day.day, last_day))


def _candidate_dates(first: date, rule: RecurrenceRule) -> Iterator[date]:
    # the sequence ends where the calendar does
    try:
        if rule.pattern == RecurrencePattern.daily:
            step = 0
            while True:
                yield first + timedelta(days=step * rule.interval)
                step += 1
        elif rule.pattern == RecurrencePattern.monthly:
            # offsets are taken from the first date so a 31st does not drift to the 28th
            step = 0
            while True:
                yield add_months(first, step * rule.interval)
                step += 1
        else:
            current = first
            while True:
                if WEEKDAY_NAMES[current.weekday()] in rule.days_of_week:
                    yield current
                current += timedelta(days=1)
                if (current - first).days % 7 == 0:
                    current += timedelta(weeks=rule.interval - 1)
    except (OverflowError, ValueError):
        return


def expand(
    start_time: datetime,
    duration_hours: Decimal | float | int,
    rule: RecurrenceRule,
) -> Iterator[Interval]:
    """Yield the occurrence intervals of ``rule`` starting at ``start_time``.

    Every occurrence keeps the wall-clock time of ``start_time`` in its own
    timezone. Generation stops at ``max_occurrences``, after ``end_date`` or
    at the hard cap of :data:`MAX_RECURRENCE_OCCURRENCES`, whichever comes
    first. A rule whose steps run past the last representable date ends
    there instead of failing.
    """
    start_time = ensure_aware(start_time)
    limit = min(rule.max_occurrences, MAX_RECURRENCE_OCCURRENCES)
    wall_clock = start_time.timetz()
    candidates = _candidate_dates(start_time.date(), rule)
    for _ in range(limit):
        day = next(candidates, None)
        if day is None:
            return
        if rule.end_date is not None and day > rule.end_date:
            return
        try:
            occurrence = Interval.from_duration(datetime.combine(day, wall_clock), duration_hours)
        except OverflowError:
            return
        yield occurrence
