"""Calendar period arithmetic for daily, weekly and monthly goals.

Periods are half-open ranges of calendar days ``[start, end)``. Stepping is
done on ``date`` values (days, weeks, calendar months) so a period always
covers whole local days regardless of DST shifts; ``start_instant`` and
``end_instant`` map the boundaries back onto local midnights when an
instant is needed.
"""

from __future__ import annotations

from calendar import monthrange
from dataclasses import dataclass, field
from datetime import date, datetime, time, timedelta, tzinfo
from typing import Callable, Optional

from ..models.habit_type import Frequency


@dataclass(frozen=True)
class LocalCalendar:
    """Timezone, week start and clock used for every calendar computation."""

    tz: tzinfo
    first_weekday: int = 0  # Monday, ISO weeks
    clock: Optional[Callable[[], datetime]] = field(default=None, compare=False)

    def __post_init__(self) -> None:
        if not 0 <= self.first_weekday <= 6:
            raise ValueError(f"first_weekday must be 0..6, got {self.first_weekday}")

    def now(self) -> datetime:
        current = self.clock() if self.clock is not None else datetime.now(self.tz)
        if current.tzinfo is None:
            return current.replace(tzinfo=self.tz)
        return current.astimezone(self.tz)

    def today(self) -> date:
        return self.now().date()

    def local_day(self, value: date | datetime) -> date:
        """Normalize a date or timestamp to its local calendar day."""

        if isinstance(value, datetime):
            if value.tzinfo is not None:
                value = value.astimezone(self.tz)
            return value.date()
        return value

    def midnight(self, day: date) -> datetime:
        return datetime.combine(day, time.min, tzinfo=self.tz)


@dataclass(frozen=True, slots=True)
class Period:
    """A goal period covering the days in ``[start, end)``."""

    start: date
    end: date
    frequency: Frequency

    def __contains__(self, day: date) -> bool:
        return self.start <= day < self.end

    @property
    def days(self) -> int:
        return (self.end - self.start).days

    def start_instant(self, calendar: LocalCalendar) -> datetime:
        return calendar.midnight(self.start)

    def end_instant(self, calendar: LocalCalendar) -> datetime:
        return calendar.midnight(self.end)


def add_months(day: date, months: int) -> date:
    """Shift by calendar months, clamping to the last day of short months."""

    index = day.year * 12 + (day.month - 1) + months
    year, month = divmod(index, 12)
    month += 1
    return day.replace(year=year, month=month, day=min(day.day, monthrange(year, month)[1]))


def start_of_period(reference: date, frequency: Frequency, *, first_weekday: int = 0) -> date:
    """Return the first day of the period that contains ``reference``."""

    if frequency is Frequency.DAILY:
        return reference
    if frequency is Frequency.WEEKLY:
        return reference - timedelta(days=(reference.weekday() - first_weekday) % 7)
    return reference.replace(day=1)


def next_period_start(start: date, frequency: Frequency) -> date:
    if frequency is Frequency.DAILY:
        return start + timedelta(days=1)
    if frequency is Frequency.WEEKLY:
        return start + timedelta(weeks=1)
    return add_months(start, 1)


def shift(reference: date, frequency: Frequency, periods: int) -> date:
    """Move ``reference`` by whole periods (negative goes back in time)."""

    if frequency is Frequency.DAILY:
        return reference + timedelta(days=periods)
    if frequency is Frequency.WEEKLY:
        return reference + timedelta(weeks=periods)
    return add_months(reference, periods)


def period_interval(
    offset: int,
    frequency: Frequency,
    reference: date | datetime,
    *,
    calendar: LocalCalendar,
) -> Period:
    """Return the period ``offset`` steps before the one containing ``reference``."""

    if offset < 0:
        raise ValueError("offset must be >= 0")
    day = calendar.local_day(reference)
    start = start_of_period(
        shift(day, frequency, -offset), frequency, first_weekday=calendar.first_weekday
    )
    return Period(start=start, end=next_period_start(start, frequency), frequency=frequency)


def current_period(
    frequency: Frequency, *, calendar: LocalCalendar, reference: date | datetime | None = None
) -> Period:
    return period_interval(
        0, frequency, reference if reference is not None else calendar.today(), calendar=calendar
    )


__all__ = [
    "LocalCalendar",
    "Period",
    "add_months",
    "current_period",
    "next_period_start",
    "period_interval",
    "shift",
    "start_of_period",
]
