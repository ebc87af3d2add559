"""Completion rates, rolling averages and their display strings."""

from __future__ import annotations

from dataclasses import dataclass
from datetime import date, timedelta
from enum import Enum
from typing import Optional

from ..models.habit import Habit, HabitEntry
from ..models.habit_type import BooleanType, DurationType, HabitType, NumericType, RatingType
from .entries import EntrySnapshot
from .goals import qualifies
from .periods import LocalCalendar


class Timeframe(str, Enum):
    """Rolling windows offered for summaries."""

    WEEK = "week"
    MONTH = "month"
    QUARTER = "quarter"
    YEAR = "year"

    @property
    def days(self) -> int:
        return {"week": 7, "month": 30, "quarter": 90, "year": 365}[self.value]


@dataclass(frozen=True, slots=True)
class HabitSummary:
    """Display-ready ``value`` plus a short ``caption`` describing it."""

    value: str
    caption: str


def _window(days: int, today: date) -> list[date]:
    return [today - timedelta(days=offset) for offset in range(days)]


def completion_rate(
    habit: Habit,
    snapshot: EntrySnapshot,
    days: int,
    *,
    calendar: LocalCalendar,
    today: date | None = None,
) -> float:
    """Share of the last ``days`` days (today included) with a qualifying entry."""

    if days <= 0:
        return 0.0
    habit_type = habit.habit_type
    today = today or calendar.today()
    completed = sum(
        1 for day in _window(days, today) if qualifies(snapshot.entry_for_day(day), habit_type)
    )
    return completed / days


def _measure(entry: HabitEntry, habit_type: HabitType) -> float:
    if isinstance(habit_type, DurationType):
        return float(entry.duration_seconds or 0)
    if isinstance(habit_type, RatingType):
        return float(entry.rating_value or 0)
    if isinstance(habit_type, NumericType):
        return float(entry.numeric_value or 0.0)
    raise TypeError(f"No averaged measure for {habit_type!r}")


def habit_average(
    habit: Habit,
    snapshot: EntrySnapshot,
    days: int,
    *,
    calendar: LocalCalendar,
    today: date | None = None,
) -> float:
    """Average over days that have a qualifying entry.

    Boolean habits report their completion rate. Days without an entry are
    left out of the denominator rather than counted as zero.
    """

    habit_type = habit.habit_type
    if isinstance(habit_type, BooleanType):
        return completion_rate(habit, snapshot, days, calendar=calendar, today=today)
    if days <= 0:
        return 0.0

    today = today or calendar.today()
    values = [
        _measure(entry, habit_type)
        for entry in (snapshot.entry_for_day(day) for day in _window(days, today))
        if entry is not None and qualifies(entry, habit_type)
    ]
    return sum(values) / len(values) if values else 0.0


def summarize(
    habit: Habit,
    snapshot: EntrySnapshot,
    days: int,
    *,
    calendar: LocalCalendar,
    today: date | None = None,
) -> HabitSummary:
    habit_type = habit.habit_type
    average = habit_average(habit, snapshot, days, calendar=calendar, today=today)

    if isinstance(habit_type, BooleanType):
        count = round(average * days)
        return HabitSummary(value=str(count), caption="day" if count == 1 else "days")
    if isinstance(habit_type, DurationType):
        return HabitSummary(value=format_duration(average), caption="avg")
    if isinstance(habit_type, RatingType):
        return HabitSummary(value=f"{average:.2f}", caption=f"avg / {habit_type.max}")
    if isinstance(habit_type, NumericType):
        caption = f"avg {habit_type.unit}" if habit_type.unit else "avg"
        return HabitSummary(value=f"{average:.2f}", caption=caption)
    raise TypeError(f"Unsupported habit type: {habit_type!r}")


def format_duration(seconds: float, *, max_units: int = 2) -> str:
    """Abbreviated duration such as ``1h 30m`` using at most ``max_units`` parts."""

    total = int(round(seconds))
    if total <= 0:
        return "0m"
    hours, rest = divmod(total, 3600)
    minutes, secs = divmod(rest, 60)
    parts = [f"{v}{u}" for v, u in ((hours, "h"), (minutes, "m"), (secs, "s")) if v]
    return " ".join(parts[:max_units])


def format_number(value: float) -> str:
    """Integral values without decimals, everything else with two."""

    return f"{value:.0f}" if float(value).is_integer() else f"{value:.2f}"


def entry_display_value(entry: Optional[HabitEntry], habit_type: HabitType) -> str:
    if entry is None:
        return "N/A"
    if isinstance(habit_type, BooleanType):
        return "Completed" if entry.completed is True else "Incomplete"
    if isinstance(habit_type, DurationType):
        if entry.duration_seconds is None:
            return "No time"
        return format_duration(entry.duration_seconds)
    if isinstance(habit_type, RatingType):
        if entry.rating_value is None:
            return "No rating"
        return f"{entry.rating_value} / {habit_type.max}"
    if isinstance(habit_type, NumericType):
        if entry.numeric_value is None:
            return "No value"
        return f"{entry.numeric_value:.1f} {habit_type.unit}".rstrip()
    raise TypeError(f"Unsupported habit type: {habit_type!r}")


__all__ = [
    "HabitSummary",
    "Timeframe",
    "completion_rate",
    "entry_display_value",
    "format_duration",
    "format_number",
    "habit_average",
    "summarize",
]
