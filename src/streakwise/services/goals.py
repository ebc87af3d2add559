"""Goal aggregation: per-period raw values and progress ratios."""

from __future__ import annotations

from dataclasses import dataclass
from datetime import date, datetime
from typing import Iterable, Optional

from ..models.habit import Habit, HabitEntry
from ..models.habit_type import BooleanType, DurationType, HabitType, NumericType, RatingType
from .entries import EntrySnapshot
from .periods import LocalCalendar, Period, current_period


@dataclass(frozen=True, slots=True)
class GoalProgress:
    """Aggregated value for the current period and its ratio to the target."""

    raw: float
    rate: float
    period: Period

    @property
    def met(self) -> bool:
        return self.rate >= 1.0


def raw_value(entries: Iterable[HabitEntry], habit_type: HabitType) -> float:
    """Reduce entries to the quantity a goal target is compared against.

    Boolean counts completions, Duration sums seconds, Rating counts rated
    entries (presence, not magnitude) and Numeric sums values.
    """

    if isinstance(habit_type, BooleanType):
        return float(sum(1 for e in entries if e.completed is True))
    if isinstance(habit_type, DurationType):
        return float(sum(e.duration_seconds or 0 for e in entries))
    if isinstance(habit_type, RatingType):
        return float(sum(1 for e in entries if e.rating_value is not None))
    if isinstance(habit_type, NumericType):
        return float(sum(e.numeric_value or 0.0 for e in entries))
    raise TypeError(f"Unsupported habit type: {habit_type!r}")


def qualifies(entry: Optional[HabitEntry], habit_type: HabitType) -> bool:
    """Return True when a single day's entry counts as "done" for day streaks."""

    if entry is None:
        return False
    if isinstance(habit_type, BooleanType):
        return entry.completed is True
    if isinstance(habit_type, DurationType):
        return (entry.duration_seconds or 0) > 0
    if isinstance(habit_type, RatingType):
        return entry.rating_value is not None
    if isinstance(habit_type, NumericType):
        return (entry.numeric_value or 0.0) > 0
    raise TypeError(f"Unsupported habit type: {habit_type!r}")


def period_raw_value(snapshot: EntrySnapshot, habit_type: HabitType, period: Period) -> float:
    return raw_value(snapshot.in_period(period), habit_type)


def goal_progress(
    habit: Habit,
    snapshot: EntrySnapshot,
    *,
    calendar: LocalCalendar,
    reference: date | datetime | None = None,
) -> Optional[GoalProgress]:
    """Return progress toward the goal in the period containing ``reference``.

    Returns None when the habit has no goal configured (target <= 0).
    """

    habit_type = habit.habit_type
    goal = habit_type.goal
    if not goal.is_enabled:
        return None

    period = current_period(goal.frequency, calendar=calendar, reference=reference)
    raw = period_raw_value(snapshot, habit_type, period)
    return GoalProgress(raw=raw, rate=max(0.0, min(1.0, raw / goal.target)), period=period)


__all__ = ["GoalProgress", "goal_progress", "period_raw_value", "qualifies", "raw_value"]
