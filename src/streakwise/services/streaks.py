"""Streak helpers: goal streaks counted in periods and plain day streaks."""

from __future__ import annotations

from datetime import date, datetime, timedelta
from typing import Optional

from ..models.habit import Habit
from ..models.habit_type import Frequency
from .entries import EntrySnapshot
from .goals import period_raw_value, qualifies
from .periods import LocalCalendar, period_interval

DEFAULT_MAX_PERIODS = 3660


def current_goal_streak(
    habit: Habit,
    snapshot: EntrySnapshot,
    *,
    calendar: LocalCalendar,
    reference: date | datetime | None = None,
    max_periods: Optional[int] = None,
) -> int:
    """Count consecutive periods meeting the goal, newest first.

    The walk starts at the period containing ``reference`` and stops at the
    first period below target. It also stops once a period ends before both
    the habit's creation day and its earliest entry, or after
    ``max_periods`` periods.
    """

    habit_type = habit.habit_type
    goal = habit_type.goal
    if not goal.is_enabled:
        return 0

    reference = reference if reference is not None else calendar.today()
    limit = max_periods if max_periods is not None else DEFAULT_MAX_PERIODS
    history_start = _history_start(habit, snapshot, calendar)

    streak = 0
    for index in range(limit):
        period = period_interval(index, goal.frequency, reference, calendar=calendar)
        if history_start is None or period.end <= history_start:
            break
        if period_raw_value(snapshot, habit_type, period) < goal.target:
            break
        streak += 1
    return streak


def current_streak(
    habit: Habit,
    snapshot: EntrySnapshot,
    *,
    calendar: LocalCalendar,
    today: date | None = None,
) -> int:
    """Return consecutive qualifying days ending today."""

    habit_type = habit.habit_type
    cursor = today or calendar.today()
    current = 0
    while qualifies(snapshot.entry_for_day(cursor), habit_type):
        current += 1
        cursor -= timedelta(days=1)
    return current


def longest_streak(habit: Habit, snapshot: EntrySnapshot) -> int:
    """Return the longest run of consecutive qualifying days on record."""

    habit_type = habit.habit_type
    days = [d for d in snapshot.days if qualifies(snapshot.entry_for_day(d), habit_type)]

    longest = 0
    run = 0
    last_day: date | None = None
    for d in days:
        if last_day is not None and d == last_day + timedelta(days=1):
            run += 1
        else:
            longest = max(longest, run)
            run = 1
        last_day = d
    return max(longest, run)


def streak_unit(frequency: Frequency, count: int) -> str:
    """Label for a streak count, e.g. ``1 week`` vs ``3 weeks``."""

    unit = frequency.unit
    return unit if count == 1 else f"{unit}s"


def _history_start(
    habit: Habit, snapshot: EntrySnapshot, calendar: LocalCalendar
) -> Optional[date]:
    candidates = [d for d in (snapshot.first_day,) if d is not None]
    if habit.created_at is not None:
        candidates.append(calendar.local_day(habit.created_at))
    return min(candidates) if candidates else None


__all__ = [
    "DEFAULT_MAX_PERIODS",
    "current_goal_streak",
    "current_streak",
    "longest_streak",
    "streak_unit",
]
