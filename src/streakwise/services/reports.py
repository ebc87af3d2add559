"""Per-habit report rows combining goals, streaks and summaries."""

from __future__ import annotations

from dataclasses import dataclass
from datetime import date
from typing import Iterable, Optional

from ..models.habit import Habit
from .entries import EntrySnapshot
from .goals import GoalProgress, goal_progress
from .metrics import HabitSummary, Timeframe, completion_rate, summarize
from .periods import LocalCalendar
from .streaks import current_goal_streak, current_streak, longest_streak, streak_unit


@dataclass(frozen=True, slots=True)
class HabitReport:
    """Lightweight DTO with everything a habit row displays."""

    habit: Habit
    progress: Optional[GoalProgress]
    goal_streak: int
    goal_streak_unit: str
    day_streak: int
    longest_day_streak: int
    completion_rate: float
    summary: HabitSummary
    skipped_entries: int = 0

    @property
    def progress_label(self) -> str:
        if self.progress is None:
            return "no goal"
        return f"{self.progress.rate:.0%}"


def build_report(
    habit: Habit,
    snapshot: EntrySnapshot,
    *,
    calendar: LocalCalendar,
    timeframe: Timeframe = Timeframe.WEEK,
    today: date | None = None,
    max_periods: Optional[int] = None,
) -> HabitReport:
    today = today or calendar.today()
    goal_streak = current_goal_streak(
        habit, snapshot, calendar=calendar, reference=today, max_periods=max_periods
    )
    return HabitReport(
        habit=habit,
        progress=goal_progress(habit, snapshot, calendar=calendar, reference=today),
        goal_streak=goal_streak,
        goal_streak_unit=streak_unit(habit.goal.frequency, goal_streak),
        day_streak=current_streak(habit, snapshot, calendar=calendar, today=today),
        longest_day_streak=longest_streak(habit, snapshot),
        completion_rate=completion_rate(
            habit, snapshot, timeframe.days, calendar=calendar, today=today
        ),
        summary=summarize(habit, snapshot, timeframe.days, calendar=calendar, today=today),
        skipped_entries=snapshot.skipped_count,
    )


def top_streaks(reports: Iterable[HabitReport], *, limit: int = 5) -> list[HabitReport]:
    """Highest day streaks first; ties keep their original order."""

    return sorted(reports, key=lambda r: r.day_streak, reverse=True)[:limit]


__all__ = ["HabitReport", "build_report", "top_streaks"]
