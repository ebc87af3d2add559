"""Tests for report rows and the application context wiring."""

from __future__ import annotations

from datetime import time

from conftest import TODAY, build_habit, days_ago, make_entry, snapshot_of
from streakwise.config import BaseConfig
from streakwise.context import create_app_context
from streakwise.models import BooleanType, Frequency, Goal
from streakwise.services.metrics import Timeframe
from streakwise.services.reminders import primary_request_id
from streakwise.services.reports import build_report, top_streaks


class TestBuildReport:
    def test_report_combines_goal_and_streaks(self, calendar):
        habit = build_habit(BooleanType(goal=Goal(target=1, frequency=Frequency.DAILY)))
        entries = [make_entry(habit, days_ago(n), completed=True) for n in (0, 1, 2, 5, 6)]

        report = build_report(habit, snapshot_of(habit, entries, calendar), calendar=calendar)

        assert report.goal_streak == 3
        assert report.goal_streak_unit == "days"
        assert report.day_streak == 3
        assert report.longest_day_streak == 3
        assert report.progress_label == "100%"
        assert (report.summary.value, report.summary.caption) == ("5", "days")

    def test_report_without_goal(self, calendar):
        habit = build_habit(BooleanType())
        report = build_report(
            habit, snapshot_of(habit, [], calendar), calendar=calendar, timeframe=Timeframe.MONTH
        )

        assert report.progress is None
        assert report.progress_label == "no goal"
        assert report.goal_streak == 0
        assert report.completion_rate == 0.0

    def test_top_streaks_orders_by_day_streak(self, calendar):
        reports = []
        for title, days in (("A", 1), ("B", 4), ("C", 2)):
            habit = build_habit(title=title)
            entries = [make_entry(habit, days_ago(n), completed=True) for n in range(days)]
            reports.append(build_report(habit, snapshot_of(habit, entries, calendar), calendar=calendar))

        assert [r.habit.title for r in top_streaks(reports, limit=2)] == ["B", "C"]


class TestAppContext:
    def test_context_wires_repository_and_reminders(self, port, calendar):
        ctx = create_app_context(BaseConfig(), calendar=calendar, notifications=port)
        try:
            habit = ctx.habit_repo.create(build_habit(title="Walk", reminder_time=time(18, 0)))
            ctx.habit_repo.upsert_entry(habit.id, TODAY, completed=True)

            results = ctx.reminders.reschedule_all(ctx.habit_repo.list_active())

            assert results[habit.id].ok
            assert primary_request_id(habit.id) in port.requests
            [report] = ctx.reports()
            assert report.day_streak == 1
        finally:
            ctx.shutdown()
