"""Tests for completion rates, averages and display formatting."""

from __future__ import annotations

import pytest

from conftest import build_habit, days_ago, make_entry, snapshot_of
from streakwise.models import BooleanType, DurationType, NumericType, RatingType
from streakwise.services.metrics import (
    Timeframe,
    completion_rate,
    entry_display_value,
    format_duration,
    format_number,
    habit_average,
    summarize,
)


class TestCompletionRate:
    def test_zero_day_window_is_zero(self, calendar):
        habit = build_habit()
        snapshot = snapshot_of(habit, [make_entry(habit, days_ago(0), completed=True)], calendar)

        assert completion_rate(habit, snapshot, 0, calendar=calendar) == 0.0

    def test_counts_qualifying_days_in_window(self, calendar):
        habit = build_habit()
        entries = [
            make_entry(habit, days_ago(0), completed=True),
            make_entry(habit, days_ago(2), completed=True),
            make_entry(habit, days_ago(4), completed=False),
            make_entry(habit, days_ago(6), completed=True),
            make_entry(habit, days_ago(7), completed=True),  # outside a 7-day window
        ]

        rate = completion_rate(habit, snapshot_of(habit, entries, calendar), 7, calendar=calendar)
        assert rate == pytest.approx(3 / 7)

    def test_zero_duration_is_not_completed(self, calendar):
        habit = build_habit(DurationType())
        entries = [
            make_entry(habit, days_ago(0), duration_seconds=0),
            make_entry(habit, days_ago(1), duration_seconds=60),
        ]

        rate = completion_rate(habit, snapshot_of(habit, entries, calendar), 2, calendar=calendar)
        assert rate == pytest.approx(0.5)


class TestHabitAverage:
    def test_numeric_average_skips_days_without_entries(self, calendar):
        """Five-day window with values 4 and 6 on two days averages 5."""
        habit = build_habit(NumericType(unit="cups"))
        entries = [
            make_entry(habit, days_ago(1), numeric_value=4),
            make_entry(habit, days_ago(3), numeric_value=6),
        ]

        average = habit_average(habit, snapshot_of(habit, entries, calendar), 5, calendar=calendar)
        assert average == pytest.approx(5.0)

    def test_boolean_average_is_completion_rate(self, calendar):
        habit = build_habit()
        entries = [make_entry(habit, days_ago(n), completed=True) for n in (0, 1)]
        snapshot = snapshot_of(habit, entries, calendar)

        assert habit_average(habit, snapshot, 4, calendar=calendar) == pytest.approx(0.5)

    def test_empty_window_averages_zero(self, calendar):
        habit = build_habit(RatingType())
        assert habit_average(habit, snapshot_of(habit, [], calendar), 7, calendar=calendar) == 0.0


class TestSummarize:
    def test_boolean_reports_day_count(self, calendar):
        habit = build_habit(BooleanType())
        entries = [make_entry(habit, days_ago(n), completed=True) for n in (0, 2, 5)]

        summary = summarize(habit, snapshot_of(habit, entries, calendar), 7, calendar=calendar)
        assert (summary.value, summary.caption) == ("3", "days")

    def test_boolean_single_day_caption(self, calendar):
        habit = build_habit(BooleanType())
        entries = [make_entry(habit, days_ago(0), completed=True)]

        summary = summarize(habit, snapshot_of(habit, entries, calendar), 7, calendar=calendar)
        assert (summary.value, summary.caption) == ("1", "day")

    def test_duration_reports_formatted_average(self, calendar):
        habit = build_habit(DurationType())
        entries = [
            make_entry(habit, days_ago(0), duration_seconds=3600),
            make_entry(habit, days_ago(1), duration_seconds=7200),
        ]

        summary = summarize(habit, snapshot_of(habit, entries, calendar), 7, calendar=calendar)
        assert (summary.value, summary.caption) == ("1h 30m", "avg")

    def test_rating_reports_average_out_of_max(self, calendar):
        habit = build_habit(RatingType(min=1, max=5))
        entries = [
            make_entry(habit, days_ago(0), rating_value=3),
            make_entry(habit, days_ago(1), rating_value=4),
        ]

        summary = summarize(habit, snapshot_of(habit, entries, calendar), 7, calendar=calendar)
        assert (summary.value, summary.caption) == ("3.50", "avg / 5")

    def test_numeric_caption_includes_unit(self, calendar):
        habit = build_habit(NumericType(unit="km"))
        entries = [make_entry(habit, days_ago(0), numeric_value=2.5)]

        summary = summarize(habit, snapshot_of(habit, entries, calendar), 7, calendar=calendar)
        assert (summary.value, summary.caption) == ("2.50", "avg km")


class TestFormatting:
    @pytest.mark.parametrize(
        "seconds,expected",
        [(0, "0m"), (-5, "0m"), (45, "45s"), (90, "1m 30s"), (5400, "1h 30m"), (3725, "1h 2m")],
    )
    def test_format_duration(self, seconds, expected):
        assert format_duration(seconds) == expected

    def test_format_number(self):
        assert format_number(3.0) == "3"
        assert format_number(2.5) == "2.50"

    def test_entry_display_values(self):
        habit = build_habit()
        assert entry_display_value(None, BooleanType()) == "N/A"
        assert entry_display_value(make_entry(habit, days_ago(0), completed=True), BooleanType()) == "Completed"
        assert entry_display_value(make_entry(habit, days_ago(0)), BooleanType()) == "Incomplete"
        assert entry_display_value(make_entry(habit, days_ago(0)), DurationType()) == "No time"
        assert (
            entry_display_value(make_entry(habit, days_ago(0), rating_value=4), RatingType(max=5))
            == "4 / 5"
        )
        assert (
            entry_display_value(make_entry(habit, days_ago(0), numeric_value=2), NumericType(unit="km"))
            == "2.0 km"
        )

    def test_timeframe_days(self):
        assert [t.days for t in Timeframe] == [7, 30, 90, 365]
