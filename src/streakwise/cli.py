"""Command line entry points."""

from __future__ import annotations

import time as _time
from datetime import datetime
from uuid import UUID

import click

from .config import BaseConfig
from .context import AppContext, create_app_context
from .logging_config import get_logger, setup_logging
from .models.habit import Habit
from .models.habit_type import (
    BooleanType,
    DurationType,
    Frequency,
    Goal,
    HabitType,
    NumericType,
    RatingType,
)
from .services.metrics import Timeframe

logger = get_logger("cli")


def _context(obj: dict) -> AppContext:
    if "ctx" not in obj:
        config = BaseConfig()
        setup_logging(config)
        obj["ctx"] = create_app_context(config)
    return obj["ctx"]


@click.group()
@click.pass_context
def cli(click_ctx: click.Context) -> None:
    """Track habits against daily, weekly and monthly goals."""

    click_ctx.ensure_object(dict)


@cli.command("add")
@click.argument("title")
@click.option(
    "--kind",
    type=click.Choice(["boolean", "duration", "rating", "numeric"]),
    default="boolean",
    show_default=True,
)
@click.option("--target", type=float, default=0.0, help="Goal target per period (0 = no goal)")
@click.option(
    "--frequency",
    type=click.Choice([f.value for f in Frequency]),
    default=Frequency.DAILY.value,
    show_default=True,
)
@click.option("--min", "min_value", type=float, default=None)
@click.option("--max", "max_value", type=float, default=None)
@click.option("--unit", default="")
@click.option("--remind-at", default=None, help="Daily reminder time, HH:MM")
@click.pass_obj
def add_habit(
    obj: dict,
    title: str,
    kind: str,
    target: float,
    frequency: str,
    min_value: float | None,
    max_value: float | None,
    unit: str,
    remind_at: str | None,
) -> None:
    """Create a habit."""

    goal = Goal(target=target, frequency=Frequency(frequency))
    habit_type: HabitType
    try:
        if kind == "boolean":
            habit_type = BooleanType(goal=goal)
        elif kind == "duration":
            habit_type = DurationType(goal=goal)
        elif kind == "rating":
            habit_type = RatingType(
                min=int(min_value if min_value is not None else 1),
                max=int(max_value if max_value is not None else 5),
                goal=goal,
            )
        else:
            habit_type = NumericType(
                min=min_value or 0.0, max=max_value or 0.0, unit=unit, goal=goal
            )
        reminder = datetime.strptime(remind_at, "%H:%M").time() if remind_at else None
        habit = Habit.from_type(title=title, habit_type=habit_type, reminder_time=reminder)
    except ValueError as exc:
        raise click.BadParameter(str(exc)) from exc

    ctx = _context(obj)
    habit = ctx.habit_repo.create(habit)
    click.echo(f"Created {habit.title} ({habit.id})")


@cli.command("log")
@click.argument("habit_id", type=click.UUID)
@click.option("--done/--not-done", "completed", default=None)
@click.option("--seconds", type=int, default=None)
@click.option("--rating", type=int, default=None)
@click.option("--value", type=float, default=None)
@click.option("--note", default=None)
@click.pass_obj
def log_entry(
    obj: dict,
    habit_id: UUID,
    completed: bool | None,
    seconds: int | None,
    rating: int | None,
    value: float | None,
    note: str | None,
) -> None:
    """Log today's entry for a habit.

    A running `remind` process re-checks the entry before presenting a
    follow-up, so no follow-up is shown for a habit logged here.
    """

    ctx = _context(obj)
    habit = ctx.habit_repo.get_by_id(habit_id)
    if habit is None:
        raise click.ClickException(f"No habit with id {habit_id}")
    ctx.habit_repo.upsert_entry(
        habit.id,
        ctx.calendar.today(),
        completed=completed,
        duration_seconds=seconds,
        rating_value=rating,
        numeric_value=value,
        note=note,
    )
    click.echo(f"Logged {habit.title} for {ctx.calendar.today().isoformat()}")


@cli.command("summary")
@click.option(
    "--timeframe",
    type=click.Choice([t.value for t in Timeframe]),
    default=Timeframe.WEEK.value,
    show_default=True,
)
@click.pass_obj
def summary(obj: dict, timeframe: str) -> None:
    """Print streaks, goal progress and averages for active habits."""

    ctx = _context(obj)
    window = Timeframe(timeframe)
    reports = ctx.reports(timeframe=window)
    if not reports:
        click.echo("No habits to display")
        return
    for report in reports:
        click.echo(
            f"{report.habit.title}: "
            f"streak {report.goal_streak} {report.goal_streak_unit}, "
            f"goal {report.progress_label}, "
            f"completion {report.completion_rate:.0%}, "
            f"{report.summary.value} {report.summary.caption} this {window.value}"
        )


@cli.command("remind")
@click.option("--summary-at", default=None, help="Daily summary time, HH:MM")
@click.pass_obj
def remind(obj: dict, summary_at: str | None) -> None:
    """Run the reminder scheduler until interrupted."""

    ctx = _context(obj)
    port = ctx.notifications
    port.start()  # type: ignore[attr-defined]
    results = ctx.reminders.reschedule_all(ctx.habit_repo.list_active())
    failed = [habit_id for habit_id, result in results.items() if not result.ok]
    if failed:
        logger.warning("Some reminders failed to schedule", extra={"habit_ids": [str(h) for h in failed]})
        click.echo(f"{len(failed)} reminder(s) could not be scheduled", err=True)
    if summary_at:
        at = datetime.strptime(summary_at, "%H:%M").time()
        ctx.reminders.schedule_daily_summary(at, ctx.habit_repo.remaining_habits_today())
    click.echo(f"Scheduled {len(results) - len(failed)} reminder(s); press Ctrl+C to stop")
    try:
        while True:
            _time.sleep(1)
    except KeyboardInterrupt:
        click.echo("Stopping")
    finally:
        ctx.shutdown()


def main() -> None:
    cli(obj={})


if __name__ == "__main__":  # pragma: no cover
    main()
