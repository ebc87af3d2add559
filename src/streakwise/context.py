"""Application context for dependency injection."""

from __future__ import annotations

from dataclasses import dataclass
from typing import Optional

from sqlalchemy.engine import Engine

from .config import BaseConfig
from .domain.repositories import HabitRepository
from .infra.database import SessionFactory, bootstrap_database
from .infra.repositories import SQLModelHabitRepository
from .models.habit import Habit
from .scheduler import APSchedulerNotificationPort
from .services.metrics import Timeframe
from .services.periods import LocalCalendar
from .services.reminders import NotificationPort, ReminderDispatcher, ReminderScheduler
from .services.reports import HabitReport, build_report


@dataclass
class AppContext:
    """Centralized application context with services and state."""

    config: BaseConfig
    engine: Engine
    session_factory: SessionFactory
    calendar: LocalCalendar
    habit_repo: HabitRepository
    notifications: NotificationPort
    reminders: ReminderScheduler
    dispatcher: ReminderDispatcher

    def report(self, habit: Habit, *, timeframe: Timeframe = Timeframe.WEEK) -> HabitReport:
        return build_report(
            habit,
            self.habit_repo.snapshot(habit.id),
            calendar=self.calendar,
            timeframe=timeframe,
            max_periods=self.config.STREAK_MAX_PERIODS,
        )

    def reports(self, *, timeframe: Timeframe = Timeframe.WEEK) -> list[HabitReport]:
        return [self.report(habit, timeframe=timeframe) for habit in self.habit_repo.list_active()]

    def shutdown(self) -> None:
        if isinstance(self.notifications, APSchedulerNotificationPort):
            self.notifications.stop()
        self.engine.dispose()


def create_app_context(
    config: Optional[BaseConfig] = None,
    *,
    calendar: Optional[LocalCalendar] = None,
    notifications: Optional[NotificationPort] = None,
) -> AppContext:
    """Create and initialize the application context."""

    if config is None:
        config = BaseConfig()
    calendar = calendar or config.calendar()

    engine, session_factory = bootstrap_database(config)
    habit_repo = SQLModelHabitRepository(session_factory, calendar=calendar)

    port = notifications or APSchedulerNotificationPort(timezone=calendar.tz)
    reminders = ReminderScheduler(
        port, habit_repo, calendar=calendar, follow_up_delay=config.follow_up_delay
    )
    dispatcher = ReminderDispatcher(reminders, habit_lookup=habit_repo.get_by_id, writer=habit_repo)
    if isinstance(port, APSchedulerNotificationPort) and port.deliver is None:
        port.deliver = dispatcher.deliver

    return AppContext(
        config=config,
        engine=engine,
        session_factory=session_factory,
        calendar=calendar,
        habit_repo=habit_repo,
        notifications=port,
        reminders=reminders,
        dispatcher=dispatcher,
    )
