"""Pytest configuration and shared fixtures for streakwise tests.

Provides an isolated SQLite database per test, a calendar pinned to a
fixed timezone and instant, habit/entry factories, and in-memory doubles
for the notification collaborators.
"""

from __future__ import annotations

import tempfile
import threading
from datetime import date, datetime, timedelta
from pathlib import Path
from typing import Callable, Optional
from uuid import UUID
from zoneinfo import ZoneInfo

import pytest
from sqlmodel import Session, SQLModel, create_engine

from streakwise import models  # noqa: F401  # register tables
from streakwise.infra.database import create_session_factory
from streakwise.infra.repositories import SQLModelHabitRepository
from streakwise.models import BooleanType, Habit, HabitEntry, HabitType
from streakwise.services.entries import EntrySnapshot
from streakwise.services.periods import LocalCalendar
from streakwise.services.reminders import (
    NotificationContent,
    NotificationError,
    Trigger,
    matches_prefix,
)

NEW_YORK = ZoneInfo("America/New_York")
# Wednesday morning, no DST change within the surrounding week
FIXED_NOW = datetime(2025, 3, 12, 9, 0, tzinfo=NEW_YORK)
TODAY = FIXED_NOW.date()
HISTORY_START = datetime(2024, 1, 1, 8, 0)


# =============================================================================
# Environment
# =============================================================================


@pytest.fixture(autouse=True)
def isolated_env(monkeypatch, tmp_path):
    """Keep config reads away from the developer's environment and cwd."""
    for name in (
        "STREAKWISE_DATABASE_URL",
        "STREAKWISE_DEV_MODE",
        "STREAKWISE_TIMEZONE",
        "STREAKWISE_FIRST_WEEKDAY",
        "STREAKWISE_FOLLOW_UP_MINUTES",
        "STREAKWISE_STREAK_MAX_PERIODS",
    ):
        monkeypatch.delenv(name, raising=False)
    monkeypatch.setenv("STREAKWISE_DATA_DIR", str(tmp_path / "data"))


# =============================================================================
# Calendar Fixtures
# =============================================================================


def make_calendar(now: datetime = FIXED_NOW, *, first_weekday: int = 0) -> LocalCalendar:
    return LocalCalendar(tz=NEW_YORK, first_weekday=first_weekday, clock=lambda: now)


@pytest.fixture
def calendar() -> LocalCalendar:
    """Calendar pinned to America/New_York at ``FIXED_NOW``."""
    return make_calendar()


# =============================================================================
# Database Fixtures
# =============================================================================


@pytest.fixture(scope="function")
def db_engine():
    """Create an isolated SQLite database file for each test."""
    with tempfile.NamedTemporaryFile(suffix=".db", delete=False) as f:
        db_path = Path(f.name)

    engine = create_engine(f"sqlite:///{db_path}", echo=False)
    SQLModel.metadata.create_all(engine)

    yield engine

    engine.dispose()
    db_path.unlink(missing_ok=True)


@pytest.fixture(scope="function")
def db_session(db_engine):
    """Raw session for seeding rows directly."""
    with Session(db_engine, expire_on_commit=False) as session:
        yield session


@pytest.fixture(scope="function")
def session_factory(db_engine):
    """Session factory matching the one used by the application."""
    return create_session_factory(db_engine)


@pytest.fixture
def habit_repo(session_factory, calendar) -> SQLModelHabitRepository:
    return SQLModelHabitRepository(session_factory, calendar=calendar)


# =============================================================================
# Test Data Factories
# =============================================================================


def build_habit(habit_type: HabitType | None = None, title: str = "Test Habit", **fields) -> Habit:
    """Unsaved habit with a long history so creation day never bounds streaks."""
    fields.setdefault("created_at", HISTORY_START)
    return Habit.from_type(title=title, habit_type=habit_type or BooleanType(), **fields)


def make_entry(habit: Habit, day: date, **values) -> HabitEntry:
    return HabitEntry(habit_id=habit.id, occurred_on=day, **values)


def snapshot_of(habit: Habit, entries, calendar: LocalCalendar) -> EntrySnapshot:
    return EntrySnapshot(habit.id, entries, calendar=calendar)


def days_ago(n: int, today: date = TODAY) -> date:
    return today - timedelta(days=n)


@pytest.fixture
def habit_factory(habit_repo) -> Callable[..., Habit]:
    """Factory persisting habits through the repository."""

    def _create_habit(
        habit_type: HabitType | None = None, title: str = "Test Habit", **fields
    ) -> Habit:
        return habit_repo.create(build_habit(habit_type, title=title, **fields))

    return _create_habit


# =============================================================================
# Notification Doubles
# =============================================================================


class FakeNotificationPort:
    """In-memory notification port with switchable failures."""

    def __init__(self) -> None:
        self.requests: dict[str, tuple[Trigger, NotificationContent]] = {}
        self.fail_schedule = False
        self.fail_cancel = False
        self.cancel_calls: list[str] = []
        self._lock = threading.Lock()

    def schedule(self, request_id: str, trigger: Trigger, content: NotificationContent) -> None:
        if self.fail_schedule:
            raise NotificationError("permission denied")
        with self._lock:
            self.requests[request_id] = (trigger, content)

    def cancel(self, prefix: str) -> None:
        if self.fail_cancel:
            raise NotificationError("transport error")
        with self._lock:
            self.cancel_calls.append(prefix)
            for request_id in [r for r in self.requests if matches_prefix(r, prefix)]:
                del self.requests[request_id]

    def pending_request_ids(self) -> list[str]:
        with self._lock:
            return list(self.requests)

    def follow_ups_for(self, habit_id: UUID) -> list[str]:
        return [r for r in self.pending_request_ids() if r.startswith(f"habit.{habit_id}.followup")]


class FakeLoggedToday:
    def __init__(self) -> None:
        self.logged: set[UUID] = set()

    def is_logged_today(self, habit_id: UUID) -> bool:
        return habit_id in self.logged


class FakeWriter:
    """Records upserts and marks the habit as logged for today."""

    def __init__(self, logged_today: FakeLoggedToday) -> None:
        self.logged_today = logged_today
        self.calls: list[tuple[UUID, date, dict]] = []

    def upsert_entry(self, habit_id: UUID, day: date, **values) -> Optional[HabitEntry]:
        self.calls.append((habit_id, day, values))
        self.logged_today.logged.add(habit_id)
        return None


@pytest.fixture
def port() -> FakeNotificationPort:
    return FakeNotificationPort()


@pytest.fixture
def logged_today() -> FakeLoggedToday:
    return FakeLoggedToday()
