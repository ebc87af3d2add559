"""Habit storage protocols consumed by the evaluation and reminder services."""

from __future__ import annotations

from datetime import date
from typing import TYPE_CHECKING, Optional, Protocol
from uuid import UUID

from ...models.habit import Habit, HabitEntry

if TYPE_CHECKING:
    from ...services.entries import EntrySnapshot


class EntryStore(Protocol):
    """Read side used by goal, streak and metrics computations."""

    def entries_for_habit(self, habit_id: UUID) -> list[HabitEntry]:
        """Return every entry logged for a habit."""
        ...

    def entry_for_day(self, habit_id: UUID, day: date) -> Optional[HabitEntry]:
        """Return the entry for one calendar day, if any."""
        ...


class LoggedTodayQuery(Protocol):
    def is_logged_today(self, habit_id: UUID) -> bool:
        """True when an entry exists for the habit dated today."""
        ...


class HabitWriter(Protocol):
    """Write side used when a notification action logs a value."""

    def upsert_entry(self, habit_id: UUID, day: date, **values) -> HabitEntry:
        """Create or update the single entry for ``(habit_id, day)``."""
        ...


class HabitRepository(EntryStore, LoggedTodayQuery, HabitWriter, Protocol):
    """Repository for managing habits and their entries."""

    def get_by_id(self, habit_id: UUID) -> Optional[Habit]:
        """Retrieve a habit by ID."""
        ...

    def list_active(self) -> list[Habit]:
        """List non-archived habits in display order."""
        ...

    def create(self, habit: Habit) -> Habit:
        """Create a new habit."""
        ...

    def update(self, habit: Habit) -> Habit:
        """Update an existing habit."""
        ...

    def delete(self, habit_id: UUID) -> bool:
        """Delete a habit and its entries; False when it does not exist."""
        ...

    def delete_entry(self, habit_id: UUID, day: date) -> bool:
        """Delete a habit entry."""
        ...

    def snapshot(self, habit_id: UUID) -> EntrySnapshot:
        """Immutable day-keyed view of the habit's entries."""
        ...

    def remaining_habits_today(self) -> int:
        """Count active habits with nothing logged today."""
        ...
