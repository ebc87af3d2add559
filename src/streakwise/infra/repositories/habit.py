"""SQLModel implementation of the habit repository."""

from __future__ import annotations

from datetime import date, datetime
from typing import Callable, ContextManager, Optional
from uuid import UUID

from sqlalchemy import func
from sqlmodel import Session, select

from ...models.habit import Habit, HabitEntry
from ...services.entries import EntrySnapshot
from ...services.periods import LocalCalendar


class SQLModelHabitRepository:
    """SQLModel-based habit repository implementation."""

    def __init__(
        self,
        session_factory: Callable[[], ContextManager[Session]],
        *,
        calendar: LocalCalendar,
    ):
        """Initialize with a session factory and the local calendar."""
        self.session_factory = session_factory
        self.calendar = calendar

    def get_by_id(self, habit_id: UUID) -> Optional[Habit]:
        """Retrieve a habit by ID."""
        with self.session_factory() as session:
            obj = session.get(Habit, habit_id)
            if obj:
                session.expunge(obj)
            return obj

    def list_all(self, include_archived: bool = False) -> list[Habit]:
        """List habits in display order, optionally including archived ones."""
        with self.session_factory() as session:
            statement = select(Habit).order_by(Habit.sort_index, Habit.title)  # type: ignore
            if not include_archived:
                statement = statement.where(Habit.is_archived == False)  # noqa: E712
            rows = list(session.exec(statement).all())
            session.expunge_all()
            return rows

    def list_active(self) -> list[Habit]:
        """List only non-archived habits."""
        return self.list_all(include_archived=False)

    def create(self, habit: Habit) -> Habit:
        """Create a new habit at the end of the sort order."""
        with self.session_factory() as session:
            highest = session.exec(select(func.max(Habit.sort_index))).one()
            habit.sort_index = (highest if highest is not None else -1) + 1
            session.add(habit)
            session.commit()
            session.refresh(habit)
            session.expunge(habit)
            return habit

    def update(self, habit: Habit) -> Habit:
        """Update an existing habit."""
        with self.session_factory() as session:
            merged = session.merge(habit)
            session.commit()
            session.refresh(merged)
            session.expunge(merged)
            return merged

    def delete(self, habit_id: UUID) -> bool:
        """Delete a habit together with its entries."""
        with self.session_factory() as session:
            habit = session.get(Habit, habit_id)
            if habit is None:
                return False
            session.delete(habit)
            session.commit()
            return True

    # Habit entry operations
    def entries_for_habit(self, habit_id: UUID) -> list[HabitEntry]:
        """Return every entry for a habit, oldest first."""
        with self.session_factory() as session:
            statement = (
                select(HabitEntry)
                .where(HabitEntry.habit_id == habit_id)
                .order_by(HabitEntry.occurred_on)  # type: ignore
            )
            rows = list(session.exec(statement).all())
            session.expunge_all()
            return rows

    def entries_between(self, habit_id: UUID, start: date, end: date) -> list[HabitEntry]:
        """Return entries dated in ``[start, end)``."""
        with self.session_factory() as session:
            statement = (
                select(HabitEntry)
                .where(HabitEntry.habit_id == habit_id)
                .where(HabitEntry.occurred_on >= start)
                .where(HabitEntry.occurred_on < end)
                .order_by(HabitEntry.occurred_on)  # type: ignore
            )
            rows = list(session.exec(statement).all())
            session.expunge_all()
            return rows

    def entry_for_day(self, habit_id: UUID, day: date | datetime) -> Optional[HabitEntry]:
        """Get the entry for one calendar day."""
        with self.session_factory() as session:
            obj = self._find_entry(session, habit_id, self.calendar.local_day(day))
            if obj:
                session.expunge(obj)
            return obj

    def upsert_entry(
        self,
        habit_id: UUID,
        day: date | datetime,
        *,
        completed: Optional[bool] = None,
        duration_seconds: Optional[int] = None,
        rating_value: Optional[int] = None,
        numeric_value: Optional[float] = None,
        note: Optional[str] = None,
    ) -> HabitEntry:
        """Insert the day's entry or overwrite only the provided fields."""
        values = {
            "completed": completed,
            "duration_seconds": duration_seconds,
            "rating_value": rating_value,
            "numeric_value": numeric_value,
            "note": note,
        }
        occurred_on = self.calendar.local_day(day)
        with self.session_factory() as session:
            entry = self._find_entry(session, habit_id, occurred_on)
            if entry is None:
                entry = HabitEntry(habit_id=habit_id, occurred_on=occurred_on)
            for key, value in values.items():
                if value is not None:
                    setattr(entry, key, value)
            entry.updated_at = datetime.now()
            session.add(entry)
            session.commit()
            session.refresh(entry)
            session.expunge(entry)
            return entry

    def delete_entry(self, habit_id: UUID, day: date | datetime) -> bool:
        """Delete a habit entry."""
        with self.session_factory() as session:
            entry = self._find_entry(session, habit_id, self.calendar.local_day(day))
            if entry is None:
                return False
            session.delete(entry)
            session.commit()
            return True

    def snapshot(self, habit_id: UUID) -> EntrySnapshot:
        """Immutable entry view for the evaluation services."""
        return EntrySnapshot(habit_id, self.entries_for_habit(habit_id), calendar=self.calendar)

    def is_logged_today(self, habit_id: UUID) -> bool:
        return self.entry_for_day(habit_id, self.calendar.today()) is not None

    def remaining_habits_today(self) -> int:
        """Count active habits with no entry for today."""
        today = self.calendar.today()
        with self.session_factory() as session:
            active = select(Habit.id).where(Habit.is_archived == False)  # noqa: E712
            total = session.exec(select(func.count()).select_from(active.subquery())).one()
            logged = session.exec(
                select(func.count(func.distinct(HabitEntry.habit_id)))
                .where(HabitEntry.occurred_on == today)
                .where(HabitEntry.habit_id.in_(active))  # type: ignore[attr-defined]
            ).one()
            return int(total) - int(logged)

    @staticmethod
    def _find_entry(session: Session, habit_id: UUID, day: date) -> Optional[HabitEntry]:
        return session.exec(
            select(HabitEntry)
            .where(HabitEntry.habit_id == habit_id)
            .where(HabitEntry.occurred_on == day)
        ).first()
