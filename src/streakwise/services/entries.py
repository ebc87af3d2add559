"""Immutable per-habit entry snapshots used by the evaluation services."""

from __future__ import annotations

import logging
from datetime import date
from types import MappingProxyType
from typing import Iterable, Iterator, Mapping, Optional
from uuid import UUID

from ..models.habit import HabitEntry
from .periods import LocalCalendar, Period

logger = logging.getLogger("streakwise.entries")


class EntrySnapshot:
    """Read-only view of one habit's entries keyed by local calendar day.

    Entries that belong to another habit are not aggregated; they are kept
    in ``skipped`` for diagnostics. If the input holds two rows for the
    same day, the most recently updated one wins (upsert-by-day).
    """

    __slots__ = ("habit_id", "_by_day", "_skipped")

    def __init__(
        self,
        habit_id: UUID,
        entries: Iterable[HabitEntry],
        *,
        calendar: LocalCalendar,
    ) -> None:
        self.habit_id = habit_id
        by_day: dict[date, HabitEntry] = {}
        skipped: list[HabitEntry] = []
        for entry in entries:
            if entry.habit_id != habit_id:
                skipped.append(entry)
                continue
            day = calendar.local_day(entry.occurred_on)
            current = by_day.get(day)
            if current is None or _updated(entry, calendar) >= _updated(current, calendar):
                by_day[day] = entry
        if skipped:
            logger.warning(
                "Skipped entries that do not belong to habit",
                extra={"habit_id": str(habit_id), "skipped_count": len(skipped)},
            )
        self._by_day: Mapping[date, HabitEntry] = MappingProxyType(by_day)
        self._skipped = tuple(skipped)

    def __len__(self) -> int:
        return len(self._by_day)

    def __iter__(self) -> Iterator[HabitEntry]:
        return iter(self._by_day.values())

    @property
    def skipped(self) -> tuple[HabitEntry, ...]:
        return self._skipped

    @property
    def skipped_count(self) -> int:
        return len(self._skipped)

    @property
    def days(self) -> list[date]:
        return sorted(self._by_day)

    @property
    def first_day(self) -> Optional[date]:
        return min(self._by_day) if self._by_day else None

    def entry_for_day(self, day: date) -> Optional[HabitEntry]:
        return self._by_day.get(day)

    def in_period(self, period: Period) -> list[HabitEntry]:
        return [entry for day, entry in self._by_day.items() if day in period]


def _updated(entry: HabitEntry, calendar: LocalCalendar) -> float:
    """POSIX time of the last update; naive values are local to ``calendar``."""

    value = entry.updated_at
    if value is None:
        return float("-inf")
    if value.tzinfo is None:
        value = value.replace(tzinfo=calendar.tz)
    return value.timestamp()


__all__ = ["EntrySnapshot"]
