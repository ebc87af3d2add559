"""Repository protocol definitions for domain layer."""

from .habit import EntryStore, HabitRepository, HabitWriter, LoggedTodayQuery

__all__ = ["EntryStore", "HabitRepository", "HabitWriter", "LoggedTodayQuery"]
