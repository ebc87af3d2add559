"""SQLModel table and habit type exports."""

from .habit import Habit, HabitEntry
from .habit_type import (
    BooleanType,
    DurationType,
    Frequency,
    Goal,
    HabitKind,
    HabitType,
    NumericType,
    RatingType,
)

__all__ = [
    "BooleanType",
    "DurationType",
    "Frequency",
    "Goal",
    "Habit",
    "HabitEntry",
    "HabitKind",
    "HabitType",
    "NumericType",
    "RatingType",
]
