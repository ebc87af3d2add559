"""Habit value kinds and their periodic goals."""

from __future__ import annotations

from dataclasses import dataclass
from enum import Enum
from typing import Union


class Frequency(str, Enum):
    """Length of the calendar period a goal is measured over."""

    DAILY = "daily"
    WEEKLY = "weekly"
    MONTHLY = "monthly"

    @property
    def unit(self) -> str:
        return {"daily": "day", "weekly": "week", "monthly": "month"}[self.value]


class HabitKind(str, Enum):
    """Discriminant stored alongside the flattened habit type columns."""

    BOOLEAN = "boolean"
    DURATION = "duration"
    RATING = "rating"
    NUMERIC = "numeric"


@dataclass(frozen=True, slots=True)
class Goal:
    """Target per period. A target of zero or less means "no goal"."""

    target: float = 0.0
    frequency: Frequency = Frequency.DAILY

    def __post_init__(self) -> None:
        if self.target < 0:
            raise ValueError("Goal target cannot be negative")
        if not isinstance(self.frequency, Frequency):
            object.__setattr__(self, "frequency", Frequency(self.frequency))

    @property
    def is_enabled(self) -> bool:
        return self.target > 0


@dataclass(frozen=True, slots=True)
class BooleanType:
    goal: Goal = Goal()

    kind = HabitKind.BOOLEAN
    display_name = "Checkmark"


@dataclass(frozen=True, slots=True)
class DurationType:
    """Values are whole seconds; the goal target is seconds per period."""

    goal: Goal = Goal()

    kind = HabitKind.DURATION
    display_name = "Time"


@dataclass(frozen=True, slots=True)
class RatingType:
    min: int = 1
    max: int = 5
    goal: Goal = Goal()

    kind = HabitKind.RATING
    display_name = "Rating"

    def __post_init__(self) -> None:
        if self.min > self.max:
            raise ValueError(f"Rating bounds are inverted: {self.min} > {self.max}")


@dataclass(frozen=True, slots=True)
class NumericType:
    min: float = 0.0
    max: float = 0.0
    unit: str = ""
    goal: Goal = Goal()

    kind = HabitKind.NUMERIC
    display_name = "Number"

    def __post_init__(self) -> None:
        if self.min > self.max:
            raise ValueError(f"Numeric bounds are inverted: {self.min} > {self.max}")


HabitType = Union[BooleanType, DurationType, RatingType, NumericType]

__all__ = [
    "BooleanType",
    "DurationType",
    "Frequency",
    "Goal",
    "HabitKind",
    "HabitType",
    "NumericType",
    "RatingType",
]
