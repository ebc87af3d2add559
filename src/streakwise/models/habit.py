"""Habit tracking tables."""

from __future__ import annotations

from datetime import date, datetime, time
from typing import Any, ClassVar, Optional
from uuid import UUID, uuid4

from sqlalchemy import UniqueConstraint
from sqlalchemy.orm import relationship
from sqlmodel import Field, Relationship, SQLModel

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


class Habit(SQLModel, table=True):
    """A recurring habit measured against an optional periodic goal.

    The tagged ``HabitType`` union is flattened into ``kind`` plus the
    bound/unit/goal columns; use ``habit_type`` to read it back.
    """

    __tablename__: ClassVar[str] = "habit"

    id: UUID = Field(default_factory=uuid4, primary_key=True)
    title: str = Field(nullable=False, max_length=120, index=True)
    kind: str = Field(default=HabitKind.BOOLEAN.value, max_length=16, nullable=False)
    goal_target: float = Field(default=0.0, nullable=False)
    goal_frequency: str = Field(default=Frequency.DAILY.value, max_length=16, nullable=False)
    range_min: Optional[float] = Field(default=None)
    range_max: Optional[float] = Field(default=None)
    unit: str = Field(default="", max_length=32)
    color: str = Field(default="#4F7CAC", max_length=16)
    icon: Optional[str] = Field(default=None, max_length=64)
    is_archived: bool = Field(default=False, nullable=False)
    created_at: datetime = Field(default_factory=datetime.now, nullable=False)
    reminder_time: Optional[time] = Field(default=None)
    sort_index: int = Field(default=0, nullable=False, index=True)

    entries: list["HabitEntry"] = Relationship(
        back_populates="habit",
        sa_relationship=relationship(
            "HabitEntry", back_populates="habit", cascade="all, delete-orphan"
        ),
    )

    @classmethod
    def from_type(cls, *, title: str, habit_type: HabitType, **fields: Any) -> "Habit":
        """Build a habit row from a ``HabitType`` variant."""

        title = (title or "").strip()
        if not title:
            raise ValueError("Habit title cannot be empty")
        habit = cls(title=title, **fields)
        habit.set_habit_type(habit_type)
        return habit

    @property
    def is_active(self) -> bool:
        return not self.is_archived

    @property
    def goal(self) -> Goal:
        # rows written outside from_type may hold a negative target: no goal
        return Goal(
            target=max(0.0, self.goal_target or 0.0),
            frequency=Frequency(self.goal_frequency),
        )

    @property
    def habit_type(self) -> HabitType:
        goal = self.goal
        kind = HabitKind(self.kind)
        if kind is HabitKind.BOOLEAN:
            return BooleanType(goal=goal)
        if kind is HabitKind.DURATION:
            return DurationType(goal=goal)
        if kind is HabitKind.RATING:
            return RatingType(
                min=int(self.range_min if self.range_min is not None else 1),
                max=int(self.range_max if self.range_max is not None else 5),
                goal=goal,
            )
        return NumericType(
            min=self.range_min or 0.0,
            max=self.range_max or 0.0,
            unit=self.unit,
            goal=goal,
        )

    def set_habit_type(self, habit_type: HabitType) -> None:
        self.kind = habit_type.kind.value
        self.goal_target = float(habit_type.goal.target)
        self.goal_frequency = habit_type.goal.frequency.value
        if isinstance(habit_type, (RatingType, NumericType)):
            self.range_min = float(habit_type.min)
            self.range_max = float(habit_type.max)
        else:
            self.range_min = None
            self.range_max = None
        self.unit = habit_type.unit if isinstance(habit_type, NumericType) else ""


class HabitEntry(SQLModel, table=True):
    """Logged value for a habit on one calendar day (one row per day)."""

    __tablename__: ClassVar[str] = "habit_entry"
    __table_args__ = (UniqueConstraint("habit_id", "occurred_on", name="uq_habit_entry_day"),)

    id: UUID = Field(default_factory=uuid4, primary_key=True)
    habit_id: UUID = Field(foreign_key="habit.id", nullable=False, index=True)
    occurred_on: date = Field(nullable=False, index=True)
    completed: Optional[bool] = Field(default=None)
    duration_seconds: Optional[int] = Field(default=None)
    rating_value: Optional[int] = Field(default=None)
    numeric_value: Optional[float] = Field(default=None)
    note: Optional[str] = Field(default=None, max_length=500)
    updated_at: datetime = Field(default_factory=datetime.now, nullable=False)

    habit: Optional["Habit"] = Relationship(
        back_populates="entries",
        sa_relationship=relationship("Habit", back_populates="entries"),
    )
