"""Reminder and follow-up notification lifecycle per habit.

Request identifiers:

* ``habit.<id>`` is the repeating daily reminder (one per habit).
* ``habit.<id>.followup.<token>`` is a one-shot follow-up. At most one is
  tracked per habit; scheduling a new one cancels the previous ones.
* ``summary.daily`` is the repeating daily summary.

All mutations for one habit run under that habit's lock, so a
cancel-then-reschedule sequence never interleaves with another one.
"""

from __future__ import annotations

import logging
import threading
from dataclasses import dataclass, field
from datetime import datetime, time, timedelta, timezone
from enum import Enum
from typing import Callable, Iterable, Optional, Protocol, Union
from uuid import UUID, uuid4

from ..domain.repositories.habit import HabitWriter, LoggedTodayQuery
from ..models.habit import Habit
from ..models.habit_type import DurationType, HabitKind, HabitType, NumericType, RatingType
from .periods import LocalCalendar

logger = logging.getLogger("streakwise.reminders")

FOLLOW_UP_DELAY = timedelta(minutes=30)
DAILY_SUMMARY_ID = "summary.daily"
DAILY_SUMMARY_CATEGORY = "habit.dailySummary"

ACTION_BOOLEAN_COMPLETE = "action.boolean.complete"
ACTION_BOOLEAN_INCOMPLETE = "action.boolean.incomplete"
ACTION_RATING_ENTER = "action.rating.enter"
ACTION_NUMERIC_ENTER = "action.numeric.enter"
ACTION_DURATION_OPEN = "action.duration.open"


# Identifiers ---------------------------------------------------------------


def primary_request_id(habit_id: UUID) -> str:
    return f"habit.{habit_id}"


def follow_up_prefix(habit_id: UUID) -> str:
    return f"{primary_request_id(habit_id)}.followup"


def new_follow_up_id(habit_id: UUID) -> str:
    return f"{follow_up_prefix(habit_id)}.{uuid4().hex}"


def matches_prefix(request_id: str, prefix: str) -> bool:
    """Prefix match on dotted segments (``habit.a`` does not match ``habit.ab``)."""

    return request_id == prefix or request_id.startswith(prefix + ".")


def is_follow_up_id(request_id: str) -> bool:
    return ".followup" in request_id


# Triggers and content ------------------------------------------------------


@dataclass(frozen=True, slots=True)
class RepeatingDaily:
    hour: int
    minute: int


@dataclass(frozen=True, slots=True)
class OneShotAfter:
    seconds: float


Trigger = Union[RepeatingDaily, OneShotAfter]


@dataclass(frozen=True, slots=True)
class NotificationContent:
    title: str
    body: str
    category: str
    habit_id: Optional[UUID] = None
    is_follow_up: bool = False
    deep_link: Optional[str] = None

    @property
    def time_sensitive(self) -> bool:
        return self.is_follow_up


_BODIES = {
    HabitKind.BOOLEAN: ("Time to check this off.", "Still not logged. Mark it complete?"),
    HabitKind.DURATION: ("Open to log your time.", "Still not logged. Open to log your time."),
    HabitKind.RATING: ("Enter a quick rating.", "Still not logged. Enter a rating."),
    HabitKind.NUMERIC: ("Enter a quick value.", "Still not logged. Enter a value."),
}


def category_for(habit_type: HabitType) -> str:
    return f"habit.{habit_type.kind.value}"


def build_content(habit: Habit, *, is_follow_up: bool, calendar: LocalCalendar) -> NotificationContent:
    habit_type = habit.habit_type
    initial, follow_up = _BODIES[habit_type.kind]
    deep_link = None
    if isinstance(habit_type, DurationType):
        deep_link = f"streakwise://entry?habitID={habit.id}&date={calendar.today().isoformat()}"
    return NotificationContent(
        title=habit.title,
        body=follow_up if is_follow_up else initial,
        category=category_for(habit_type),
        habit_id=habit.id,
        is_follow_up=is_follow_up,
        deep_link=deep_link,
    )


# Collaborator ports --------------------------------------------------------


class NotificationError(RuntimeError):
    """Raised by a notification port when a request cannot be scheduled."""


class NotificationPort(Protocol):
    """Delivery backend that holds pending notification requests."""

    def schedule(
        self, request_id: str, trigger: Trigger, content: NotificationContent
    ) -> None:  # pragma: no cover - interface
        """Register a request; raise ``NotificationError`` on failure."""
        ...

    def cancel(self, prefix: str) -> None:  # pragma: no cover - interface
        """Remove pending and delivered requests whose id matches ``prefix``."""
        ...

    def pending_request_ids(self) -> list[str]:  # pragma: no cover - interface
        ...


# Scheduler -----------------------------------------------------------------


class ReminderState(str, Enum):
    NO_REMINDER = "no_reminder"
    SCHEDULED = "scheduled"
    FOLLOW_UP_PENDING = "follow_up_pending"


@dataclass(slots=True)
class ScheduleResult:
    """Outcome of a scheduling call; ``error`` is set when the port failed."""

    request_ids: list[str] = field(default_factory=list)
    error: Optional[Exception] = None

    @property
    def ok(self) -> bool:
        return self.error is None


@dataclass(slots=True)
class _Tracked:
    primary_id: Optional[str] = None
    follow_up_id: Optional[str] = None
    follow_up_from_interaction: bool = False


class ReminderScheduler:
    """Owns the reminder requests of every habit, keyed by habit id."""

    def __init__(
        self,
        port: NotificationPort,
        logged_today: LoggedTodayQuery,
        *,
        calendar: LocalCalendar,
        follow_up_delay: timedelta = FOLLOW_UP_DELAY,
    ) -> None:
        self.port = port
        self.logged_today = logged_today
        self.calendar = calendar
        self.follow_up_delay = follow_up_delay
        self._tracked: dict[UUID, _Tracked] = {}
        self._locks: dict[UUID, threading.Lock] = {}
        self._locks_guard = threading.Lock()

    def _lock_for(self, habit_id: UUID) -> threading.Lock:
        with self._locks_guard:
            return self._locks.setdefault(habit_id, threading.Lock())

    def state(self, habit_id: UUID) -> ReminderState:
        tracked = self._tracked.get(habit_id)
        if tracked is None or tracked.primary_id is None:
            return ReminderState.NO_REMINDER
        if tracked.follow_up_id is not None and tracked.follow_up_from_interaction:
            return ReminderState.FOLLOW_UP_PENDING
        return ReminderState.SCHEDULED

    def tracked_follow_up(self, habit_id: UUID) -> Optional[str]:
        tracked = self._tracked.get(habit_id)
        return tracked.follow_up_id if tracked else None

    # Transitions -----------------------------------------------------------

    def set_reminder(self, habit: Habit, reminder_time: Optional[time]) -> ScheduleResult:
        """Replace the habit's requests with a daily reminder at ``reminder_time``.

        Also plans a one-shot follow-up for the next occurrence of that time
        plus the follow-up delay. ``None`` clears every request.
        """

        with self._lock_for(habit.id):
            result = ScheduleResult()
            error = self._cancel_locked(habit.id, primary_request_id(habit.id))
            if error is not None:
                result.error = error
                return result
            self._tracked.pop(habit.id, None)
            if reminder_time is None:
                logger.info("Reminder cleared", extra={"habit_id": str(habit.id)})
                return result

            primary_id = primary_request_id(habit.id)
            content = build_content(habit, is_follow_up=False, calendar=self.calendar)
            trigger = RepeatingDaily(hour=reminder_time.hour, minute=reminder_time.minute)
            try:
                self.port.schedule(primary_id, trigger, content)
            except NotificationError as exc:
                logger.error(
                    f"Failed to schedule reminder for habit {habit.id}: {exc}", exc_info=True
                )
                result.error = exc
                return result

            tracked = _Tracked(primary_id=primary_id)
            self._tracked[habit.id] = tracked
            result.request_ids.append(primary_id)

            follow_at = self.next_occurrence(reminder_time) + self.follow_up_delay
            seconds = max(1.0, _seconds_between(self.calendar.now(), follow_at))
            follow_up_id = self._schedule_follow_up_locked(
                habit, tracked, OneShotAfter(seconds=seconds), from_interaction=False, result=result
            )
            if follow_up_id is not None:
                result.request_ids.append(follow_up_id)
            logger.info(
                f"Reminder scheduled at {reminder_time:%H:%M}",
                extra={"habit_id": str(habit.id), "request_ids": result.request_ids},
            )
            return result

    def on_primary_delivered(self, habit: Habit, *, request_id: Optional[str] = None) -> ScheduleResult:
        """Schedule a relative follow-up if the habit is still unlogged today."""

        with self._lock_for(habit.id):
            result = ScheduleResult()
            if self._is_logged_today(habit.id):
                logger.info("Habit already logged; no follow-up", extra={"habit_id": str(habit.id)})
                return result

            tracked = self._tracked.setdefault(habit.id, _Tracked())
            if tracked.primary_id is None and request_id is not None:
                tracked.primary_id = request_id
            error = self._cancel_follow_ups_locked(habit.id, tracked)
            if error is not None:
                result.error = error
                return result
            follow_up_id = self._schedule_follow_up_locked(
                habit,
                tracked,
                OneShotAfter(seconds=self.follow_up_delay.total_seconds()),
                from_interaction=True,
                result=result,
            )
            if follow_up_id is not None:
                result.request_ids.append(follow_up_id)
            return result

    def on_habit_logged(self, habit_id: UUID) -> ScheduleResult:
        """Cancel every pending follow-up for the habit."""

        with self._lock_for(habit_id):
            result = ScheduleResult()
            tracked = self._tracked.get(habit_id)
            if tracked is None:
                result.error = self._cancel_locked(habit_id, follow_up_prefix(habit_id))
            else:
                result.error = self._cancel_follow_ups_locked(habit_id, tracked)
            return result

    def on_follow_up_fired(self, habit_id: UUID, request_id: str) -> bool:
        """Return True when the fired follow-up should still be presented."""

        with self._lock_for(habit_id):
            tracked = self._tracked.get(habit_id)
            if tracked is not None and tracked.follow_up_id == request_id:
                tracked.follow_up_id = None
                tracked.follow_up_from_interaction = False
            if self._is_logged_today(habit_id):
                logger.info("Suppressed follow-up for logged habit", extra={"habit_id": str(habit_id)})
                return False
            return True

    def cancel_reminders(self, habit_id: UUID) -> ScheduleResult:
        """Cancel the primary reminder and every follow-up. Safe to repeat."""

        with self._lock_for(habit_id):
            error = self._cancel_locked(habit_id, primary_request_id(habit_id))
            if error is None:
                self._tracked.pop(habit_id, None)
            return ScheduleResult(error=error)

    def reschedule_all(self, habits: Iterable[Habit]) -> dict[UUID, ScheduleResult]:
        results = {}
        for habit in habits:
            reminder = habit.reminder_time if habit.is_active else None
            results[habit.id] = self.set_reminder(habit, reminder)
        return results

    def disable_all(self) -> ScheduleResult:
        """Turn reminders off: drop every habit request and the daily summary."""

        for habit_id in list(self._tracked):
            self.cancel_reminders(habit_id)
        result = ScheduleResult()
        for prefix in ("habit", DAILY_SUMMARY_ID):
            try:
                self.port.cancel(prefix)
            except NotificationError as exc:
                logger.error(f"Failed to cancel {prefix} requests: {exc}", exc_info=True)
                result.error = exc
        return result

    # Daily summary ---------------------------------------------------------

    def schedule_daily_summary(self, at: time, remaining: Optional[int] = None) -> ScheduleResult:
        result = self.cancel_daily_summary()
        if not result.ok:
            return result
        if remaining is None:
            body = "Check your habits for today."
        else:
            body = f"You have {remaining} habit{'' if remaining == 1 else 's'} remaining today."
        content = NotificationContent(title="Daily Summary", body=body, category=DAILY_SUMMARY_CATEGORY)
        try:
            self.port.schedule(DAILY_SUMMARY_ID, RepeatingDaily(hour=at.hour, minute=at.minute), content)
        except NotificationError as exc:
            logger.error(f"Failed to schedule daily summary: {exc}", exc_info=True)
            return ScheduleResult(error=exc)
        return ScheduleResult(request_ids=[DAILY_SUMMARY_ID])

    def cancel_daily_summary(self) -> ScheduleResult:
        try:
            self.port.cancel(DAILY_SUMMARY_ID)
        except NotificationError as exc:
            logger.error(f"Failed to cancel daily summary: {exc}", exc_info=True)
            return ScheduleResult(error=exc)
        return ScheduleResult()

    # Helpers ---------------------------------------------------------------

    def next_occurrence(self, reminder_time: time) -> datetime:
        """Next local wall-clock occurrence of ``reminder_time`` after now."""

        now = self.calendar.now()
        candidate = datetime.combine(now.date(), reminder_time.replace(tzinfo=None), tzinfo=self.calendar.tz)
        if candidate <= now:
            candidate = datetime.combine(
                now.date() + timedelta(days=1),
                reminder_time.replace(tzinfo=None),
                tzinfo=self.calendar.tz,
            )
        return candidate

    def _is_logged_today(self, habit_id: UUID) -> bool:
        try:
            return bool(self.logged_today.is_logged_today(habit_id))
        except Exception as exc:
            logger.warning(f"Logged-today check failed for habit {habit_id}: {exc}", exc_info=True)
            return False

    def _schedule_follow_up_locked(
        self,
        habit: Habit,
        tracked: _Tracked,
        trigger: OneShotAfter,
        *,
        from_interaction: bool,
        result: ScheduleResult,
    ) -> Optional[str]:
        request_id = new_follow_up_id(habit.id)
        content = build_content(habit, is_follow_up=True, calendar=self.calendar)
        try:
            self.port.schedule(request_id, trigger, content)
        except NotificationError as exc:
            logger.error(f"Failed to schedule follow-up for habit {habit.id}: {exc}", exc_info=True)
            result.error = exc
            return None
        tracked.follow_up_id = request_id
        tracked.follow_up_from_interaction = from_interaction
        return request_id

    def _cancel_follow_ups_locked(self, habit_id: UUID, tracked: _Tracked) -> Optional[Exception]:
        error = self._cancel_locked(habit_id, follow_up_prefix(habit_id))
        if error is None:
            tracked.follow_up_id = None
            tracked.follow_up_from_interaction = False
        return error

    def _cancel_locked(self, habit_id: UUID, prefix: str) -> Optional[Exception]:
        try:
            self.port.cancel(prefix)
        except NotificationError as exc:
            logger.error(f"Failed to cancel requests for habit {habit_id}: {exc}", exc_info=True)
            return exc
        return None


# Delivery and actions ------------------------------------------------------


Presenter = Callable[[str, NotificationContent], None]


def log_presenter(request_id: str, content: NotificationContent) -> None:
    logger.info(
        f"Notification: {content.title} - {content.body}",
        extra={"request_id": request_id, "category": content.category},
    )


class ReminderDispatcher:
    """Routes fired notifications and user actions back into the scheduler."""

    def __init__(
        self,
        scheduler: ReminderScheduler,
        *,
        habit_lookup: Callable[[UUID], Optional[Habit]],
        writer: HabitWriter,
        presenter: Presenter = log_presenter,
    ) -> None:
        self.scheduler = scheduler
        self.habit_lookup = habit_lookup
        self.writer = writer
        self.presenter = presenter

    def deliver(self, request_id: str, content: NotificationContent) -> bool:
        """Present a fired request; return False when it was suppressed."""

        if content.habit_id is None:
            self.presenter(request_id, content)
            return True

        if content.is_follow_up:
            if not self.scheduler.on_follow_up_fired(content.habit_id, request_id):
                return False
            self.presenter(request_id, content)
            return True

        self.presenter(request_id, content)
        habit = self.habit_lookup(content.habit_id)
        if habit is None:
            logger.warning(f"Delivered reminder for unknown habit {content.habit_id}")
            return True
        self.scheduler.on_primary_delivered(habit, request_id=request_id)
        return True

    def handle_action(
        self,
        habit_id: UUID,
        action_id: str,
        *,
        request_id: str,
        text: Optional[str] = None,
    ) -> bool:
        """Apply a notification action; return True when an entry was logged."""

        habit = self.habit_lookup(habit_id)
        if habit is None:
            return False

        values = _values_for_action(habit.habit_type, action_id, text)
        logged = False
        if values is not None:
            self.writer.upsert_entry(habit.id, self.scheduler.calendar.today(), **values)
            self.scheduler.on_habit_logged(habit.id)
            logged = True

        if not is_follow_up_id(request_id):
            self.scheduler.on_primary_delivered(habit, request_id=request_id)
        return logged


def _values_for_action(habit_type: HabitType, action_id: str, text: Optional[str]) -> Optional[dict]:
    if action_id == ACTION_BOOLEAN_COMPLETE:
        return {"completed": True}
    if action_id == ACTION_BOOLEAN_INCOMPLETE:
        return {"completed": False}
    if action_id == ACTION_RATING_ENTER and isinstance(habit_type, RatingType):
        try:
            return {"rating_value": int((text or "").strip())}
        except ValueError:
            return None
    if action_id == ACTION_NUMERIC_ENTER and isinstance(habit_type, NumericType):
        try:
            return {"numeric_value": float((text or "").strip())}
        except ValueError:
            return None
    return None


def _seconds_between(start: datetime, end: datetime) -> float:
    return (end.astimezone(timezone.utc) - start.astimezone(timezone.utc)).total_seconds()


__all__ = [
    "DAILY_SUMMARY_ID",
    "FOLLOW_UP_DELAY",
    "LoggedTodayQuery",
    "NotificationContent",
    "NotificationError",
    "NotificationPort",
    "OneShotAfter",
    "ReminderDispatcher",
    "ReminderScheduler",
    "ReminderState",
    "RepeatingDaily",
    "ScheduleResult",
    "Trigger",
    "build_content",
    "follow_up_prefix",
    "log_presenter",
    "matches_prefix",
    "primary_request_id",
]
