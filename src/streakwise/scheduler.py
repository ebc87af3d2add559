"""APScheduler-backed notification port for habit reminders."""

from __future__ import annotations

import logging
from datetime import datetime, timedelta, tzinfo
from typing import Callable, Optional

from apscheduler.jobstores.base import JobLookupError
from apscheduler.schedulers.background import BackgroundScheduler
from apscheduler.triggers.cron import CronTrigger
from apscheduler.triggers.date import DateTrigger

from .services.reminders import (
    NotificationContent,
    NotificationError,
    OneShotAfter,
    RepeatingDaily,
    Trigger,
    matches_prefix,
)

logger = logging.getLogger("streakwise.scheduler")

DeliveryCallback = Callable[[str, NotificationContent], object]


class APSchedulerNotificationPort:
    """Holds reminder requests as APScheduler jobs keyed by request id.

    Repeating reminders become cron jobs at the local hour/minute; one-shot
    follow-ups become date jobs and disappear once they fire. When a job
    fires, ``deliver(request_id, content)`` is called on the scheduler thread.
    """

    def __init__(
        self,
        *,
        timezone: tzinfo,
        deliver: Optional[DeliveryCallback] = None,
        scheduler: Optional[BackgroundScheduler] = None,
        clock: Optional[Callable[[], datetime]] = None,
    ):
        self.timezone = timezone
        self.deliver = deliver
        self.scheduler = scheduler or BackgroundScheduler(timezone=timezone)
        self._clock = clock

    @property
    def running(self) -> bool:
        return bool(self.scheduler.running)

    def start(self, *, paused: bool = False) -> None:
        """Start the background scheduler."""
        if self.scheduler.running:
            logger.warning("Notification scheduler already running")
            return
        self.scheduler.start(paused=paused)
        logger.info("Notification scheduler started")

    def stop(self) -> None:
        """Stop the background scheduler gracefully."""
        if self.scheduler.running:
            self.scheduler.shutdown(wait=True)
            logger.info("Notification scheduler stopped")

    def schedule(self, request_id: str, trigger: Trigger, content: NotificationContent) -> None:
        if isinstance(trigger, RepeatingDaily):
            trigger_obj = CronTrigger(
                hour=trigger.hour, minute=trigger.minute, timezone=self.timezone
            )
        elif isinstance(trigger, OneShotAfter):
            run_date = self._now() + timedelta(seconds=max(0.0, trigger.seconds))
            trigger_obj = DateTrigger(run_date=run_date, timezone=self.timezone)
        else:
            raise NotificationError(f"Unknown trigger type: {trigger!r}")

        try:
            self.scheduler.add_job(
                func=self._fire,
                trigger=trigger_obj,
                args=[request_id, content],
                id=request_id,
                name=content.title,
                replace_existing=True,
                misfire_grace_time=15 * 60,
                coalesce=True,
            )
        except (ValueError, TypeError, LookupError) as exc:
            raise NotificationError(f"Failed to schedule {request_id}: {exc}") from exc
        logger.info(f"Scheduled notification request: {request_id}")

    def cancel(self, prefix: str) -> None:
        removed = 0
        for job in self.scheduler.get_jobs():
            if not matches_prefix(job.id, prefix):
                continue
            try:
                self.scheduler.remove_job(job.id)
                removed += 1
            except JobLookupError:
                # fired and removed between get_jobs() and remove_job()
                continue
        if removed:
            logger.info(f"Cancelled {removed} notification request(s) matching {prefix}")

    def pending_request_ids(self) -> list[str]:
        return [job.id for job in self.scheduler.get_jobs()]

    def _now(self) -> datetime:
        current = self._clock() if self._clock is not None else datetime.now(self.timezone)
        if current.tzinfo is None:
            return current.replace(tzinfo=self.timezone)
        return current

    def _fire(self, request_id: str, content: NotificationContent) -> None:
        if self.deliver is None:
            logger.info(f"Notification fired with no delivery target: {request_id}")
            return
        try:
            self.deliver(request_id, content)
        except Exception as exc:
            logger.error(f"Delivery of {request_id} failed: {exc}", exc_info=True)
