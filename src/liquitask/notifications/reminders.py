# src/liquitask/notifications/reminders.py

"""
Due-date reminders.

Two mechanisms:
- one-shot timers per task ("due soon" an hour before, "due now" at due time),
- an optional polling loop that reports overdue, unfinished tasks once each.

Delivery goes through the injected Notifier port; how a notice is shown is
the notifier's business.
"""

from __future__ import annotations

import asyncio
import logging
from collections.abc import Callable, Iterable
from dataclasses import dataclass
from datetime import datetime, timedelta
from enum import StrEnum

from ..constants import ColumnStatus
from ..core.ports import Notifier
from ..schema.models import Task, utcnow

logger = logging.getLogger(__name__)

REMIND_BEFORE = timedelta(hours=1)


class ReminderKind(StrEnum):
    DUE_SOON = "due_soon"
    DUE_NOW = "due_now"


@dataclass(frozen=True, slots=True)
class ReminderTask:
    """The slice of a task the reminder scheduler needs."""

    id: str
    title: str
    due_date: datetime | None = None
    status: str = ""
    completed_at: datetime | None = None

    @classmethod
    def from_task(cls, task: Task) -> ReminderTask:
        return cls(
            id=task.id,
            title=task.title,
            due_date=task.due_date,
            status=task.status,
            completed_at=task.completed_at,
        )


@dataclass(frozen=True, slots=True)
class Reminder:
    task_id: str
    kind: ReminderKind
    fire_at: datetime
    title: str
    body: str
    tag: str


def plan_reminders(task: ReminderTask, now: datetime) -> list[Reminder]:
    """
    Reminders for a task, relative to `now`.

    Past-due (or undated) tasks get none. "Due soon" fires an hour before the
    due date, or immediately when less than an hour is left; "due now" is only
    added when the due date is more than an hour away.
    """
    if task.due_date is None:
        return []
    remaining = task.due_date - now
    if remaining <= timedelta(0):
        return []

    reminders = [
        Reminder(
            task_id=task.id,
            kind=ReminderKind.DUE_SOON,
            fire_at=max(now, task.due_date - REMIND_BEFORE),
            title="Task Due Soon",
            body=f'"{task.title}" is due in 1 hour',
            tag=f"task-reminder-{task.id}",
        )
    ]
    if remaining > REMIND_BEFORE:
        reminders.append(
            Reminder(
                task_id=task.id,
                kind=ReminderKind.DUE_NOW,
                fire_at=task.due_date,
                title="Task Due Now",
                body=f'"{task.title}" is due now!',
                tag=f"task-due-{task.id}",
            )
        )
    return reminders


class ReminderScheduler:
    def __init__(
        self,
        notifier: Notifier,
        *,
        done_statuses: Iterable[str] = (ColumnStatus.COMPLETED, ColumnStatus.DELIVERED),
        clock: Callable[[], datetime] = utcnow,
    ) -> None:
        self._notifier = notifier
        self._done_statuses = {str(s) for s in done_statuses}
        self._clock = clock
        self._timers: dict[str, asyncio.Task[None]] = {}
        self._notified_overdue: set[str] = set()
        self._periodic: asyncio.Task[None] | None = None

    @property
    def is_checking(self) -> bool:
        return self._periodic is not None and not self._periodic.done()

    @property
    def scheduled_tags(self) -> list[str]:
        return [tag for tag, timer in self._timers.items() if not timer.done()]

    def is_done(self, task: ReminderTask) -> bool:
        return task.completed_at is not None or task.status in self._done_statuses

    # ---- one-shot reminders ----

    def schedule_reminder(self, task: ReminderTask) -> list[Reminder]:
        """
        Arm the timers for one task; re-scheduling a task replaces its timers.
        Requires a running event loop.
        """
        if self.is_done(task):
            return []
        reminders = plan_reminders(task, self._clock())
        if not reminders:
            return []

        try:
            loop = asyncio.get_running_loop()
        except RuntimeError:
            logger.warning("No running event loop; reminders for %s not scheduled", task.id)
            return []

        now = self._clock()
        for reminder in reminders:
            self._cancel_tag(reminder.tag)
            delay = max(0.0, (reminder.fire_at - now).total_seconds())
            self._timers[reminder.tag] = loop.create_task(self._fire_later(delay, reminder))
        logger.debug("Scheduled %d reminder(s) for task %s", len(reminders), task.id)
        return reminders

    def schedule_all(self, tasks: Iterable[ReminderTask]) -> int:
        return sum(len(self.schedule_reminder(t)) for t in tasks)

    def cancel_reminders(self, task_id: str) -> None:
        for tag in (f"task-reminder-{task_id}", f"task-due-{task_id}"):
            self._cancel_tag(tag)

    def _cancel_tag(self, tag: str) -> None:
        timer = self._timers.pop(tag, None)
        if timer is not None and not timer.done():
            timer.cancel()

    async def _fire_later(self, delay: float, reminder: Reminder) -> None:
        await asyncio.sleep(delay)
        try:
            await self._notifier.notify(title=reminder.title, body=reminder.body, tag=reminder.tag)
        except Exception:
            logger.exception("Reminder delivery failed tag=%s", reminder.tag)
        finally:
            if self._timers.get(reminder.tag) is asyncio.current_task():
                del self._timers[reminder.tag]

    # ---- overdue polling ----

    async def check_overdue(self, tasks: Iterable[ReminderTask]) -> list[ReminderTask]:
        """Overdue, unfinished tasks. Each one is notified only the first time it is seen."""
        now = self._clock()
        overdue = [
            t for t in tasks if t.due_date is not None and t.due_date < now and not self.is_done(t)
        ]
        for task in overdue:
            if task.id in self._notified_overdue:
                continue
            self._notified_overdue.add(task.id)
            try:
                await self._notifier.notify(
                    title="Task Overdue",
                    body=f'"{task.title}" is overdue',
                    tag=f"task-overdue-{task.id}",
                )
            except Exception:
                logger.exception("Overdue notice failed task_id=%s", task.id)
        return overdue

    def start_periodic_check(
        self,
        get_tasks: Callable[[], Iterable[ReminderTask]],
        interval_seconds: float = 60.0,
    ) -> bool:
        """Start the polling loop. Returns False when it is already running."""
        if self.is_checking:
            return False
        sleep_s = max(0.5, float(interval_seconds))
        self._periodic = asyncio.get_running_loop().create_task(self._run_periodic(get_tasks, sleep_s))
        logger.info("Overdue check started (every %.1fs)", sleep_s)
        return True

    def stop_periodic_check(self) -> bool:
        """Stop the polling loop. Returns False when it was not running."""
        periodic, self._periodic = self._periodic, None
        if periodic is None or periodic.done():
            return False
        periodic.cancel()
        logger.info("Overdue check stopped")
        return True

    async def close(self) -> None:
        """Stop polling and cancel every pending timer."""
        pending = list(self._timers.values())
        self._timers.clear()
        if self._periodic is not None:
            pending.append(self._periodic)
            self.stop_periodic_check()
        for task in pending:
            task.cancel()
        if pending:
            await asyncio.gather(*pending, return_exceptions=True)

    async def _run_periodic(
        self,
        get_tasks: Callable[[], Iterable[ReminderTask]],
        sleep_s: float,
    ) -> None:
        while True:
            try:
                await self.check_overdue(list(get_tasks()))
            except Exception:
                logger.exception("Overdue check failed")
            await asyncio.sleep(sleep_s)
