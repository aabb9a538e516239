# tests/test_reminders.py

from __future__ import annotations

import asyncio
from datetime import UTC, datetime, timedelta

import pytest

from liquitask.notifications.reminders import (
    ReminderKind,
    ReminderScheduler,
    ReminderTask,
    plan_reminders,
)

from .fakes import FakeNotifier

NOW = datetime(2024, 6, 1, 12, 0, tzinfo=UTC)


def _task(task_id: str, due: datetime | None, **extra) -> ReminderTask:
    return ReminderTask(id=task_id, title=f"Task {task_id}", due_date=due, **extra)


def test_plan_far_due_date_gets_soon_and_now() -> None:
    reminders = plan_reminders(_task("a", NOW + timedelta(hours=3)), NOW)

    assert [r.kind for r in reminders] == [ReminderKind.DUE_SOON, ReminderKind.DUE_NOW]
    assert reminders[0].fire_at == NOW + timedelta(hours=2)
    assert reminders[0].tag == "task-reminder-a"
    assert reminders[1].fire_at == NOW + timedelta(hours=3)
    assert reminders[1].tag == "task-due-a"


def test_plan_close_due_date_fires_immediately_once() -> None:
    reminders = plan_reminders(_task("a", NOW + timedelta(minutes=10)), NOW)

    assert [r.kind for r in reminders] == [ReminderKind.DUE_SOON]
    assert reminders[0].fire_at == NOW


def test_plan_skips_past_due_and_undated_tasks() -> None:
    assert plan_reminders(_task("a", NOW - timedelta(minutes=1)), NOW) == []
    assert plan_reminders(_task("b", None), NOW) == []


@pytest.mark.asyncio
async def test_scheduled_reminder_is_delivered() -> None:
    notifier = FakeNotifier()
    scheduler = ReminderScheduler(notifier, clock=lambda: NOW)

    planned = scheduler.schedule_reminder(_task("a", NOW + timedelta(minutes=5)))
    assert len(planned) == 1

    await asyncio.sleep(0.01)

    assert [n.tag for n in notifier.sent] == ["task-reminder-a"]
    assert scheduler.scheduled_tags == []
    await scheduler.close()


@pytest.mark.asyncio
async def test_rescheduling_replaces_timers_and_close_cancels_them() -> None:
    scheduler = ReminderScheduler(FakeNotifier(), clock=lambda: NOW)
    task = _task("a", NOW + timedelta(hours=5))

    scheduler.schedule_reminder(task)
    scheduler.schedule_reminder(task)
    assert sorted(scheduler.scheduled_tags) == ["task-due-a", "task-reminder-a"]

    await scheduler.close()
    assert scheduler.scheduled_tags == []


def test_schedule_without_event_loop_is_skipped() -> None:
    scheduler = ReminderScheduler(FakeNotifier(), clock=lambda: NOW)
    assert scheduler.schedule_reminder(_task("a", NOW + timedelta(hours=2))) == []


@pytest.mark.asyncio
async def test_check_overdue_notifies_each_task_once() -> None:
    notifier = FakeNotifier()
    scheduler = ReminderScheduler(notifier, clock=lambda: NOW)
    tasks = [
        _task("late", NOW - timedelta(hours=1), status="Pending"),
        _task("done", NOW - timedelta(hours=1), status="Completed"),
        _task("closed", NOW - timedelta(hours=1), completed_at=NOW),
        _task("future", NOW + timedelta(hours=1)),
    ]

    first = await scheduler.check_overdue(tasks)
    second = await scheduler.check_overdue(tasks)

    assert [t.id for t in first] == ["late"]
    assert [t.id for t in second] == ["late"]
    assert [n.tag for n in notifier.sent] == ["task-overdue-late"]


@pytest.mark.asyncio
async def test_periodic_check_start_and_stop_are_idempotent() -> None:
    notifier = FakeNotifier()
    scheduler = ReminderScheduler(notifier, clock=lambda: NOW)
    tasks = [_task("late", NOW - timedelta(minutes=1))]

    assert scheduler.start_periodic_check(lambda: tasks, interval_seconds=0.5) is True
    assert scheduler.start_periodic_check(lambda: tasks, interval_seconds=0.5) is False
    assert scheduler.is_checking is True

    await asyncio.sleep(0.01)

    assert scheduler.stop_periodic_check() is True
    assert scheduler.stop_periodic_check() is False
    assert scheduler.is_checking is False
    assert [n.tag for n in notifier.sent] == ["task-overdue-late"]
    await scheduler.close()


@pytest.mark.asyncio
async def test_periodic_check_survives_failing_task_source() -> None:
    scheduler = ReminderScheduler(FakeNotifier(), clock=lambda: NOW)

    def broken() -> list[ReminderTask]:
        raise RuntimeError("store offline")

    scheduler.start_periodic_check(broken, interval_seconds=0.5)
    await asyncio.sleep(0.01)

    assert scheduler.is_checking is True
    await scheduler.close()
    assert scheduler.is_checking is False
