# tests/conftest.py

from __future__ import annotations

from pathlib import Path
from types import SimpleNamespace

import pytest

from liquitask.core.state import AppState
from liquitask.notifications.reminders import ReminderScheduler
from liquitask.storage.store import Store
from liquitask.tasks.task_service import TaskService

from .fakes import FakeLocalMedium, FakeNativeMedium, FakeNotifier


@pytest.fixture()
def settings(tmp_path: Path) -> SimpleNamespace:
    """
    Minimal settings object compatible with AppState and the bootstrap.

    We intentionally use a SimpleNamespace rather than importing real config,
    to keep unit tests isolated and deterministic.
    """
    return SimpleNamespace(
        app_name="liquitask-test",
        log_level="DEBUG",
        # Paths (tmp per test run)
        data_dir=tmp_path,
        native_enabled=True,
        native_store_path=tmp_path / "config.json",
        local_db_path=tmp_path / "local_storage.sqlite3",
        local_quota_bytes=5 * 1024 * 1024,
        # Limits
        undo_capacity=20,
        max_backups=3,
        migration_log_limit=100,
        reminder_interval_seconds=60.0,
    )


@pytest.fixture()
def local_medium() -> FakeLocalMedium:
    return FakeLocalMedium()


@pytest.fixture()
def native_medium() -> FakeNativeMedium:
    return FakeNativeMedium()


@pytest.fixture()
def browser_store(local_medium: FakeLocalMedium) -> Store:
    """Store with the BROWSER strategy: every write is synchronous."""
    return Store(local_medium)


@pytest.fixture()
def notifier() -> FakeNotifier:
    return FakeNotifier()


@pytest.fixture()
def state(settings: SimpleNamespace, browser_store: Store, notifier: FakeNotifier) -> AppState:
    """
    AppState wired with deterministic fakes.

    Deletes are auto-confirmed so command tests never block on a prompt.
    """
    return AppState(
        settings=settings,
        store=browser_store,
        tasks=TaskService(browser_store, confirm=lambda _msg: True),
        reminders=ReminderScheduler(notifier),
    )
