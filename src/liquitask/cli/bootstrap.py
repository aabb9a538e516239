# src/liquitask/cli/bootstrap.py

"""
CLI bootstrap helpers.

This module is the "composition root":
- loads settings once,
- ensures local (gitignored) directories exist,
- picks the storage strategy (native medium or browser-local only),
- initializes the store (medium copy-forward + schema migrations),
- wires the task engine and the reminder scheduler into AppState.
"""

from __future__ import annotations

import logging

from ..config import get_settings
from ..core.ports import ConfirmPrompt, Notifier
from ..core.state import AppState
from ..notifications.console_notifier import ConsoleNotifier
from ..notifications.reminders import ReminderScheduler
from ..storage.local_sqlite import SqliteLocalMedium
from ..storage.native_file import JsonFileNativeMedium
from ..storage.store import Store
from ..tasks.task_service import TaskService

logger = logging.getLogger(__name__)


def _ensure_local_dirs(settings) -> None:
    settings.data_dir.mkdir(parents=True, exist_ok=True)
    settings.native_store_path.parent.mkdir(parents=True, exist_ok=True)
    settings.local_db_path.parent.mkdir(parents=True, exist_ok=True)


def create_store(settings) -> Store:
    """Build an uninitialized Store; the caller awaits `initialize()`."""
    local = SqliteLocalMedium(settings.local_db_path, quota_bytes=settings.local_quota_bytes)
    native = JsonFileNativeMedium(settings.native_store_path) if settings.native_enabled else None
    return Store(
        local,
        native,
        max_backups=settings.max_backups,
        migration_log_limit=settings.migration_log_limit,
    )


async def create_initial_state(
    *,
    settings=None,
    notifier: Notifier | None = None,
    confirm: ConfirmPrompt | None = None,
) -> AppState:
    """
    Create AppState from the provided settings.

    Keeping settings injectable makes the app easier to test and avoids hidden global config reads.
    If settings is None, falls back to get_settings().
    """
    if settings is None:
        settings = get_settings()

    _ensure_local_dirs(settings)

    store = create_store(settings)
    result = await store.initialize()
    if result is not None and not result.success:
        logger.error(
            "Data migration failed (backup %s kept); running on un-migrated data.",
            result.backup_id,
        )

    state = AppState(
        settings=settings,
        store=store,
        tasks=TaskService(store, confirm=confirm, undo_capacity=settings.undo_capacity),
        reminders=ReminderScheduler(notifier or ConsoleNotifier()),
    )
    logger.info("State ready: %d task(s), strategy=%s", len(state.tasks.tasks), store.strategy.value)
    return state


async def shutdown_state(state: AppState) -> None:
    """Best-effort shutdown (no exceptions should escape)."""
    try:
        await state.reminders.close()
    except Exception:
        logger.exception("Reminder scheduler close failed.")

    try:
        await state.store.close()
    except Exception:
        logger.exception("Store close failed.")
