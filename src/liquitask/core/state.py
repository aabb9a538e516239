# src/liquitask/core/state.py

from __future__ import annotations

from dataclasses import dataclass
from typing import Any

from ..notifications.reminders import ReminderScheduler
from ..storage.store import Store
from ..tasks.task_service import TaskService


@dataclass
class AppState:
    # Settings live on the state so commands can read paths and limits.
    settings: Any

    store: Store
    tasks: TaskService
    reminders: ReminderScheduler
