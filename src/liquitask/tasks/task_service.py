# src/liquitask/tasks/task_service.py

"""
Task domain engine.

Owns the in-memory task collection and the undo history. Every mutation
replaces the collection and persists it through the store; the store's cache
makes the write visible to everyone else immediately.

Status invariant: a task's status always names a configured board column.
"""

from __future__ import annotations

import logging
import secrets
import time
import uuid
from collections.abc import Iterable, Mapping
from typing import Any

from ..constants import DEFAULT_ACTIVE_PROJECT_ID, DEFAULT_PRIORITY_ID, ColumnStatus, StorageKey
from ..core.ports import ConfirmPrompt, KeyValueStore
from ..schema.models import BoardColumn, Task, default_columns, utcnow
from .task_models import (
    DependencyBlocked,
    MoveResult,
    UndoAction,
    UndoHistory,
    UndoKind,
    UndoResult,
)

logger = logging.getLogger(__name__)

DELETE_PROMPT = "Delete this task? Use undo to restore it."


def new_task_id() -> str:
    # Millisecond clock plus a random part: unique within one batch.
    return f"task-{int(time.time() * 1000)}-{uuid.uuid4().hex[:9]}"


def new_job_id(prefix: str = "TSK") -> str:
    return f"{prefix}-{1000 + secrets.randbelow(9000)}"


def _decline(message: str) -> bool:
    logger.warning("No confirmation prompt configured; declining: %s", message)
    return False


def _by_name(partial: Mapping[str, Any]) -> dict[str, Any]:
    """Re-key a partial task by attribute name; camelCase aliases are accepted."""
    names = {field.alias or name: name for name, field in Task.model_fields.items()}
    return {names.get(key, key): value for key, value in partial.items()}


class TaskService:
    def __init__(
        self,
        store: KeyValueStore,
        *,
        confirm: ConfirmPrompt | None = None,
        undo_capacity: int = 20,
    ) -> None:
        self._store = store
        self._confirm = confirm or _decline
        self._history = UndoHistory(undo_capacity)
        self._tasks: list[Task] = list(store.get(StorageKey.TASKS, []) or [])
        logger.debug("TaskService loaded %d task(s)", len(self._tasks))

    # ---- read side ----

    @property
    def tasks(self) -> tuple[Task, ...]:
        return tuple(self._tasks)

    @property
    def can_undo(self) -> bool:
        return len(self._history) > 0

    def columns(self) -> list[BoardColumn]:
        return list(self._store.get(StorageKey.COLUMNS) or default_columns())

    def active_project_id(self) -> str:
        return str(self._store.get(StorageKey.ACTIVE_PROJECT) or DEFAULT_ACTIVE_PROJECT_ID)

    def get(self, task_id: str) -> Task | None:
        for task in self._tasks:
            if task.id == task_id:
                return task
        return None

    def tasks_for_project(self, project_id: str) -> list[Task]:
        return [t for t in self._tasks if t.project_id == project_id]

    def reload(self) -> None:
        """Re-read the collection from the store and forget the undo history."""
        self._tasks = list(self._store.get(StorageKey.TASKS, []) or [])
        self._history.clear()

    # ---- mutations ----

    def create(self, partial: Mapping[str, Any] | None = None) -> Task:
        task = self._build(partial or {}, self.columns())
        self._history.push(UndoAction(UndoKind.CREATE, task))
        self._save([*self._tasks, task])
        logger.info("Task created id=%s job=%s status=%s", task.id, task.job_id, task.status)
        return task

    def bulk_create(self, partials: Iterable[Mapping[str, Any]]) -> list[Task]:
        columns = self.columns()
        created = [self._build(partial, columns) for partial in partials]
        if created:
            self._save([*self._tasks, *created])
        logger.info("Bulk created %d task(s)", len(created))
        return created

    def update(self, task: Task) -> Task | None:
        index = self._index_of(task.id)
        if index is None:
            logger.warning("Update ignored: unknown task id=%s", task.id)
            return None
        if not self._is_column(task.status):
            logger.warning("Update ignored: unknown status %r for task id=%s", task.status, task.id)
            return None

        previous = self._tasks[index]
        updated = task.model_copy(update={"updated_at": utcnow()})
        self._history.push(UndoAction(UndoKind.UPDATE, updated, previous=previous))
        tasks = list(self._tasks)
        tasks[index] = updated
        self._save(tasks)
        return updated

    def delete(self, task_id: str, skip_confirm: bool = False) -> bool:
        index = self._index_of(task_id)
        if index is None:
            return False
        if not skip_confirm and not self._confirm(DELETE_PROMPT):
            logger.info("Delete cancelled id=%s", task_id)
            return False

        task = self._tasks[index]
        self._history.push(UndoAction(UndoKind.DELETE, task, index=index))
        self._save([t for t in self._tasks if t.id != task_id])
        logger.info("Task deleted id=%s", task_id)
        return True

    def move(self, task_id: str, new_status: str, new_priority: str | None = None) -> MoveResult:
        task = self.get(task_id)
        if task is None:
            return MoveResult(None, reason=f"Unknown task: {task_id}")

        columns = self.columns()
        if not any(c.id == new_status for c in columns):
            logger.warning("Move rejected: unknown column %r for task id=%s", new_status, task_id)
            return MoveResult(task, reason=f"Unknown column: {new_status}")

        if columns and new_status != columns[0].id:
            blocked = self._blocker_of(task, columns)
            if blocked is not None:
                logger.info("Move blocked id=%s by=%s", task_id, blocked.blocker_id)
                return MoveResult(task, blocked=blocked, reason=blocked.message)

        changes: dict[str, Any] = {"status": new_status}
        if new_priority:
            changes["priority"] = new_priority
        updated = self.update(task.model_copy(update=changes))
        return MoveResult(updated)

    def undo(self) -> UndoResult:
        action = self._history.pop()
        if action is None:
            return UndoResult.NOTHING_TO_UNDO

        if action.kind is UndoKind.CREATE:
            self._save([t for t in self._tasks if t.id != action.task.id])
            logger.info("Undo create id=%s", action.task.id)
            return UndoResult.UNDONE_CREATE

        if action.kind is UndoKind.DELETE:
            tasks = list(self._tasks)
            index = len(tasks) if action.index is None else min(action.index, len(tasks))
            tasks.insert(index, action.task)
            self._save(tasks)
            logger.info("Undo delete id=%s", action.task.id)
            return UndoResult.UNDONE_DELETE

        previous = action.previous or action.task
        self._save([previous if t.id == previous.id else t for t in self._tasks])
        logger.info("Undo update id=%s", previous.id)
        return UndoResult.UNDONE_UPDATE

    # ---- internals ----

    def _build(self, partial: Mapping[str, Any], columns: list[BoardColumn]) -> Task:
        partial = _by_name(partial)
        now = utcnow()
        status = str(partial.get("status") or "")
        if not any(c.id == status for c in columns):
            fallback = columns[0].id if columns else ColumnStatus.PENDING.value
            if status:
                logger.info("Unknown status %r on create, using %r", status, fallback)
            status = fallback

        data: dict[str, Any] = {
            **partial,
            "id": new_task_id(),
            "job_id": new_job_id(),
            "project_id": partial.get("project_id") or self.active_project_id(),
            "title": partial.get("title") or "Untitled",
            "priority": partial.get("priority") or DEFAULT_PRIORITY_ID,
            "status": status,
            "created_at": now,
            "updated_at": now,
        }
        return Task.model_validate(data)

    def _blocker_of(self, task: Task, columns: list[BoardColumn]) -> DependencyBlocked | None:
        done_columns = {c.id for c in columns if c.is_completed}
        for target_id in task.blocked_by_ids():
            blocker = self.get(target_id)
            if blocker is None:
                continue
            if blocker.status in done_columns or blocker.status == ColumnStatus.DELIVERED:
                continue
            return DependencyBlocked(
                task_id=task.id,
                blocker_id=blocker.id,
                blocker_title=blocker.title,
                blocker_status=blocker.status,
            )
        return None

    def _is_column(self, status: str) -> bool:
        return any(c.id == status for c in self.columns())

    def _index_of(self, task_id: str) -> int | None:
        for index, task in enumerate(self._tasks):
            if task.id == task_id:
                return index
        return None

    def _save(self, tasks: list[Task]) -> None:
        self._tasks = tasks
        result = self._store.set(StorageKey.TASKS, tasks)
        if result is not None and not getattr(result, "success", True):
            logger.error("Failed to persist tasks: %s", getattr(result, "error", None))
