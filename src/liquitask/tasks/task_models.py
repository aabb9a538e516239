# src/liquitask/tasks/task_models.py

from __future__ import annotations

from collections import deque
from dataclasses import dataclass
from enum import StrEnum

from ..schema.models import Task


class UndoKind(StrEnum):
    CREATE = "create"
    UPDATE = "update"
    DELETE = "delete"


@dataclass(frozen=True, slots=True)
class UndoAction:
    """
    One reversible task mutation.

    `task` is the record as it exists after the mutation (or as it was before
    deletion); `previous` is only set for updates; `index` is the position a
    deleted task is restored to.
    """

    kind: UndoKind
    task: Task
    previous: Task | None = None
    index: int | None = None


class UndoResult(StrEnum):
    UNDONE_CREATE = "undone_create"
    UNDONE_UPDATE = "undone_update"
    UNDONE_DELETE = "undone_delete"
    NOTHING_TO_UNDO = "nothing_to_undo"


class UndoHistory:
    """LIFO buffer of undo actions; the oldest entry is dropped once full."""

    def __init__(self, capacity: int = 20) -> None:
        self._entries: deque[UndoAction] = deque(maxlen=max(1, int(capacity)))

    @property
    def capacity(self) -> int:
        return self._entries.maxlen or 0

    def push(self, action: UndoAction) -> None:
        self._entries.append(action)

    def pop(self) -> UndoAction | None:
        if not self._entries:
            return None
        return self._entries.pop()

    def clear(self) -> None:
        self._entries.clear()

    def __len__(self) -> int:
        return len(self._entries)


@dataclass(frozen=True, slots=True)
class DependencyBlocked:
    """A move rejected because an unfinished task blocks it."""

    task_id: str
    blocker_id: str
    blocker_title: str = ""
    blocker_status: str = ""

    @property
    def message(self) -> str:
        name = self.blocker_title or self.blocker_id
        return f"Task is blocked by '{name}' ({self.blocker_status or 'unknown status'})"


@dataclass(frozen=True, slots=True)
class MoveResult:
    task: Task | None
    blocked: DependencyBlocked | None = None
    reason: str | None = None

    @property
    def moved(self) -> bool:
        return self.task is not None and self.blocked is None and self.reason is None
