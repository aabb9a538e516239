# src/liquitask/migrations/registry.py

"""
Migration registry.

Every step is a pure function over the raw snapshot mapping (camelCase wire
names, as stored) that returns a new mapping one version ahead. Steps must
never drop data: unknown fields are carried over untouched.

Add new steps at the end, in version order, and bump CURRENT_DATA_VERSION.
"""

from __future__ import annotations

from collections.abc import Callable
from dataclasses import dataclass
from typing import Any

from ..constants import BASELINE_VERSION, CURRENT_DATA_VERSION, ColumnStatus, LinkType

RawSnapshot = dict[str, Any]


@dataclass(frozen=True, slots=True)
class MigrationStep:
    from_version: str
    to_version: str
    description: str
    migrate: Callable[[RawSnapshot], RawSnapshot]


def compare_versions(a: str, b: str) -> int:
    """
    Compare two dotted version strings numerically.
    Missing parts count as 0: compare_versions("1.0", "1.0.0") == 0.
    """
    parts_a = [_version_part(p) for p in (a or BASELINE_VERSION).split(".")]
    parts_b = [_version_part(p) for p in (b or BASELINE_VERSION).split(".")]
    width = max(len(parts_a), len(parts_b))
    parts_a += [0] * (width - len(parts_a))
    parts_b += [0] * (width - len(parts_b))
    for num_a, num_b in zip(parts_a, parts_b):
        if num_a > num_b:
            return 1
        if num_a < num_b:
            return -1
    return 0


def _version_part(raw: str) -> int:
    try:
        return int(raw)
    except ValueError:
        return 0


def _tasks(data: RawSnapshot) -> list[dict[str, Any]]:
    tasks = data.get("tasks") or []
    if not isinstance(tasks, list):
        raise TypeError("tasks must be a list")
    return [t for t in tasks if isinstance(t, dict)]


def migrate_0_0_to_0_9(data: RawSnapshot) -> RawSnapshot:
    """Tasks gain jobId/tags/effort fields; legacy `description` folds into `summary`."""
    tasks = []
    for index, task in enumerate(_tasks(data)):
        out = dict(task)
        out.setdefault("jobId", f"TSK-{1000 + index}")
        out.setdefault("tags", [])
        out.setdefault("timeEstimate", 0)
        out.setdefault("timeSpent", 0)
        if "description" in out and not out.get("summary"):
            out["summary"] = out.pop("description")
        tasks.append(out)
    return {**data, "tasks": tasks, "version": "0.9.0"}


def migrate_0_9_to_1_0(data: RawSnapshot) -> RawSnapshot:
    """
    Tasks gain links/customFieldValues/errorLogs; legacy `blockedBy` id lists
    become blocked-by links. Columns gain wipLimit, Completed gains isCompleted.
    """
    tasks = []
    for task in _tasks(data):
        out = dict(task)
        links = list(out.get("links") or [])
        for target in out.pop("blockedBy", None) or []:
            link = {"targetTaskId": str(target), "type": LinkType.BLOCKED_BY.value}
            if link not in links:
                links.append(link)
        out["links"] = links
        out.setdefault("customFieldValues", {})
        out.setdefault("errorLogs", [])
        tasks.append(out)

    migrated: RawSnapshot = {**data, "tasks": tasks, "version": "1.0.0"}

    if isinstance(data.get("columns"), list):
        columns = []
        for column in data["columns"]:
            if not isinstance(column, dict):
                raise TypeError("columns entries must be objects")
            out = dict(column)
            out.setdefault("wipLimit", 0)
            if out.get("id") == ColumnStatus.COMPLETED.value:
                out.setdefault("isCompleted", True)
            columns.append(out)
        migrated["columns"] = columns

    return migrated


MIGRATIONS: tuple[MigrationStep, ...] = (
    MigrationStep(
        from_version=BASELINE_VERSION,
        to_version="0.9.0",
        description="Add jobId, tags and effort fields to tasks",
        migrate=migrate_0_0_to_0_9,
    ),
    MigrationStep(
        from_version="0.9.0",
        to_version="1.0.0",
        description="Add typed task links, custom field values and error logs",
        migrate=migrate_0_9_to_1_0,
    ),
)


def current_data_version() -> str:
    if not MIGRATIONS:
        return CURRENT_DATA_VERSION
    return MIGRATIONS[-1].to_version


def migrations_from(version: str | None) -> list[MigrationStep]:
    """Steps needed to bring data at `version` up to the current version."""
    start = version or BASELINE_VERSION
    return [m for m in MIGRATIONS if compare_versions(m.to_version, start) > 0]
