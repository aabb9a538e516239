# tests/test_commands.py

from __future__ import annotations

import json
from datetime import timedelta
from pathlib import Path

import pytest

from liquitask.cli.commands import CommandRegistry, registry
from liquitask.constants import StorageKey
from liquitask.schema.models import utcnow


def test_command_registry_routes_2_and_3_params(state) -> None:
    reg = CommandRegistry()
    called = {"h2": 0, "h3": 0}

    def h2(state, args):
        called["h2"] += 1
        return "h2"

    def h3(state, args, emit):
        called["h3"] += 1
        if emit is not None:
            emit("note")
        return "h3"

    reg.register("a", h2, "a")
    reg.register("b", h3, "b")

    assert reg.handle(state, "/a x") == "h2"
    assert reg.handle(state, "/b y", emit=lambda _: None) == "h3"
    assert called["h2"] == 1
    assert called["h3"] == 1


def test_command_registry_unknown_and_non_command(state) -> None:
    reg = CommandRegistry()
    assert reg.handle(state, "hello") is None
    assert "Unknown command" in (reg.handle(state, "/nope") or "")
    assert "Empty command" in (reg.handle(state, "/") or "")


def test_add_move_undo_flow(state) -> None:
    reply = registry.handle(state, "/add Ship the release") or ""
    assert reply.startswith("Created TSK-")
    job_id = reply.split()[1].rstrip(":")

    assert registry.handle(state, f"/move {job_id} Completed high") == f"Moved {job_id} -> Completed"
    assert registry.handle(state, "/undo") == "Change undone."
    assert state.tasks.tasks[0].status == "Pending"

    listing = registry.handle(state, "/tasks") or ""
    assert "Ship the release" in listing
    assert registry.handle(state, "/tasks p9") == "No tasks in project p9."


def test_move_reports_blocking_task(state) -> None:
    blocker = state.tasks.create({"title": "Blocker"})
    blocked = state.tasks.create(
        {"title": "Blocked", "links": [{"targetTaskId": blocker.id, "type": "blocked-by"}]}
    )

    reply = registry.handle(state, f"/move {blocked.id} InProgress") or ""

    assert reply.startswith(f"Cannot move {blocked.job_id}")
    assert "Blocker" in reply
    assert "Task not found" in (registry.handle(state, "/move nope Pending") or "")


def test_delete_and_restore(state) -> None:
    task = state.tasks.create({"title": "Short lived"})

    assert "Deleted" in (registry.handle(state, f"/delete {task.id} -y") or "")
    assert state.tasks.get(task.id) is None
    assert registry.handle(state, "/undo") == "Task restored."
    assert state.tasks.get(task.id) is not None


@pytest.mark.asyncio
async def test_delete_cancels_pending_reminders(state) -> None:
    task = state.tasks.create({"title": "Due later", "due_date": utcnow() + timedelta(hours=3)})
    assert registry.handle(state, "/remind") == "Scheduled 2 reminder(s)."
    assert len(state.reminders.scheduled_tags) == 2

    registry.handle(state, f"/delete {task.id} -y")

    assert state.reminders.scheduled_tags == []
    await state.reminders.close()


def test_export_import_roundtrip_via_files(state, tmp_path: Path) -> None:
    state.tasks.create({"title": "Exported"})
    target = tmp_path / "export.json"

    assert "Exported" in (registry.handle(state, f"/export {target}") or "")
    assert json.loads(target.read_text("utf-8"))["tasks"][0]["title"] == "Exported"

    state.store.clear()
    state.tasks.reload()
    assert state.tasks.tasks == ()

    reply = registry.handle(state, f"/import {target}") or ""
    assert reply.startswith("Imported")
    assert [t.title for t in state.tasks.tasks] == ["Exported"]


def test_import_rejects_invalid_file(state, tmp_path: Path) -> None:
    bad = tmp_path / "bad.json"
    bad.write_text(json.dumps({"tasks": [{"id": "t1"}]}), "utf-8")

    reply = registry.handle(state, f"/import {bad}") or ""

    assert reply.startswith("Import rejected")
    assert "tasks.0.title" in reply
    assert state.store.get(StorageKey.TASKS) is None


def test_status_and_backups(state) -> None:
    status = registry.handle(state, "/status") or ""
    assert "Storage strategy: browser" in status
    assert registry.handle(state, "/backups") == "No backups."

    state.store.migration_engine.create_backup({"version": "0.9.0", "tasks": []})
    assert "v0.9.0" in (registry.handle(state, "/backups") or "")
