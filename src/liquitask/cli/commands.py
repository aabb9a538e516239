# src/liquitask/cli/commands.py

from __future__ import annotations

import inspect
import logging
from collections.abc import Callable
from pathlib import Path
from typing import cast

from ..constants import StorageKey
from ..core.state import AppState
from ..keybindings import load_keybindings
from ..notifications.reminders import ReminderTask
from ..schema.models import Task
from ..tasks.task_models import UndoResult

CommandEmitter = Callable[[str], None]
CommandHandler2 = Callable[[AppState, list[str]], str]
CommandHandler3 = Callable[[AppState, list[str], CommandEmitter | None], str]
CommandHandler = CommandHandler2 | CommandHandler3

logger = logging.getLogger(__name__)


class CommandRegistry:
    """Simple slash-command registry used by the console (/help, /tasks, ...)."""

    def __init__(self) -> None:
        self._handlers: dict[str, CommandHandler] = {}
        self._help: dict[str, str] = {}

    def register(
        self,
        name: str,
        handler: CommandHandler,
        help_text: str,
        aliases: list[str] | None = None,
    ) -> None:
        aliases = aliases or []
        key = name.lower()
        self._handlers[key] = handler
        self._help[key] = help_text
        for alias in aliases:
            self._handlers[alias.lower()] = handler

    def handle(
        self,
        state: AppState,
        line: str,
        emit: CommandEmitter | None = None,
    ) -> str | None:
        """
        Handle a string like "/command args".
        Returns a reply string or None if not a command.
        """
        if not line.startswith("/"):
            return None

        parts = line[1:].split()
        if not parts:
            return "Empty command. Use /help to list available commands."

        name = parts[0].lower()
        args = parts[1:]

        handler = self._handlers.get(name)
        if not handler:
            return f"Unknown command: /{name}. Use /help to list available commands."

        try:
            nparams = len(inspect.signature(handler).parameters)
        except (TypeError, ValueError):
            nparams = 3

        if nparams >= 3:
            h3 = cast(CommandHandler3, handler)
            return h3(state, args, emit)

        h2 = cast(CommandHandler2, handler)
        return h2(state, args)

    def build_help(self) -> str:
        lines = ["Available commands:"]
        for name, help_text in self._help.items():
            lines.append(f"  /{name} - {help_text}")
        return "\n".join(lines)


registry = CommandRegistry()


def _find_task(state: AppState, ref: str) -> Task | None:
    """Look a task up by id or by job id (case-insensitive)."""
    task = state.tasks.get(ref)
    if task is not None:
        return task
    for candidate in state.tasks.tasks:
        if candidate.job_id.lower() == ref.lower():
            return candidate
    return None


def _format_task(task: Task) -> str:
    due = f" due {task.due_date:%Y-%m-%d %H:%M}" if task.due_date else ""
    return f"{task.job_id:<9} [{task.status}] ({task.priority}) {task.title}{due}  id={task.id}"


def cmd_help(state: AppState, args: list[str]) -> str:
    return registry.build_help()


def cmd_status(state: AppState, args: list[str]) -> str:
    store = state.store
    usage = store.usage()
    version = store.get(StorageKey.DATA_VERSION) or "-"
    lines = [
        "Status:",
        f"  Storage strategy: {store.strategy.value}",
        f"  Data version: {version} (current {store.migration_engine.current_version})",
        f"  Local storage: {usage.used} / {usage.total} bytes ({usage.percentage:.1f}%)",
        f"  Tasks: {len(state.tasks.tasks)}",
        f"  Undo available: {'yes' if state.tasks.can_undo else 'no'}",
    ]
    result = store.migration_result
    if result is not None:
        outcome = "ok" if result.success else f"FAILED ({result.error})"
        lines.append(f"  Last migration: {result.migrated_from} -> {result.migrated_to or '-'} {outcome}")
    return "\n".join(lines)


def cmd_tasks(state: AppState, args: list[str]) -> str:
    """
    /tasks            -> tasks of the active project
    /tasks all        -> every task
    /tasks <project>  -> tasks of one project
    """
    if args and args[0].lower() == "all":
        tasks = list(state.tasks.tasks)
        scope = "all projects"
    else:
        project_id = args[0] if args else state.tasks.active_project_id()
        tasks = state.tasks.tasks_for_project(project_id)
        scope = f"project {project_id}"

    if not tasks:
        return f"No tasks in {scope}."
    lines = [f"Tasks in {scope}:"]
    lines.extend(f"  {_format_task(t)}" for t in tasks)
    return "\n".join(lines)


def cmd_add(state: AppState, args: list[str]) -> str:
    if not args:
        return "Usage: /add <title>"
    task = state.tasks.create({"title": " ".join(args)})
    return f"Created {task.job_id}: {task.title} [{task.status}]"


def cmd_move(state: AppState, args: list[str]) -> str:
    """/move <id|job> <column> [priority]"""
    if len(args) < 2:
        return "Usage: /move <task id or job id> <column> [priority]"

    task = _find_task(state, args[0])
    if task is None:
        return f"Task not found: {args[0]}"

    result = state.tasks.move(task.id, args[1], args[2] if len(args) > 2 else None)
    if result.blocked is not None:
        return f"Cannot move {task.job_id}: {result.blocked.message}"
    if not result.moved:
        return f"Cannot move {task.job_id}: {result.reason}"
    assert result.task is not None
    return f"Moved {task.job_id} -> {result.task.status}"


def cmd_delete(state: AppState, args: list[str]) -> str:
    """/delete <id|job> [-y]"""
    if not args:
        return "Usage: /delete <task id or job id> [-y]"
    task = _find_task(state, args[0])
    if task is None:
        return f"Task not found: {args[0]}"
    skip_confirm = "-y" in args[1:]
    if state.tasks.delete(task.id, skip_confirm=skip_confirm):
        state.reminders.cancel_reminders(task.id)
        return f"Deleted {task.job_id} (use /undo to restore)."
    return "Delete cancelled."


def cmd_undo(state: AppState, args: list[str]) -> str:
    result = state.tasks.undo()
    messages = {
        UndoResult.UNDONE_CREATE: "Task creation undone.",
        UndoResult.UNDONE_UPDATE: "Change undone.",
        UndoResult.UNDONE_DELETE: "Task restored.",
        UndoResult.NOTHING_TO_UNDO: "Nothing to undo.",
    }
    return messages[result]


def cmd_export(state: AppState, args: list[str], emit: CommandEmitter | None = None) -> str:
    """/export [path] -> write the snapshot to a file (or print it)"""
    payload = state.store.export_data()
    if not args:
        return payload

    path = Path(args[0]).expanduser()
    try:
        path.parent.mkdir(parents=True, exist_ok=True)
        path.write_text(payload, "utf-8")
    except OSError as e:
        logger.exception("Export to %s failed", path)
        return f"Export failed: {e}"
    return f"Exported {len(payload)} bytes to {path}"


def cmd_import(state: AppState, args: list[str], emit: CommandEmitter | None = None) -> str:
    """/import <path> -> validate, then apply a previously exported file"""
    if not args:
        return "Usage: /import <path>"

    path = Path(args[0]).expanduser()
    try:
        serialized = path.read_text("utf-8")
    except OSError as e:
        return f"Cannot read {path}: {e}"

    result = state.store.import_data(serialized)
    if not result.success or result.data is None:
        return f"Import rejected: {result.error}"

    if emit is not None:
        for warning in result.warnings:
            emit(f"[IMPORT] {warning}")

    written = state.store.apply_import(result.data)
    state.tasks.reload()
    if not written.success:
        return f"Import partially failed: {written.error}"
    return f"Imported {', '.join(result.data.present()) or 'nothing'} from {path}"


def cmd_backups(state: AppState, args: list[str]) -> str:
    """
    /backups                -> list backups (newest first)
    /backups delete <id>    -> remove one backup
    /backups logs           -> show the migration log
    """
    engine = state.store.migration_engine

    if args and args[0].lower() == "delete":
        if len(args) < 2:
            return "Usage: /backups delete <id>"
        return "Backup deleted." if engine.delete_backup(args[1]) else f"Backup not found: {args[1]}"

    if args and args[0].lower() == "logs":
        entries = engine.migration_logs()
        if not entries:
            return "Migration log is empty."
        return "\n".join(
            f"  {e.timestamp:%Y-%m-%d %H:%M:%S} {e.from_version} -> {e.to_version}: {e.message}"
            for e in entries
        )

    backups = engine.list_backups()
    if not backups:
        return "No backups."
    lines = ["Backups (newest first):"]
    for b in backups:
        lines.append(f"  {b.id}  v{b.version}  {b.timestamp:%Y-%m-%d %H:%M:%S}  {b.size} bytes")
    return "\n".join(lines)


def cmd_keys(state: AppState, args: list[str]) -> str:
    bindings = load_keybindings(state.store)
    lines = ["Keybindings:"]
    for action, keys in sorted(bindings.items()):
        lines.append(f"  {action:<24} {', '.join(keys)}")
    return "\n".join(lines)


def cmd_remind(state: AppState, args: list[str]) -> str:
    count = state.reminders.schedule_all(ReminderTask.from_task(t) for t in state.tasks.tasks)
    return f"Scheduled {count} reminder(s)."


registry.register("help", cmd_help, help_text="Show available commands.", aliases=["h", "?"])
registry.register("status", cmd_status, help_text="Show storage strategy, data version and usage.")
registry.register("tasks", cmd_tasks, help_text="List tasks: /tasks | /tasks all | /tasks <project>.")
registry.register("add", cmd_add, help_text="Create a task: /add <title>.")
registry.register("move", cmd_move, help_text="Move a task: /move <task> <column> [priority].")
registry.register("delete", cmd_delete, help_text="Delete a task: /delete <task> [-y].", aliases=["rm"])
registry.register("undo", cmd_undo, help_text="Undo the last task change.")
registry.register("export", cmd_export, help_text="Export all data: /export [path].")
registry.register("import", cmd_import, help_text="Import a previous export: /import <path>.")
registry.register(
    "backups", cmd_backups, help_text="Migration backups: /backups | /backups delete <id> | /backups logs."
)
registry.register("keys", cmd_keys, help_text="Show keybindings.")
registry.register("remind", cmd_remind, help_text="Schedule due-date reminders for all tasks.")
