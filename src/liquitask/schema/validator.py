# src/liquitask/schema/validator.py

"""
Validator boundary: raw JSON in, typed values out.

Every persisted key has a TypeAdapter; internal code only ever sees the
decoded values. Import documents go through `validate_snapshot`, which either
returns a fully validated SnapshotPatch or raises ValidationError listing
every failing path.
"""

from __future__ import annotations

import logging
from typing import Any

from pydantic import TypeAdapter
from pydantic import ValidationError as PydanticValidationError

from ..constants import KEYBINDINGS_KEY, StorageKey
from ..errors import ParseError, ValidationError
from .models import (
    DATE_FALLBACKS_CONTEXT_KEY,
    BackupEntry,
    BoardColumn,
    CustomFieldDefinition,
    Grouping,
    MigrationLogEntry,
    PriorityDefinition,
    Project,
    ProjectType,
    SnapshotPatch,
    Task,
    TaskTemplate,
)

logger = logging.getLogger(__name__)

_KEY_ADAPTERS: dict[str, TypeAdapter[Any]] = {
    StorageKey.COLUMNS: TypeAdapter(list[BoardColumn]),
    StorageKey.PROJECT_TYPES: TypeAdapter(list[ProjectType]),
    StorageKey.PRIORITIES: TypeAdapter(list[PriorityDefinition]),
    StorageKey.CUSTOM_FIELDS: TypeAdapter(list[CustomFieldDefinition]),
    StorageKey.PROJECTS: TypeAdapter(list[Project]),
    StorageKey.TASKS: TypeAdapter(list[Task]),
    StorageKey.ACTIVE_PROJECT: TypeAdapter(str),
    StorageKey.SIDEBAR_COLLAPSED: TypeAdapter(bool),
    StorageKey.GROUPING: TypeAdapter(Grouping),
    StorageKey.TASK_TEMPLATES: TypeAdapter(list[TaskTemplate]),
    StorageKey.SEARCH_HISTORY: TypeAdapter(list[str]),
    StorageKey.COMPACT_VIEW: TypeAdapter(bool),
    StorageKey.DATA_VERSION: TypeAdapter(str),
    StorageKey.BACKUPS: TypeAdapter(list[BackupEntry]),
    StorageKey.MIGRATION_LOG: TypeAdapter(list[MigrationLogEntry]),
    KEYBINDINGS_KEY: TypeAdapter(dict[str, list[str]]),
}

_ANY: TypeAdapter[Any] = TypeAdapter(Any)


def format_loc(loc: tuple[int | str, ...]) -> str:
    return ".".join(str(part) for part in loc)


def issues_from(exc: PydanticValidationError) -> list[tuple[str, str]]:
    return [(format_loc(err["loc"]), err["msg"]) for err in exc.errors()]


def decode_value(key: str, raw: Any) -> Any:
    """
    Decode a parsed JSON value stored under `key`.

    Unknown keys pass through untouched. Raises ParseError when the value does
    not match the key's shape.
    """
    adapter = _KEY_ADAPTERS.get(key)
    if adapter is None:
        return raw
    try:
        return adapter.validate_python(raw, context={DATE_FALLBACKS_CONTEXT_KEY: []})
    except PydanticValidationError as exc:
        detail = ", ".join(f"{path}: {reason}" for path, reason in issues_from(exc)[:5])
        raise ParseError(key, detail) from exc


def encode_value(value: Any) -> Any:
    """Typed value -> JSON-ready data (camelCase names, ISO dates, no None fields)."""
    return _ANY.dump_python(value, mode="json", by_alias=True, exclude_none=True)


def validate_snapshot(raw: Any) -> tuple[SnapshotPatch, list[str]]:
    """
    Validate an import-shaped document.

    Returns the patch and the list of date-fallback warnings. Raises
    ValidationError with per-path issues, e.g. "tasks.0.title: Field required".
    """
    if not isinstance(raw, dict):
        raise ValidationError([("", "Expected a JSON object")])

    context: dict[str, list[str]] = {DATE_FALLBACKS_CONTEXT_KEY: []}
    try:
        patch = SnapshotPatch.model_validate(raw, context=context)
    except PydanticValidationError as exc:
        raise ValidationError(issues_from(exc)) from exc

    warnings = list(context[DATE_FALLBACKS_CONTEXT_KEY])
    if warnings:
        logger.warning("Snapshot validated with %d date fallback(s)", len(warnings))
    return patch, warnings
