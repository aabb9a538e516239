# src/liquitask/schema/models.py

"""
Typed records for everything the persistence layer stores.

Field names are snake_case in Python and camelCase on the wire (alias
generator), so stored documents stay compatible with the application's
existing JSON. Dates are timezone-aware UTC datetimes.
"""

from __future__ import annotations

import logging
import re
from datetime import UTC, datetime
from typing import Annotated, Any, Literal, Optional, TypeAlias

from pydantic import AfterValidator, BaseModel, BeforeValidator, ConfigDict, Field, ValidationInfo
from pydantic.alias_generators import to_camel
from pydantic_core import PydanticCustomError

from ..constants import (
    CURRENT_DATA_VERSION,
    DEFAULT_ACTIVE_PROJECT_ID,
    DEFAULT_COLUMNS,
    DEFAULT_GROUPING,
    DEFAULT_PRIORITIES,
    DEFAULT_PRIORITY_ID,
    DEFAULT_PROJECT_TYPES,
)

logger = logging.getLogger(__name__)

_HEX_COLOR = re.compile(r"#[0-9A-Fa-f]{6}")

# Collected per validation call through the pydantic context.
DATE_FALLBACKS_CONTEXT_KEY = "date_fallbacks"


def utcnow() -> datetime:
    return datetime.now(UTC)


def _date_fallback(value: Any, info: ValidationInfo) -> datetime:
    field = info.field_name or "<date>"
    note = f"{field}: unparsable date {value!r} replaced with current time"
    logger.warning("Date fallback: %s", note)
    context = info.context
    if isinstance(context, dict):
        context.setdefault(DATE_FALLBACKS_CONTEXT_KEY, []).append(note)
    return utcnow()


def _parse_datetime(value: Any, info: ValidationInfo) -> datetime:
    """
    Accept datetimes, ISO-8601 strings and epoch milliseconds.

    Anything unparsable becomes "now" and is reported through the context.
    """
    if isinstance(value, datetime):
        return value if value.tzinfo is not None else value.replace(tzinfo=UTC)

    if isinstance(value, (int, float)) and not isinstance(value, bool):
        try:
            return datetime.fromtimestamp(float(value) / 1000.0, tz=UTC)
        except (OverflowError, OSError, ValueError):
            return _date_fallback(value, info)

    if isinstance(value, str):
        try:
            parsed = datetime.fromisoformat(value.strip())
        except ValueError:
            return _date_fallback(value, info)
        return parsed if parsed.tzinfo is not None else parsed.replace(tzinfo=UTC)

    return _date_fallback(value, info)


def _parse_optional_datetime(value: Any, info: ValidationInfo) -> datetime | None:
    if value is None or value == "":
        return None
    return _parse_datetime(value, info)


def _require_text(value: str) -> str:
    if not value.strip():
        raise PydanticCustomError("empty_text", "Must not be empty")
    return value


def _check_hex_color(value: str) -> str:
    if not _HEX_COLOR.fullmatch(value):
        raise PydanticCustomError("hex_color", "Color must be a valid hex code")
    return value


Datetime: TypeAlias = Annotated[datetime, BeforeValidator(_parse_datetime)]
OptionalDatetime: TypeAlias = Annotated[Optional[datetime], BeforeValidator(_parse_optional_datetime)]
RequiredText: TypeAlias = Annotated[str, AfterValidator(_require_text)]
HexColor: TypeAlias = Annotated[str, AfterValidator(_check_hex_color)]
PositiveInt: TypeAlias = Annotated[int, Field(gt=0)]
NonNegativeInt: TypeAlias = Annotated[int, Field(ge=0)]

LinkKind: TypeAlias = Literal["blocks", "blocked-by", "relates-to", "duplicates"]
CustomFieldType: TypeAlias = Literal["text", "number", "dropdown", "url"]
Grouping: TypeAlias = Literal["none", "priority"]
Frequency: TypeAlias = Literal["daily", "weekly", "monthly", "custom"]


class Record(BaseModel):
    """Base class setting up pydantic configs."""

    model_config = ConfigDict(
        alias_generator=to_camel,
        populate_by_name=True,
        extra="ignore",
        frozen=True,
    )


# ---- task parts ----


class Subtask(Record):
    id: str
    title: str
    completed: bool = False


class Attachment(Record):
    id: str
    name: str
    url: str
    type: Literal["file", "link"]


class TaskLink(Record):
    target_task_id: str
    type: LinkKind


class RecurringConfig(Record):
    enabled: bool
    frequency: Frequency
    interval: int = 1
    days_of_week: list[int] | None = None
    day_of_month: int | None = None
    end_date: OptionalDatetime = None
    next_occurrence: OptionalDatetime = None


class ErrorLogEntry(Record):
    timestamp: Datetime = Field(default_factory=utcnow)
    message: str


class Task(Record):
    id: str
    job_id: str = ""
    project_id: str = ""
    title: RequiredText
    subtitle: str = ""
    summary: str = ""
    assignee: str = ""
    priority: str = DEFAULT_PRIORITY_ID
    status: str = ""
    created_at: Datetime = Field(default_factory=utcnow)
    updated_at: OptionalDatetime = None
    due_date: OptionalDatetime = None
    completed_at: OptionalDatetime = None
    subtasks: list[Subtask] = Field(default_factory=list)
    attachments: list[Attachment] = Field(default_factory=list)
    custom_field_values: dict[str, str | int | float] = Field(default_factory=dict)
    links: list[TaskLink] = Field(default_factory=list)
    tags: list[str] = Field(default_factory=list)
    time_estimate: float = 0
    time_spent: float = 0
    recurring: RecurringConfig | None = None
    error_logs: list[ErrorLogEntry] = Field(default_factory=list)

    def blocked_by_ids(self) -> list[str]:
        return [link.target_task_id for link in self.links if link.type == "blocked-by"]


# ---- board configuration ----


class BoardColumn(Record):
    id: str
    title: RequiredText
    color: HexColor
    is_completed: bool | None = None
    wip_limit: NonNegativeInt | None = None


class PriorityDefinition(Record):
    id: str
    label: RequiredText
    color: HexColor
    level: PositiveInt
    icon: str | None = None


class ProjectType(Record):
    id: str
    label: RequiredText
    icon: str


class Project(Record):
    id: str
    name: RequiredText
    type: str
    parent_id: str | None = None
    pinned: bool | None = None
    order: int | None = None


class CustomFieldDefinition(Record):
    id: str
    label: RequiredText
    type: CustomFieldType
    options: list[str] | None = None


class TaskTemplate(Record):
    id: str
    name: RequiredText
    description: str | None = None
    task_defaults: dict[str, Any] = Field(default_factory=dict)
    created_at: Datetime = Field(default_factory=utcnow)


# ---- migration bookkeeping ----


class BackupEntry(Record):
    """Raw pre-migration snapshot; `data` is kept exactly as it was stored."""

    id: str
    version: str
    timestamp: Datetime
    size: int
    data: dict[str, Any]


class MigrationLogEntry(Record):
    from_version: str = Field(alias="from")
    to_version: str = Field(alias="to")
    timestamp: Datetime
    message: str = ""


# ---- snapshot ----


def default_columns() -> list[BoardColumn]:
    return [BoardColumn.model_validate(c) for c in DEFAULT_COLUMNS]


def default_priorities() -> list[PriorityDefinition]:
    return [PriorityDefinition.model_validate(p) for p in DEFAULT_PRIORITIES]


def default_project_types() -> list[ProjectType]:
    return [ProjectType.model_validate(t) for t in DEFAULT_PROJECT_TYPES]


class AppDataSnapshot(Record):
    """The full persisted bundle, every field present."""

    columns: list[BoardColumn] = Field(default_factory=default_columns)
    project_types: list[ProjectType] = Field(default_factory=default_project_types)
    priorities: list[PriorityDefinition] = Field(default_factory=default_priorities)
    custom_fields: list[CustomFieldDefinition] = Field(default_factory=list)
    projects: list[Project] = Field(default_factory=list)
    tasks: list[Task] = Field(default_factory=list)
    active_project_id: str = DEFAULT_ACTIVE_PROJECT_ID
    sidebar_collapsed: bool = False
    grouping: Grouping = DEFAULT_GROUPING
    schema_version: str = Field(default=CURRENT_DATA_VERSION, alias="version")


class SnapshotPatch(Record):
    """
    Import-shaped snapshot: every top-level field optional.

    A field left as None was absent from the imported document and must not
    overwrite stored data.
    """

    columns: list[BoardColumn] | None = None
    project_types: list[ProjectType] | None = None
    priorities: list[PriorityDefinition] | None = None
    custom_fields: list[CustomFieldDefinition] | None = None
    projects: list[Project] | None = None
    tasks: list[Task] | None = None
    active_project_id: str | None = None
    sidebar_collapsed: bool | None = None
    grouping: Grouping | None = None
    schema_version: str | None = Field(default=None, alias="version")

    def present(self) -> dict[str, Any]:
        """Snapshot attributes carried by this patch (schema_version excluded)."""
        return {
            name: getattr(self, name)
            for name in type(self).model_fields
            if name != "schema_version" and getattr(self, name) is not None
        }
