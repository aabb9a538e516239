# src/liquitask/constants.py

"""Storage keys, schema version and default board configuration."""

from __future__ import annotations

from enum import StrEnum
from typing import Any

CURRENT_DATA_VERSION = "1.0.0"
BASELINE_VERSION = "0.0.0"


class StorageKey(StrEnum):
    COLUMNS = "liquitask-columns"
    PROJECT_TYPES = "liquitask-project-types"
    PRIORITIES = "liquitask-priorities"
    CUSTOM_FIELDS = "liquitask-custom-fields"
    PROJECTS = "liquitask-projects"
    TASKS = "liquitask-tasks"
    ACTIVE_PROJECT = "liquitask-active-project"
    SIDEBAR_COLLAPSED = "liquitask-sidebar-collapsed"
    GROUPING = "liquitask-grouping"
    TASK_TEMPLATES = "liquitask-task-templates"
    SEARCH_HISTORY = "liquitask-search-history"
    COMPACT_VIEW = "liquitask-compact-view"
    # Migration system keys
    DATA_VERSION = "liquitask-data-version"
    BACKUPS = "liquitask-backups"
    MIGRATION_LOG = "liquitask-migration-log"


# Kept outside StorageKey: bindings are not part of the snapshot.
KEYBINDINGS_KEY = "liquitask:keybindings"

# Snapshot attribute -> storage key. Order matters for export.
SNAPSHOT_KEYS: dict[str, StorageKey] = {
    "columns": StorageKey.COLUMNS,
    "project_types": StorageKey.PROJECT_TYPES,
    "priorities": StorageKey.PRIORITIES,
    "custom_fields": StorageKey.CUSTOM_FIELDS,
    "projects": StorageKey.PROJECTS,
    "tasks": StorageKey.TASKS,
    "active_project_id": StorageKey.ACTIVE_PROJECT,
    "sidebar_collapsed": StorageKey.SIDEBAR_COLLAPSED,
    "grouping": StorageKey.GROUPING,
}

# Evicted first when the local medium runs out of quota.
LOW_PRIORITY_KEYS: tuple[str, ...] = (
    StorageKey.SEARCH_HISTORY,
    StorageKey.MIGRATION_LOG,
    StorageKey.COMPACT_VIEW,
)
EVICTABLE_PREFIXES: tuple[str, ...] = ("liquitask-temp-", "liquitask-cache-")


class ColumnStatus(StrEnum):
    PENDING = "Pending"
    IN_PROGRESS = "InProgress"
    COMPLETED = "Completed"
    DELIVERED = "Delivered"


class LinkType(StrEnum):
    BLOCKS = "blocks"
    BLOCKED_BY = "blocked-by"
    RELATES_TO = "relates-to"
    DUPLICATES = "duplicates"


DEFAULT_PRIORITY_ID = "medium"
DEFAULT_ACTIVE_PROJECT_ID = "p1"
DEFAULT_GROUPING = "none"

DEFAULT_COLUMNS: tuple[dict[str, Any], ...] = (
    {"id": "Pending", "title": "Pending", "color": "#64748b", "wipLimit": 0},
    {"id": "InProgress", "title": "In Progress", "color": "#3b82f6", "wipLimit": 10},
    {"id": "Completed", "title": "Completed", "color": "#10b981", "isCompleted": True, "wipLimit": 0},
    {"id": "Delivered", "title": "Delivered", "color": "#a855f7", "wipLimit": 0},
)

DEFAULT_PROJECT_TYPES: tuple[dict[str, Any], ...] = (
    {"id": "folder", "label": "General", "icon": "folder"},
    {"id": "dev", "label": "Development", "icon": "code"},
    {"id": "marketing", "label": "Marketing", "icon": "megaphone"},
    {"id": "mobile", "label": "Mobile App", "icon": "smartphone"},
    {"id": "inventory", "label": "Inventory", "icon": "box"},
)

DEFAULT_PRIORITIES: tuple[dict[str, Any], ...] = (
    {"id": "high", "label": "High", "color": "#ef4444", "level": 1, "icon": "flame"},
    {"id": "medium", "label": "Medium", "color": "#eab308", "level": 2, "icon": "clock"},
    {"id": "low", "label": "Low", "color": "#10b981", "level": 3, "icon": "arrow-down"},
)

DEFAULT_KEYBINDINGS: dict[str, list[str]] = {
    "global:command-palette": ["Meta+k", "Ctrl+k"],
    "global:toggle-sidebar": ["Meta+b", "Ctrl+b"],
    "global:create-task": ["c"],
    "global:undo": ["Meta+z", "Ctrl+z"],
    "global:export": ["Meta+e", "Ctrl+e"],
    "global:search-focus": ["/"],
    "nav:down": ["ArrowDown", "j"],
    "nav:up": ["ArrowUp", "k"],
    "nav:left": ["ArrowLeft", "h"],
    "nav:right": ["ArrowRight", "l"],
    "nav:select": ["Enter"],
    "nav:back": ["Escape"],
}
