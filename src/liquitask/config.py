# src/liquitask/config.py

"""Centralized settings loaded from environment variables (+ optional .env).

Design goals:
- One Settings object for the whole app.
- No storage is touched at import time.
- Every path lives under the data dir unless explicitly overridden.
"""

from __future__ import annotations

import os
from dataclasses import dataclass
from pathlib import Path

ENV_PREFIX = "LIQUITASK"

DEFAULT_LOCAL_QUOTA_BYTES = 5 * 1024 * 1024


def _k(suffix: str) -> str:
    """Build env var name with the project prefix."""
    return f"{ENV_PREFIX}_{suffix}"


def _load_dotenv_if_available() -> None:
    """Load .env locally. Values already present in the environment win."""
    from dotenv import load_dotenv

    load_dotenv(override=False)


_load_dotenv_if_available()


def _env(name: str, default: str = "") -> str:
    v = os.getenv(name)
    return default if v is None else v


def _env_bool(name: str, default: bool) -> bool:
    raw = os.getenv(name)
    if raw is None:
        return default
    return raw.strip().lower() in {"1", "true", "yes", "y", "on"}


def _env_int(name: str, default: int) -> int:
    raw = os.getenv(name)
    if raw is None or raw.strip() == "":
        return default
    try:
        return int(raw)
    except ValueError:
        return default


def _env_float(name: str, default: float) -> float:
    raw = os.getenv(name)
    if raw is None or raw.strip() == "":
        return default
    try:
        return float(raw)
    except ValueError:
        return default


def _env_path(name: str, default: Path) -> Path:
    raw = os.getenv(name)
    if raw is None or raw.strip() == "":
        return default
    return Path(raw).expanduser()


@dataclass(frozen=True, slots=True)
class Settings:
    # ---- App / logging ----
    app_name: str
    log_level: str

    # ---- Storage media ----
    data_dir: Path
    native_enabled: bool
    native_store_path: Path
    local_db_path: Path
    local_quota_bytes: int

    # ---- Domain / migration tuning ----
    undo_capacity: int
    max_backups: int
    migration_log_limit: int

    # ---- Reminders ----
    reminder_interval_seconds: float

    @staticmethod
    def from_env() -> "Settings":
        app_name = _env(_k("APP_NAME"), "liquitask") or "liquitask"
        log_level = _env(_k("LOG_LEVEL"), "INFO")

        data_dir = _env_path(_k("DATA_DIR"), Path(".local/liquitask"))
        native_enabled = _env_bool(_k("NATIVE_ENABLED"), True)
        native_store_path = _env_path(_k("NATIVE_STORE_PATH"), data_dir / "config.json")
        local_db_path = _env_path(_k("LOCAL_DB_PATH"), data_dir / "local_storage.sqlite3")
        local_quota_bytes = _env_int(_k("LOCAL_QUOTA_BYTES"), DEFAULT_LOCAL_QUOTA_BYTES)

        undo_capacity = _env_int(_k("UNDO_CAPACITY"), 20)
        max_backups = _env_int(_k("MAX_BACKUPS"), 3)
        migration_log_limit = _env_int(_k("MIGRATION_LOG_LIMIT"), 100)

        reminder_interval_seconds = _env_float(_k("REMINDER_INTERVAL_SECONDS"), 60.0)

        return Settings(
            app_name=app_name,
            log_level=log_level,
            data_dir=data_dir,
            native_enabled=native_enabled,
            native_store_path=native_store_path,
            local_db_path=local_db_path,
            local_quota_bytes=max(0, local_quota_bytes),
            undo_capacity=max(1, undo_capacity),
            max_backups=max(1, max_backups),
            migration_log_limit=max(1, migration_log_limit),
            reminder_interval_seconds=max(1.0, reminder_interval_seconds),
        )


SETTINGS = Settings.from_env()


def get_settings() -> Settings:
    return SETTINGS
