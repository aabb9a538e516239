# tests/test_config.py

from __future__ import annotations

from pathlib import Path

import pytest

from liquitask.config import DEFAULT_LOCAL_QUOTA_BYTES, Settings


def test_defaults_live_under_data_dir(monkeypatch: pytest.MonkeyPatch, tmp_path: Path) -> None:
    for name in ("NATIVE_STORE_PATH", "LOCAL_DB_PATH", "LOCAL_QUOTA_BYTES", "NATIVE_ENABLED"):
        monkeypatch.delenv(f"LIQUITASK_{name}", raising=False)
    monkeypatch.setenv("LIQUITASK_DATA_DIR", str(tmp_path))

    s = Settings.from_env()

    assert s.data_dir == tmp_path
    assert s.native_store_path == tmp_path / "config.json"
    assert s.local_db_path == tmp_path / "local_storage.sqlite3"
    assert s.local_quota_bytes == DEFAULT_LOCAL_QUOTA_BYTES
    assert s.native_enabled is True


def test_env_overrides_and_bad_values(monkeypatch: pytest.MonkeyPatch) -> None:
    monkeypatch.setenv("LIQUITASK_NATIVE_ENABLED", "off")
    monkeypatch.setenv("LIQUITASK_UNDO_CAPACITY", "0")
    monkeypatch.setenv("LIQUITASK_MAX_BACKUPS", "not-a-number")
    monkeypatch.setenv("LIQUITASK_REMINDER_INTERVAL_SECONDS", "2.5")

    s = Settings.from_env()

    assert s.native_enabled is False
    assert s.undo_capacity == 1
    assert s.max_backups == 3
    assert s.reminder_interval_seconds == 2.5
