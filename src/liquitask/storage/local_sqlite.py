# src/liquitask/storage/local_sqlite.py

from __future__ import annotations

import contextlib
import logging
import sqlite3
import time
from dataclasses import dataclass
from pathlib import Path

from ..config import DEFAULT_LOCAL_QUOTA_BYTES
from ..errors import QuotaError

logger = logging.getLogger(__name__)

# Usage is estimated like a browser does: UTF-16, two bytes per character.
BYTES_PER_CHAR = 2
NEAR_QUOTA_PERCENT = 80.0


@dataclass(frozen=True, slots=True)
class StorageUsage:
    used: int
    total: int

    @property
    def available(self) -> int:
        return max(0, self.total - self.used)

    @property
    def percentage(self) -> float:
        if self.total <= 0:
            return 100.0
        return min(100.0, self.used * 100.0 / self.total)


def entry_size(key: str, value: str) -> int:
    return (len(key) + len(value)) * BYTES_PER_CHAR


class SqliteLocalMedium:
    """
    SQLite-backed synchronous key-value storage with a byte quota.

    This is the browser-local medium: string values, synchronous calls,
    writes refused with QuotaError once the estimated usage would exceed the
    quota.

    Thread-safety:
    - each method opens its own SQLite connection
    """

    def __init__(
        self,
        db_path: str | Path = "local_storage.sqlite3",
        *,
        quota_bytes: int = DEFAULT_LOCAL_QUOTA_BYTES,
    ) -> None:
        self._db_path = Path(db_path)
        self._db_path.parent.mkdir(parents=True, exist_ok=True)
        self._quota_bytes = int(quota_bytes)
        self._ensure_schema()
        try:
            usage = self.usage()
            logger.info(
                "SqliteLocalMedium ready db=%s used=%.1f%% of %d bytes",
                self._db_path,
                usage.percentage,
                usage.total,
            )
        except Exception:
            logger.exception("SqliteLocalMedium usage query failed db=%s", self._db_path)

    # ---- low-level helpers ----

    def _get_conn(self) -> sqlite3.Connection:
        conn = sqlite3.connect(str(self._db_path), timeout=30.0)
        conn.row_factory = sqlite3.Row
        self._configure_conn(conn)
        return conn

    @staticmethod
    def _configure_conn(conn: sqlite3.Connection) -> None:
        with contextlib.suppress(sqlite3.Error):
            conn.execute("PRAGMA journal_mode=WAL")

    def _ensure_schema(self) -> None:
        conn = self._get_conn()
        try:
            conn.execute(
                """
                CREATE TABLE IF NOT EXISTS kv (
                    key TEXT PRIMARY KEY,
                    value TEXT NOT NULL,
                    updated_at REAL NOT NULL
                )
                """
            )
            conn.commit()
        finally:
            conn.close()

    # ---- public API ----

    def get_item(self, key: str) -> str | None:
        conn = self._get_conn()
        try:
            row = conn.execute("SELECT value FROM kv WHERE key = ?", (key,)).fetchone()
            return None if row is None else str(row["value"])
        finally:
            conn.close()

    def set_item(self, key: str, value: str) -> None:
        conn = self._get_conn()
        try:
            used = self._used_bytes(conn)
            row = conn.execute("SELECT value FROM kv WHERE key = ?", (key,)).fetchone()
            previous = entry_size(key, str(row["value"])) if row is not None else 0
            required = entry_size(key, value)
            projected = used - previous + required
            if projected > self._quota_bytes:
                raise QuotaError(key, required, max(0, self._quota_bytes - (used - previous)))

            conn.execute(
                """
                INSERT INTO kv(key, value, updated_at) VALUES (?, ?, ?)
                ON CONFLICT(key) DO UPDATE SET value = excluded.value, updated_at = excluded.updated_at
                """,
                (key, value, time.time()),
            )
            conn.commit()
        finally:
            conn.close()

        if self._quota_bytes > 0 and projected * 100.0 / self._quota_bytes >= NEAR_QUOTA_PERCENT:
            logger.warning(
                "Local storage is nearly full (%.1f%%). Consider exporting and clearing old data.",
                projected * 100.0 / self._quota_bytes,
            )
        logger.debug("Local set key=%s bytes=%d", key, required)

    def remove_item(self, key: str) -> None:
        conn = self._get_conn()
        try:
            conn.execute("DELETE FROM kv WHERE key = ?", (key,))
            conn.commit()
        finally:
            conn.close()

    def keys(self) -> list[str]:
        conn = self._get_conn()
        try:
            return [str(r["key"]) for r in conn.execute("SELECT key FROM kv ORDER BY key")]
        finally:
            conn.close()

    def usage(self) -> StorageUsage:
        conn = self._get_conn()
        try:
            return StorageUsage(used=self._used_bytes(conn), total=self._quota_bytes)
        finally:
            conn.close()

    @staticmethod
    def _used_bytes(conn: sqlite3.Connection) -> int:
        (chars,) = conn.execute(
            "SELECT COALESCE(SUM(LENGTH(key) + LENGTH(value)), 0) FROM kv"
        ).fetchone()
        return int(chars) * BYTES_PER_CHAR
