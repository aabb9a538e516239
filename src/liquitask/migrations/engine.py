# src/liquitask/migrations/engine.py

"""
Versioned migration engine.

Runs once at startup (from Store.initialize) and is safe to re-trigger after a
crash mid-migration:
- the untouched snapshot is written to the backups slot first,
- a {from, to, timestamp} log entry is appended before any step runs,
- steps run on a deep copy; the first failing step halts the chain,
- a backup that cannot be written aborts the run before any step,
- on failure nothing is written back and the backup stays in place.
"""

from __future__ import annotations

import copy
import json
import logging
import secrets
import time
from collections.abc import Sequence
from dataclasses import dataclass

from ..constants import BASELINE_VERSION, StorageKey
from ..core.ports import KeyValueStore
from ..errors import MigrationError
from ..schema.models import BackupEntry, MigrationLogEntry, utcnow
from .registry import MIGRATIONS, MigrationStep, RawSnapshot, compare_versions

logger = logging.getLogger(__name__)


@dataclass(frozen=True, slots=True)
class MigrationResult:
    success: bool
    migrated_from: str
    migrated_to: str | None = None
    data: RawSnapshot | None = None
    error: str | None = None
    backup_id: str | None = None


class MigrationEngine:
    """
    Applies registered steps from a stored schema version to the current one.

    Backups and the migration log are persisted through the injected store
    (the same cache-backed store the rest of the app uses).
    """

    def __init__(
        self,
        store: KeyValueStore,
        *,
        steps: Sequence[MigrationStep] = MIGRATIONS,
        max_backups: int = 3,
        log_limit: int = 100,
    ) -> None:
        self._store = store
        self._steps = tuple(steps)
        self._max_backups = max(1, int(max_backups))
        self._log_limit = max(1, int(log_limit))

    @property
    def current_version(self) -> str:
        return self._steps[-1].to_version if self._steps else BASELINE_VERSION

    def needs_migration(self, stored_version: str | None) -> bool:
        return (stored_version or BASELINE_VERSION) != self.current_version

    def pending_steps(self, stored_version: str | None) -> list[MigrationStep]:
        start = stored_version or BASELINE_VERSION
        return [s for s in self._steps if compare_versions(s.to_version, start) > 0]

    def apply_steps(self, snapshot: RawSnapshot, stored_version: str | None) -> RawSnapshot:
        """
        Run the step chain without any bookkeeping (no backup, no log).

        Used for documents that are not persisted yet, e.g. imports.
        Raises MigrationError on the first failing step.
        """
        start = stored_version or BASELINE_VERSION
        if compare_versions(start, self.current_version) > 0:
            raise MigrationError(
                start, f"stored version {start} is newer than supported {self.current_version}"
            )

        data = copy.deepcopy(snapshot)
        for step in self.pending_steps(start):
            try:
                data = step.migrate(data)
            except Exception as exc:
                raise MigrationError(step.to_version, str(exc) or type(exc).__name__) from exc
            if not isinstance(data, dict):
                raise MigrationError(step.to_version, "step did not return a mapping")
            data["version"] = step.to_version

        data["version"] = self.current_version
        return data

    def run_migrations(self, snapshot: RawSnapshot, stored_version: str | None) -> MigrationResult:
        start = stored_version or BASELINE_VERSION

        if not self.needs_migration(start):
            return MigrationResult(
                success=True,
                migrated_from=start,
                migrated_to=start,
                data=snapshot,
            )

        if compare_versions(start, self.current_version) > 0:
            error = f"stored version {start} is newer than supported {self.current_version}"
            logger.error("Migration refused: %s", error)
            return MigrationResult(success=False, migrated_from=start, error=error)

        try:
            backup_id = self.create_backup(snapshot, start)
        except MigrationError as exc:
            logger.error("Migration aborted, no backup: %s", exc.reason)
            return MigrationResult(success=False, migrated_from=start, error=str(exc))
        self._log(start, self.current_version, "Starting migration")

        steps = self.pending_steps(start)
        logger.info(
            "Migrating data %s -> %s (%s)",
            start,
            self.current_version,
            " -> ".join(s.to_version for s in steps) or "version stamp only",
        )

        try:
            data = self.apply_steps(snapshot, start)
        except MigrationError as exc:
            logger.error("Migration failed at %s: %s", exc.version, exc.reason)
            self._log(start, exc.version, f"Migration failed: {exc.reason}")
            return MigrationResult(
                success=False,
                migrated_from=start,
                error=str(exc),
                backup_id=backup_id,
            )

        self._log(start, self.current_version, "Migration complete")
        logger.info("Migration complete: %s -> %s", start, self.current_version)
        return MigrationResult(
            success=True,
            migrated_from=start,
            migrated_to=self.current_version,
            data=data,
            backup_id=backup_id,
        )

    # ---- backups ----

    def _backups(self) -> list[BackupEntry]:
        return list(self._store.get(StorageKey.BACKUPS, []) or [])

    def create_backup(self, snapshot: RawSnapshot, version: str | None = None) -> str:
        """Store a copy of `snapshot`. Raises MigrationError when the write fails."""
        backup_id = f"backup_{int(time.time() * 1000)}_{secrets.token_hex(4)}"
        data = copy.deepcopy(snapshot)
        entry = BackupEntry(
            id=backup_id,
            version=version or str(snapshot.get("version") or BASELINE_VERSION),
            timestamp=utcnow(),
            size=len(json.dumps(data, default=str)),
            data=data,
        )
        backups = self._backups()
        backups.append(entry)
        # Newest last; keep only the most recent ones.
        backups = backups[-self._max_backups :]
        written = self._store.set(StorageKey.BACKUPS, backups)
        if not written.success:
            raise MigrationError(self.current_version, f"backup write failed: {written.error}")
        logger.info("Backup created: %s (version %s, %d bytes)", backup_id, entry.version, entry.size)
        return backup_id

    def list_backups(self) -> list[BackupEntry]:
        """Newest first."""
        return sorted(self._backups(), key=lambda b: b.timestamp, reverse=True)

    def restore_backup(self, backup_id: str) -> RawSnapshot | None:
        for entry in self._backups():
            if entry.id == backup_id:
                self._log(entry.version, entry.version, f"Restored from backup {backup_id}")
                return copy.deepcopy(entry.data)
        logger.error("Backup not found: %s", backup_id)
        return None

    def delete_backup(self, backup_id: str) -> bool:
        backups = self._backups()
        kept = [b for b in backups if b.id != backup_id]
        if len(kept) == len(backups):
            return False
        self._store.set(StorageKey.BACKUPS, kept)
        return True

    # ---- log ----

    def _log(self, from_version: str, to_version: str, message: str) -> None:
        entries = list(self._store.get(StorageKey.MIGRATION_LOG, []) or [])
        entries.append(
            MigrationLogEntry(
                from_version=from_version,
                to_version=to_version,
                timestamp=utcnow(),
                message=message,
            )
        )
        self._store.set(StorageKey.MIGRATION_LOG, entries[-self._log_limit :])

    def migration_logs(self) -> list[MigrationLogEntry]:
        return list(self._store.get(StorageKey.MIGRATION_LOG, []) or [])

    def clear_migration_logs(self) -> None:
        self._store.remove(StorageKey.MIGRATION_LOG)

