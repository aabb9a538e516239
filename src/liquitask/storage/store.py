# src/liquitask/storage/store.py

"""
Dual-backend store.

The in-memory cache is the only read path during a session. Writes go to the
cache synchronously and are persisted either:
- to the native medium, fire-and-forget on the running event loop (NATIVE), or
- to the quota-limited local medium, synchronously (BROWSER).

`initialize()` is awaited once at startup: it loads every known key, copies
local-only keys forward into the native medium, and runs schema migrations
when the stored data version is stale.
"""

from __future__ import annotations

import asyncio
import json
import logging
from collections.abc import Awaitable, Callable
from dataclasses import dataclass
from enum import StrEnum
from typing import Any

from pydantic.alias_generators import to_camel

from ..constants import (
    CURRENT_DATA_VERSION,
    EVICTABLE_PREFIXES,
    KEYBINDINGS_KEY,
    LOW_PRIORITY_KEYS,
    SNAPSHOT_KEYS,
    StorageKey,
)
from ..core.ports import LocalMedium, NativeMedium, StorageUsage
from ..errors import MigrationError, ParseError, QuotaError, ValidationError
from ..migrations.engine import MigrationEngine, MigrationResult
from ..migrations.registry import RawSnapshot, compare_versions
from ..schema.models import AppDataSnapshot, SnapshotPatch
from ..schema.validator import decode_value, encode_value, validate_snapshot

logger = logging.getLogger(__name__)

PERSISTED_KEYS: tuple[str, ...] = (*StorageKey, KEYBINDINGS_KEY)

_MISSING = object()


class BackendStrategy(StrEnum):
    NATIVE = "native"
    BROWSER = "browser"


@dataclass(frozen=True, slots=True)
class WriteResult:
    success: bool
    error: str | None = None


@dataclass(frozen=True, slots=True)
class ImportResult:
    """Outcome of `Store.import_data`: a validated patch, or an error and nothing else."""

    data: SnapshotPatch | None = None
    error: str | None = None
    issues: tuple[tuple[str, str], ...] = ()
    warnings: tuple[str, ...] = ()

    @property
    def success(self) -> bool:
        return self.data is not None and self.error is None


class Store:
    def __init__(
        self,
        local: LocalMedium,
        native: NativeMedium | None = None,
        *,
        max_backups: int = 3,
        migration_log_limit: int = 100,
    ) -> None:
        self._local = local
        self._native = native
        self.strategy = BackendStrategy.NATIVE if native is not None else BackendStrategy.BROWSER
        self._cache: dict[str, Any] = {}
        self._pending: set[asyncio.Task[None]] = set()
        # Keys whose fire-and-forget native write failed since the last reset.
        self._failed_native: set[str] = set()
        self.migration_engine = MigrationEngine(
            self,
            max_backups=max_backups,
            log_limit=migration_log_limit,
        )
        self.migration_result: MigrationResult | None = None
        logger.info("Store created strategy=%s", self.strategy.value)

    # ---- key/value API ----

    def get(self, key: str, default: Any = None) -> Any:
        cached = self._cache.get(key, _MISSING)
        if cached is not _MISSING:
            return default if cached is None else cached

        value = self._load_local(key)
        # Misses are cached too: one medium read per key per session.
        self._cache[key] = value
        return default if value is None else value

    def set(self, key: str, value: Any) -> WriteResult:
        try:
            payload = encode_value(value)
        except Exception as exc:
            logger.exception("Failed to serialize value for %s", key)
            return WriteResult(False, str(exc))

        self._cache[key] = value
        if self.strategy is BackendStrategy.NATIVE:
            native = self._native
            assert native is not None
            if self._spawn(f"set {key}", lambda: native.set(key, payload), key=key):
                return WriteResult(True)
            logger.warning("No running event loop; writing %s to local storage instead", key)

        return self._write_local(key, payload)

    def remove(self, key: str) -> None:
        self._cache.pop(key, None)
        try:
            self._local.remove_item(key)
        except Exception:
            logger.exception("Failed to remove %s from local storage", key)

        if self._native is not None:
            native = self._native
            if not self._spawn(f"delete {key}", lambda: native.delete(key)):
                logger.warning("No running event loop; %s stays in the native store", key)

    def clear(self) -> None:
        self._cache.clear()
        try:
            for key in self._local.keys():
                self._local.remove_item(key)
        except Exception:
            logger.exception("Failed to clear local storage")

        if self._native is not None:
            native = self._native
            if not self._spawn("clear", native.clear):
                logger.warning("No running event loop; native store was not cleared")
        logger.info("Store cleared")

    def usage(self) -> StorageUsage:
        return self._local.usage()

    # ---- lifecycle ----

    async def initialize(self) -> MigrationResult | None:
        """
        Load every known key into the cache and migrate stale data.

        Returns the migration result when a migration ran, otherwise None.
        """
        raw_values: dict[str, Any] = {}
        unreadable: list[str] = []
        copied = 0
        for key in PERSISTED_KEYS:
            if self._native is None:
                raw_values[key] = self._read_local_json(key)
                continue
            try:
                raw = await self._native.get(key)
            except Exception:
                logger.exception("Native read failed for %s", key)
                # Serve the local copy for this session; never copy it over native data.
                unreadable.append(key)
                raw = self._read_local_json(key)
            else:
                if raw is None:
                    raw = self._read_local_json(key)
                    if raw is not None and await self._copy_forward(key, raw):
                        copied += 1
            raw_values[key] = raw

        if copied:
            logger.info("Copied %d key(s) from local storage into the native store", copied)

        stored_version = raw_values.get(StorageKey.DATA_VERSION)
        stored_version = str(stored_version) if stored_version else None
        has_data = any(raw_values.get(key) is not None for key in SNAPSHOT_KEYS.values())

        for key, raw in raw_values.items():
            self._cache[key] = self._decode_or_none(key, raw)

        if unreadable:
            logger.error(
                "Native store unreadable for %s; skipping migration this session",
                ", ".join(unreadable),
            )
            return None

        if not has_data:
            if stored_version is None:
                self.set(StorageKey.DATA_VERSION, self.migration_engine.current_version)
            logger.info("Store initialized (no stored data)")
            return None

        if not self.migration_engine.needs_migration(stored_version):
            logger.info("Store initialized (data version %s)", stored_version)
            return None

        snapshot: RawSnapshot = {
            to_camel(name): raw_values[key]
            for name, key in SNAPSHOT_KEYS.items()
            if raw_values.get(key) is not None
        }
        if stored_version is not None:
            snapshot["version"] = stored_version

        self._failed_native.clear()
        result = self.migration_engine.run_migrations(snapshot, stored_version)
        if result.success and result.backup_id is not None:
            if await self._settle([StorageKey.BACKUPS]):
                result = MigrationResult(
                    success=False,
                    migrated_from=result.migrated_from,
                    error="backup write failed",
                )
        self.migration_result = result
        if not result.success or result.data is None:
            logger.error("Continuing on un-migrated data: %s", result.error)
            return result

        written: list[str] = []
        failed: list[str] = []
        for name, key in SNAPSHOT_KEYS.items():
            alias = to_camel(name)
            if alias not in result.data:
                continue
            value = self._decode_or_none(key, result.data[alias])
            if value is None:
                continue
            written.append(key)
            if not self.set(key, value).success:
                failed.append(key)
        failed.extend(k for k in await self._settle(written) if k not in failed)

        if failed:
            # Version stays stale: the next start migrates again.
            error = f"failed to write migrated data: {', '.join(failed)}"
            logger.error("Migration not committed: %s", error)
            result = MigrationResult(
                success=False,
                migrated_from=result.migrated_from,
                error=error,
                backup_id=result.backup_id,
            )
            self.migration_result = result
            return result

        self.set(StorageKey.DATA_VERSION, result.migrated_to or self.migration_engine.current_version)
        logger.info("Store initialized (migrated %s -> %s)", result.migrated_from, result.migrated_to)
        return result

    async def _settle(self, keys: list[str]) -> list[str]:
        """Wait for pending native writes; return which of `keys` failed to persist."""
        if self.strategy is not BackendStrategy.NATIVE:
            return []
        await self.flush()
        return [key for key in keys if key in self._failed_native]

    async def flush(self) -> None:
        """Wait for every pending native write."""
        while self._pending:
            await asyncio.gather(*list(self._pending), return_exceptions=True)

    async def close(self) -> None:
        await self.flush()
        logger.info("Store closed")

    # ---- bulk API ----

    def get_all_data(self) -> AppDataSnapshot:
        fields: dict[str, Any] = {}
        for name, key in SNAPSHOT_KEYS.items():
            value = self.get(key)
            if value is not None:
                fields[name] = value
        fields["schema_version"] = self.get(StorageKey.DATA_VERSION) or CURRENT_DATA_VERSION
        return AppDataSnapshot(**fields)

    def export_data(self) -> str:
        data = self.get_all_data().model_dump(mode="json", by_alias=True, exclude_none=True)
        data["version"] = self.migration_engine.current_version
        return json.dumps(data, ensure_ascii=False, indent=2)

    def import_data(self, serialized: str) -> ImportResult:
        """
        Parse, migrate and validate an exported document.

        Nothing is written here: callers apply the returned patch with
        `apply_import` once they accept it.
        """
        try:
            raw = json.loads(serialized)
        except json.JSONDecodeError as exc:
            logger.warning("Import rejected: invalid JSON (%s)", exc.msg)
            return ImportResult(error=f"Invalid JSON: {exc.msg}")

        if isinstance(raw, dict) and raw.get("version"):
            version = str(raw["version"])
            if compare_versions(version, self.migration_engine.current_version) < 0:
                try:
                    raw = self.migration_engine.apply_steps(raw, version)
                except MigrationError as exc:
                    logger.warning("Import rejected: %s", exc)
                    return ImportResult(error=str(exc))

        try:
            patch, warnings = validate_snapshot(raw)
        except ValidationError as exc:
            logger.warning("Import rejected: %s", exc)
            return ImportResult(error=str(exc), issues=tuple(exc.issues))

        return ImportResult(data=patch, warnings=tuple(warnings))

    def apply_import(self, patch: SnapshotPatch) -> WriteResult:
        failures: list[str] = []
        present = patch.present()
        for name, value in present.items():
            result = self.set(SNAPSHOT_KEYS[name], value)
            if not result.success:
                failures.append(f"{name}: {result.error}")
        self.set(StorageKey.DATA_VERSION, self.migration_engine.current_version)

        if failures:
            logger.error("Import applied with %d failed write(s)", len(failures))
            return WriteResult(False, "; ".join(failures))
        logger.info("Import applied: %s", ", ".join(present) or "nothing")
        return WriteResult(True)

    # ---- internals ----

    def _spawn(
        self,
        label: str,
        factory: Callable[[], Awaitable[None]],
        *,
        key: str | None = None,
    ) -> bool:
        try:
            loop = asyncio.get_running_loop()
        except RuntimeError:
            return False

        async def runner() -> None:
            try:
                await factory()
            except Exception:
                logger.exception("Native %s failed", label)
                if key is not None:
                    self._failed_native.add(key)

        task = loop.create_task(runner())
        self._pending.add(task)
        task.add_done_callback(self._pending.discard)
        return True

    async def _copy_forward(self, key: str, raw: Any) -> bool:
        assert self._native is not None
        try:
            await self._native.set(key, raw)
        except Exception:
            logger.exception("Failed to copy %s into the native store", key)
            return False
        return True

    def _read_local_json(self, key: str) -> Any:
        try:
            text = self._local.get_item(key)
        except Exception:
            logger.exception("Local read failed for %s", key)
            return None
        if text is None:
            return None
        try:
            return json.loads(text)
        except json.JSONDecodeError as exc:
            logger.error("%s", ParseError(key, f"invalid JSON ({exc.msg})"))
            return None

    def _decode_or_none(self, key: str, raw: Any) -> Any:
        if raw is None:
            return None
        try:
            return decode_value(key, raw)
        except ParseError as exc:
            logger.error("Corrupt stored data, using defaults: %s", exc)
            return None

    def _load_local(self, key: str) -> Any:
        return self._decode_or_none(key, self._read_local_json(key))

    def _write_local(self, key: str, payload: Any) -> WriteResult:
        text = json.dumps(payload, ensure_ascii=False)
        try:
            self._local.set_item(key, text)
            return WriteResult(True)
        except QuotaError as exc:
            logger.warning("%s", exc)
        except Exception as exc:
            logger.exception("Local write failed for %s", key)
            return WriteResult(False, str(exc))

        evicted = self._reclaim_space(exclude=key)
        logger.info("Evicted %d low-priority key(s): %s", len(evicted), ", ".join(evicted) or "-")
        try:
            self._local.set_item(key, text)
        except Exception as exc:
            logger.error("Local write failed for %s after reclaiming space: %s", key, exc)
            return WriteResult(False, str(exc))
        return WriteResult(True)

    def _reclaim_space(self, *, exclude: str) -> list[str]:
        try:
            keys = self._local.keys()
        except Exception:
            logger.exception("Failed to list local keys")
            return []

        evicted: list[str] = []
        for key in keys:
            if key == exclude:
                continue
            if key in LOW_PRIORITY_KEYS or key.startswith(EVICTABLE_PREFIXES):
                try:
                    self._local.remove_item(key)
                except Exception:
                    logger.exception("Failed to evict %s", key)
                    continue
                self._cache.pop(key, None)
                evicted.append(key)
        return evicted
