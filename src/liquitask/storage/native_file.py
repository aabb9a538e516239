# src/liquitask/storage/native_file.py

"""
Native medium backed by a single JSON document on disk.

Stands in for the host-provided config store of a desktop shell: values are
JSON documents, calls are async, and the whole document is rewritten
atomically (tmp file + os.replace) on every mutation.
"""

from __future__ import annotations

import asyncio
import contextlib
import copy
import json
import logging
import os
from pathlib import Path
from typing import Any

logger = logging.getLogger(__name__)


class JsonFileNativeMedium:
    def __init__(self, path: str | Path) -> None:
        self._path = Path(path)
        self._lock = asyncio.Lock()
        self._data: dict[str, Any] | None = None

    @property
    def path(self) -> Path:
        return self._path

    # ---- file helpers (run in a worker thread) ----

    def _read_file(self) -> dict[str, Any]:
        if not self._path.exists():
            return {}
        try:
            data = json.loads(self._path.read_text("utf-8"))
        except (OSError, json.JSONDecodeError):
            logger.exception("Native store unreadable, starting empty: %s", self._path)
            return {}
        if not isinstance(data, dict):
            logger.warning("Native store is not a JSON object, starting empty: %s", self._path)
            return {}
        return data

    def _write_file(self, data: dict[str, Any]) -> None:
        self._path.parent.mkdir(parents=True, exist_ok=True)
        tmp = self._path.with_suffix(".tmp")
        tmp.write_text(json.dumps(data, ensure_ascii=False, indent=2), "utf-8")
        os.replace(tmp, self._path)
        with contextlib.suppress(OSError):
            os.chmod(self._path, 0o600)

    async def _loaded(self) -> dict[str, Any]:
        if self._data is None:
            self._data = await asyncio.to_thread(self._read_file)
            logger.debug("Native store loaded: %d keys from %s", len(self._data), self._path)
        return self._data

    async def _persist(self) -> None:
        snapshot = copy.deepcopy(self._data or {})
        await asyncio.to_thread(self._write_file, snapshot)

    # ---- NativeMedium ----

    async def get(self, key: str) -> Any | None:
        async with self._lock:
            data = await self._loaded()
            value = data.get(key)
            return copy.deepcopy(value)

    async def set(self, key: str, value: Any) -> None:
        async with self._lock:
            data = await self._loaded()
            data[key] = copy.deepcopy(value)
            await self._persist()

    async def delete(self, key: str) -> None:
        async with self._lock:
            data = await self._loaded()
            if data.pop(key, None) is not None:
                await self._persist()

    async def clear(self) -> None:
        async with self._lock:
            self._data = {}
            await self._persist()
        logger.info("Native store cleared: %s", self._path)

    async def has(self, key: str) -> bool:
        async with self._lock:
            data = await self._loaded()
            return key in data
