# src/liquitask/core/ports.py

from __future__ import annotations

"""
Ports (interfaces) used by the core.

The store, the migration engine and the task engine depend on Protocols
instead of concrete media. This keeps the native/local backends swappable and
makes testing easier (see tests/fakes.py).
"""

from typing import Any, Awaitable, Callable, Protocol

JsonValue = Any
# Anything json.dumps accepts: dict/list/str/int/float/bool/None.


class NativeMedium(Protocol):
    """
    Host-provided persistent key-value storage.

    Values are JSON documents (not strings). Every call is a round trip to the
    host, hence async.
    """

    def get(self, key: str) -> Awaitable[JsonValue | None]: ...
    def set(self, key: str, value: JsonValue) -> Awaitable[None]: ...
    def delete(self, key: str) -> Awaitable[None]: ...
    def clear(self) -> Awaitable[None]: ...
    def has(self, key: str) -> Awaitable[bool]: ...


class LocalMedium(Protocol):
    """
    Synchronous, quota-limited string storage (browser-local style).

    set_item raises QuotaError when the write would not fit.
    """

    def get_item(self, key: str) -> str | None: ...
    def set_item(self, key: str, value: str) -> None: ...
    def remove_item(self, key: str) -> None: ...
    def keys(self) -> list[str]: ...
    def usage(self) -> "StorageUsage": ...


class StorageUsage(Protocol):
    used: int
    total: int

    @property
    def percentage(self) -> float: ...


class WriteOutcome(Protocol):
    @property
    def success(self) -> bool: ...

    @property
    def error(self) -> str | None: ...


class KeyValueStore(Protocol):
    """The cache-backed store, as seen by the migration engine and the task engine."""

    def get(self, key: str, default: Any = None) -> Any: ...
    def set(self, key: str, value: Any) -> WriteOutcome: ...
    def remove(self, key: str) -> None: ...


class Notifier(Protocol):
    """Delivers a user-visible notice (desktop notification, console line, ...)."""

    def notify(self, *, title: str, body: str, tag: str | None = None) -> Awaitable[None]: ...


ConfirmPrompt = Callable[[str], bool]
# Asked before destructive domain operations; returns True to proceed.
