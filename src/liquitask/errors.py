# src/liquitask/errors.py

"""
Error taxonomy of the persistence layer.

Reads never raise these to callers (they degrade to defaults); they surface
from the validator, the migration engine and the local medium, and are caught
and logged at the store boundary.
"""

from __future__ import annotations


class LiquitaskError(Exception):
    """Base class for all persistence-layer errors."""


class ParseError(LiquitaskError):
    """A stored value is not valid JSON or does not decode for its key."""

    def __init__(self, key: str, reason: str) -> None:
        super().__init__(f"{key}: {reason}")
        self.key = key
        self.reason = reason


class ValidationError(LiquitaskError):
    """
    Schema violation. `issues` holds (path, reason) pairs, e.g.
    ("tasks.0.title", "Field required").
    """

    def __init__(self, issues: list[tuple[str, str]]) -> None:
        self.issues = list(issues)
        detail = ", ".join(f"{path}: {reason}" for path, reason in self.issues)
        super().__init__(f"Validation failed: {detail}")

    @property
    def paths(self) -> list[str]:
        return [path for path, _ in self.issues]


class MigrationError(LiquitaskError):
    """A migration step failed; `version` is the step's target version."""

    def __init__(self, version: str, reason: str) -> None:
        super().__init__(f"migration to {version} failed: {reason}")
        self.version = version
        self.reason = reason


class QuotaError(LiquitaskError):
    """A local-medium write would exceed the storage quota."""

    def __init__(self, key: str, required: int, available: int) -> None:
        super().__init__(
            f"Storage quota exceeded writing {key} "
            f"(needs {required} bytes, {available} available). "
            "Please export your data and clear storage."
        )
        self.key = key
        self.required = required
        self.available = available
