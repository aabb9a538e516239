# src/liquitask/keybindings.py

"""Keyboard binding overrides, stored apart from the snapshot."""

from __future__ import annotations

import logging

from .constants import DEFAULT_KEYBINDINGS, KEYBINDINGS_KEY
from .core.ports import KeyValueStore

logger = logging.getLogger(__name__)

KeybindingMap = dict[str, list[str]]


def load_keybindings(store: KeyValueStore) -> KeybindingMap:
    """Defaults overlaid with whatever the user stored."""
    stored = store.get(KEYBINDINGS_KEY) or {}
    merged = {action: list(keys) for action, keys in DEFAULT_KEYBINDINGS.items()}
    merged.update({action: list(keys) for action, keys in stored.items()})
    return merged


def save_keybindings(store: KeyValueStore, bindings: KeybindingMap) -> None:
    store.set(KEYBINDINGS_KEY, {action: list(keys) for action, keys in bindings.items()})
    logger.info("Saved %d keybinding(s)", len(bindings))


def update_keybinding(store: KeyValueStore, action_id: str, keys: list[str]) -> KeybindingMap:
    bindings = load_keybindings(store)
    bindings[action_id] = list(keys)
    save_keybindings(store, bindings)
    return bindings


def reset_keybindings(store: KeyValueStore) -> KeybindingMap:
    bindings = {action: list(keys) for action, keys in DEFAULT_KEYBINDINGS.items()}
    save_keybindings(store, bindings)
    return bindings
