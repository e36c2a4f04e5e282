"""Key-value stores for pending authorisations and refreshable credentials."""

from __future__ import annotations

from spotauth.config import get_store_dir
from spotauth.models import StoreConfig
from spotauth.store.base import KeyValueStore, StoreKey
from spotauth.store.disk import DiskStore
from spotauth.store.memory import MemoryStore


def open_store(config: StoreConfig) -> KeyValueStore:
    """Return the store selected by ``config.backend``."""
    if config.backend == "memory":
        return MemoryStore()
    return DiskStore(get_store_dir())


__all__ = ["DiskStore", "KeyValueStore", "MemoryStore", "StoreKey", "open_store"]
