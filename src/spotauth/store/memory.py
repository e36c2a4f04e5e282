"""In-process store backed by a plain dict."""

from __future__ import annotations

import time
from typing import Optional

from spotauth.store.base import KeyValueStore


class MemoryStore(KeyValueStore):
    """Keeps entries for the lifetime of the object.

    Useful in tests and for embedding the authorization flow in a
    long-running process.
    """

    def __init__(self) -> None:
        self._entries: dict[str, tuple[str, Optional[float]]] = {}

    def __len__(self) -> int:
        self._purge()
        return len(self._entries)

    def _purge(self) -> None:
        now = time.monotonic()
        expired = [
            key
            for key, (_, deadline) in self._entries.items()
            if deadline is not None and deadline <= now
        ]
        for key in expired:
            del self._entries[key]

    def _read(self, key: str) -> Optional[str]:
        self._purge()
        entry = self._entries.get(key)
        return entry[0] if entry is not None else None

    def _write(self, key: str, value: str, expire: Optional[float]) -> None:
        deadline = time.monotonic() + expire if expire is not None else None
        self._entries[key] = (value, deadline)

    def _delete(self, key: str) -> Optional[str]:
        self._purge()
        entry = self._entries.pop(key, None)
        return entry[0] if entry is not None else None
