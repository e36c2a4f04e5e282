"""Disk-backed store for state that must survive between CLI invocations.

Uses :mod:`diskcache` so entries can carry a TTL: a login that is started
but never completed disappears after
:attr:`~spotauth.models.StoreConfig.pending_ttl_seconds`.  The cache
directory is created with ``0o700`` permissions since it holds the code
verifier and refresh token.
"""

from __future__ import annotations

import errno
import os
import sqlite3
from pathlib import Path
from typing import Optional

import diskcache

from spotauth.exceptions import StoreError, StoreErrorKind
from spotauth.store.base import KeyValueStore


_FULL_ERRNOS = {errno.ENOSPC, getattr(errno, "EDQUOT", errno.ENOSPC)}


def _classify(exc: BaseException) -> StoreErrorKind:
    if isinstance(exc, PermissionError):
        return StoreErrorKind.ACCESS_DENIED
    if isinstance(exc, OSError) and exc.errno in _FULL_ERRNOS:
        return StoreErrorKind.STORAGE_FULL
    if isinstance(exc, sqlite3.OperationalError):
        text = str(exc).lower()
        if "full" in text:
            return StoreErrorKind.STORAGE_FULL
        if "readonly" in text or "unable to open" in text:
            return StoreErrorKind.ACCESS_DENIED
    return StoreErrorKind.UNKNOWN


class DiskStore(KeyValueStore):
    """Store entries in a :class:`diskcache.Cache` directory.

    Args:
        directory: Cache directory, typically
            :func:`~spotauth.config.get_store_dir`.

    Raises:
        StoreError: If the directory cannot be opened.
    """

    def __init__(self, directory: str | Path) -> None:
        self._directory = Path(directory)
        try:
            self._directory.mkdir(parents=True, exist_ok=True)
            os.chmod(self._directory, 0o700)
            self._cache = diskcache.Cache(str(self._directory))
        except (OSError, sqlite3.Error) as exc:
            raise StoreError(_classify(exc), str(exc)) from exc

    @property
    def directory(self) -> Path:
        return self._directory

    def _read(self, key: str) -> Optional[str]:
        try:
            return self._cache.get(key)
        except (OSError, sqlite3.Error, diskcache.Timeout) as exc:
            raise StoreError(_classify(exc), str(exc)) from exc

    def _write(self, key: str, value: str, expire: Optional[float]) -> None:
        try:
            self._cache.set(key, value, expire=expire)
        except (OSError, sqlite3.Error, diskcache.Timeout) as exc:
            raise StoreError(_classify(exc), str(exc)) from exc

    def _delete(self, key: str) -> Optional[str]:
        try:
            return self._cache.pop(key, default=None)
        except (OSError, sqlite3.Error, diskcache.Timeout) as exc:
            raise StoreError(_classify(exc), str(exc)) from exc

    def close(self) -> None:
        self._cache.close()
