"""Typed key-value store interface.

Keys and values are stored as JSON text.  Keys are usually
:class:`StoreKey` members; values are any type Pydantic can validate,
normally a :class:`pydantic.BaseModel`.  Concrete stores only implement
three raw string primitives; encoding, decoding, and error mapping live
here.
"""

from __future__ import annotations

import enum
import functools
from abc import ABC, abstractmethod
from typing import Any, Optional, TypeVar

from pydantic import TypeAdapter, ValidationError

from spotauth.exceptions import StoreError, StoreErrorKind

T = TypeVar("T")


class StoreKey(str, enum.Enum):
    """Well-known store keys."""

    PENDING_AUTHORIZATION = "pending_authorization"
    CREDENTIAL = "credential"


_ANY = TypeAdapter(Any)


@functools.lru_cache(maxsize=None)
def _adapter(value_type: Any) -> TypeAdapter:
    return TypeAdapter(value_type)


def encode_key(key: Any) -> str:
    try:
        return _ANY.dump_json(key).decode("utf-8")
    except ValueError as exc:
        raise StoreError(StoreErrorKind.SERIALIZATION, str(exc)) from exc


def encode_value(value: Any) -> str:
    try:
        return _adapter(type(value)).dump_json(value).decode("utf-8")
    except ValueError as exc:
        raise StoreError(StoreErrorKind.SERIALIZATION, str(exc)) from exc


def decode_value(raw: str, value_type: type[T]) -> T:
    try:
        return _adapter(value_type).validate_json(raw)
    except ValidationError as exc:
        raise StoreError(StoreErrorKind.SERIALIZATION, str(exc)) from exc


class KeyValueStore(ABC):
    """Abstract store with JSON-encoded keys and Pydantic-validated values.

    Every operation raises :class:`~spotauth.exceptions.StoreError` on
    failure; the ``kind`` attribute says whether access was denied, the
    storage is full, or an entry could not be (de)serialised.

    Example::

        store = MemoryStore()
        store.insert(StoreKey.PENDING_AUTHORIZATION, pending)
        restored = store.remove(StoreKey.PENDING_AUTHORIZATION, PendingAuthorization)
    """

    @abstractmethod
    def _read(self, key: str) -> Optional[str]:
        """Return the raw value for *key*, or ``None``."""

    @abstractmethod
    def _write(self, key: str, value: str, expire: Optional[float]) -> None:
        """Store the raw *value*; forget it after *expire* seconds if given."""

    @abstractmethod
    def _delete(self, key: str) -> Optional[str]:
        """Delete *key* and return its raw value, or ``None``."""

    def insert(self, key: Any, value: T, expire: Optional[float] = None) -> Optional[T]:
        """Store *value* under *key* and return the previous value, if any.

        The previous value is decoded as ``type(value)``.  If it cannot be,
        nothing is written and a ``SERIALIZATION`` error is raised.

        Args:
            key: A :class:`StoreKey` or any JSON-serialisable value.
            value: The value to store.
            expire: Optional lifetime in seconds.
        """
        raw_key = encode_key(key)
        raw_value = encode_value(value)
        previous = self._read(raw_key)
        result = decode_value(previous, type(value)) if previous is not None else None
        self._write(raw_key, raw_value, expire)
        return result

    def get(self, key: Any, value_type: type[T]) -> Optional[T]:
        """Return the value under *key* decoded as *value_type*, or ``None``."""
        raw = self._read(encode_key(key))
        if raw is None:
            return None
        return decode_value(raw, value_type)

    def remove(self, key: Any, value_type: type[T]) -> Optional[T]:
        """Delete *key* and return its value decoded as *value_type*.

        The entry is gone even when decoding fails.
        """
        raw = self._delete(encode_key(key))
        if raw is None:
            return None
        return decode_value(raw, value_type)

    def close(self) -> None:
        pass

    def __enter__(self) -> "KeyValueStore":
        return self

    def __exit__(self, *exc: object) -> None:
        self.close()
