"""
urinorm.cache — Two-tier result cache: in-process dict in front of an optional SQLite store.

The memory tier has no expiry and is consulted first.  The durable tier
keeps pickled values with an absolute expiry; expired rows are purged when
the store is opened and dropped lazily when looked up.
"""

from __future__ import annotations

import logging
import pickle
import sqlite3
import threading
import time
from pathlib import Path
from typing import Any, Iterable, Optional, Union

from urinorm.db import (
    create_cache_table,
    delete_all_rows,
    delete_row,
    purge_expired,
    select_row,
    upsert_row,
)
from urinorm.settings import CACHE_TTL

logger = logging.getLogger(__name__)

MISSING = object()


class MemoryBackend:
    """Plain dict store; ``ttl`` is accepted and ignored."""

    def __init__(self):
        self._data: dict[str, Any] = {}

    def get(self, key: str, default: Any = None) -> Any:
        return self._data.get(key, default)

    def has(self, key: str) -> bool:
        return key in self._data

    def set(self, key: str, value: Any, ttl: Optional[float] = None) -> bool:
        self._data[key] = value
        return True

    def delete(self, key: str) -> bool:
        self._data.pop(key, None)
        return True

    def clear(self) -> bool:
        self._data.clear()
        return True

    def __len__(self) -> int:
        return len(self._data)


class SqliteBackend:
    """SQLite file store.  One connection, all access serialized by a lock."""

    def __init__(self, path: Union[str, Path], default_ttl: float = CACHE_TTL):
        self.path = str(path)
        self.default_ttl = default_ttl
        self._lock = threading.Lock()
        self.connection = sqlite3.connect(self.path, check_same_thread=False)
        with self._lock, self.connection:
            cursor = self.connection.cursor()
            create_cache_table(cursor)
            purged = purge_expired(cursor, time.time())
        if purged:
            logger.debug("Purged %d expired cache rows from %s", purged, self.path)

    def get(self, key: str, default: Any = None) -> Any:
        with self._lock:
            row = select_row(self.connection.cursor(), key)
            if row is None:
                return default
            value, expires = row
            if expires <= time.time():
                with self.connection:
                    delete_row(self.connection.cursor(), key)
                return default
        return pickle.loads(value)

    def has(self, key: str) -> bool:
        return self.get(key, MISSING) is not MISSING

    def set(self, key: str, value: Any, ttl: Optional[float] = None) -> bool:
        expires = time.time() + (self.default_ttl if ttl is None else ttl)
        payload = pickle.dumps(value)
        with self._lock, self.connection:
            upsert_row(self.connection.cursor(), key, payload, expires)
        return True

    def delete(self, key: str) -> bool:
        with self._lock, self.connection:
            delete_row(self.connection.cursor(), key)
        return True

    def clear(self) -> bool:
        with self._lock, self.connection:
            delete_all_rows(self.connection.cursor())
        return True

    def close(self):
        with self._lock:
            self.connection.close()


class ResultCache:
    """
    Read-through / write-through composition of a memory tier and an
    optional durable tier.  Values found only in the durable tier are
    copied into memory on first read.
    """

    def __init__(self, durable=None):
        self.memory = MemoryBackend()
        self.durable = durable
        self._lock = threading.RLock()

    def get(self, key: str, default: Any = None) -> Any:
        with self._lock:
            value = self.memory.get(key, MISSING)
            if value is not MISSING:
                return value
            if self.durable is None:
                return default
            value = self.durable.get(key, MISSING)
            if value is MISSING:
                return default
            self.memory.set(key, value)
            return value

    def has(self, key: str) -> bool:
        return self.get(key, MISSING) is not MISSING

    def set(self, key: str, value: Any, ttl: Optional[float] = None) -> bool:
        with self._lock:
            self.memory.set(key, value)
            if self.durable is not None:
                self.durable.set(key, value, ttl)
        return True

    def delete(self, key: str) -> bool:
        with self._lock:
            self.memory.delete(key)
            if self.durable is not None:
                self.durable.delete(key)
        return True

    def clear(self) -> bool:
        with self._lock:
            self.memory.clear()
            if self.durable is not None:
                self.durable.clear()
        return True

    def get_many(self, keys: Iterable[str], default: Any = None) -> dict[str, Any]:
        return {key: self.get(key, default) for key in keys}

    def set_many(self, values: dict[str, Any], ttl: Optional[float] = None) -> bool:
        with self._lock:
            for key, value in values.items():
                self.set(key, value, ttl)
        return True

    def delete_many(self, keys: Iterable[str]) -> bool:
        with self._lock:
            for key in keys:
                self.delete(key)
        return True

    def close(self):
        if self.durable is not None and hasattr(self.durable, "close"):
            self.durable.close()


def open_cache(sqlite_path: Optional[Union[str, Path]] = None, ttl: float = CACHE_TTL) -> ResultCache:
    """Memory-only cache, or memory + SQLite when ``sqlite_path`` is given."""
    durable = SqliteBackend(sqlite_path, default_ttl=ttl) if sqlite_path else None
    return ResultCache(durable)
