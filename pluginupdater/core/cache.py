"""Cache stores for fetched manifests.

The checker only needs three operations: get, set with a TTL, and delete.
Expired entries are never returned by get().
"""

import json
import logging
import os
import re
import tempfile
import threading
import time
from dataclasses import dataclass
from typing import Callable, Protocol

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class CachedValue:
    """Raw manifest body plus the time it was stored (epoch seconds)."""

    blob: str
    stored_at: float


class CacheStore(Protocol):
    def get(self, key: str) -> CachedValue | None: ...
    def set(self, key: str, blob: str, ttl: int) -> None: ...
    def delete(self, key: str) -> None: ...


class MemoryCacheStore:
    """Process-local store. The clock is injectable for tests."""

    def __init__(self, clock: Callable[[], float] = time.time):
        self._clock = clock
        self._entries: dict[str, tuple[CachedValue, float]] = {}
        self._lock = threading.Lock()

    def get(self, key: str) -> CachedValue | None:
        with self._lock:
            item = self._entries.get(key)
            if item is None:
                return None
            value, expires_at = item
            if self._clock() >= expires_at:
                del self._entries[key]
                return None
            return value

    def set(self, key: str, blob: str, ttl: int) -> None:
        now = self._clock()
        with self._lock:
            self._entries[key] = (CachedValue(blob=blob, stored_at=now), now + ttl)

    def delete(self, key: str) -> None:
        with self._lock:
            self._entries.pop(key, None)


class FileCacheStore:
    """One JSON file per key under a directory; survives restarts."""

    def __init__(self, directory: str, clock: Callable[[], float] = time.time):
        self.directory = directory
        self._clock = clock

    def _path(self, key: str) -> str:
        safe = re.sub(r'[^A-Za-z0-9._-]', '_', key)
        return os.path.join(self.directory, f"{safe}.json")

    def get(self, key: str) -> CachedValue | None:
        path = self._path(key)
        if not os.path.isfile(path):
            return None

        try:
            with open(path, 'r', encoding='utf-8') as f:
                data = json.load(f)
            blob = data['blob']
            if not isinstance(blob, str):
                raise TypeError(f"blob must be a string, got {type(blob).__name__}")
            value = CachedValue(blob=blob, stored_at=float(data['stored_at']))
            expires_at = float(data['expires_at'])
        except (OSError, ValueError, KeyError, TypeError) as e:
            logger.warning("Unreadable cache file %s: %s", path, e)
            return None

        if self._clock() >= expires_at:
            self.delete(key)
            return None
        return value

    def set(self, key: str, blob: str, ttl: int) -> None:
        os.makedirs(self.directory, exist_ok=True)
        now = self._clock()
        path = self._path(key)
        # Private temp file per writer; os.replace makes the swap atomic
        fd, tmp = tempfile.mkstemp(dir=self.directory, suffix='.tmp')
        try:
            with os.fdopen(fd, 'w', encoding='utf-8') as f:
                json.dump({'blob': blob, 'stored_at': now, 'expires_at': now + ttl}, f)
            os.replace(tmp, path)
        except BaseException:
            try:
                os.remove(tmp)
            except FileNotFoundError:
                pass
            raise
        logger.debug("Cached %s until %.0f", key, now + ttl)

    def delete(self, key: str) -> None:
        try:
            os.remove(self._path(key))
        except FileNotFoundError:
            pass
