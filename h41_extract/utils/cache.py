from __future__ import annotations

import logging
import threading
import time
from dataclasses import dataclass
from typing import Any, Callable, Dict, Optional, Tuple

logger = logging.getLogger(__name__)

DEFAULT_TTL_SECONDS = 3600


def cache_key(prefix: str, *parts: Any) -> str:
    return ":".join([prefix, *(str(p) for p in parts)])


@dataclass
class CacheEntry:
    value: Any
    expires_at: float


class TTLCache:
    """
    In-process result cache keyed by string.

    Expired entries stay in the table until cleanup() so that a failed refresh
    can still fall back to the last good value. get_or_refresh() holds one lock
    per key while its loader runs: concurrent misses on the same key wait for
    the first caller instead of repeating the work.
    """

    def __init__(self, ttl_seconds: int = DEFAULT_TTL_SECONDS, clock: Callable[[], float] = time.monotonic):
        self.ttl_seconds = ttl_seconds
        self._clock = clock
        self._entries: Dict[str, CacheEntry] = {}
        self._lock = threading.Lock()
        self._key_locks: Dict[str, threading.Lock] = {}

    def _lookup(self, key: str) -> Tuple[Optional[CacheEntry], bool]:
        with self._lock:
            entry = self._entries.get(key)
        if entry is None:
            return None, False
        return entry, entry.expires_at > self._clock()

    def get(self, key: str) -> Any:
        entry, fresh = self._lookup(key)
        return entry.value if entry is not None and fresh else None

    def set(self, key: str, value: Any, ttl_seconds: Optional[int] = None) -> None:
        ttl = self.ttl_seconds if ttl_seconds is None else ttl_seconds
        with self._lock:
            self._entries[key] = CacheEntry(value=value, expires_at=self._clock() + ttl)

    def delete(self, key: str) -> None:
        with self._lock:
            self._entries.pop(key, None)
            self._drop_key_lock(key)

    def clear(self) -> None:
        with self._lock:
            self._entries.clear()
            for k in list(self._key_locks):
                self._drop_key_lock(k)

    def cleanup(self) -> int:
        now = self._clock()
        with self._lock:
            expired = [k for k, e in self._entries.items() if e.expires_at <= now]
            for k in expired:
                del self._entries[k]
                self._drop_key_lock(k)
        return len(expired)

    def __len__(self) -> int:
        with self._lock:
            return len(self._entries)

    def _drop_key_lock(self, key: str) -> None:
        # caller holds self._lock; a lock with a loader running stays for its waiters
        lock = self._key_locks.get(key)
        if lock is not None and not lock.locked():
            del self._key_locks[key]

    def _key_lock(self, key: str) -> threading.Lock:
        with self._lock:
            lock = self._key_locks.get(key)
            if lock is None:
                lock = self._key_locks[key] = threading.Lock()
            return lock

    def get_or_refresh(self, key: str, loader: Callable[[], Any], ttl_seconds: Optional[int] = None) -> Any:
        entry, fresh = self._lookup(key)
        if entry is not None and fresh:
            return entry.value

        with self._key_lock(key):
            # another thread may have refreshed while we waited
            entry, fresh = self._lookup(key)
            if entry is not None and fresh:
                return entry.value
            try:
                value = loader()
            except Exception as e:
                if entry is None:
                    raise
                logger.warning("Refresh failed for %s, serving stale value: %s", key, e)
                return entry.value
            self.set(key, value, ttl_seconds)
            return value
