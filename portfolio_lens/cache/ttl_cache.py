"""Small in-memory TTL cache for resolver and provider responses."""

from __future__ import annotations

import time
from dataclasses import dataclass
from threading import Lock
from typing import Callable, Generic, TypeVar

T = TypeVar("T")


@dataclass
class CacheEntry(Generic[T]):
    data: T
    timestamp: float
    ttl: float

    def is_expired(self, now: float) -> bool:
        return now - self.timestamp >= self.ttl


def normalize_key(key: str) -> str:
    return key.strip().upper()


class TTLCache:
    """Thread-safe TTL cache keyed by normalized string.

    ``clock`` defaults to ``time.time`` and is injectable so expiry can be
    exercised without sleeping.
    """

    def __init__(self, default_ttl_seconds: float = 60, clock: Callable[[], float] | None = None) -> None:
        self.default_ttl_seconds = max(1, default_ttl_seconds)
        self._clock = clock or time.time
        self._data: dict[str, CacheEntry[object]] = {}
        self._lock = Lock()

    def now(self) -> float:
        return self._clock()

    def get_entry(self, key: str) -> CacheEntry[object] | None:
        """Return the live entry, which may legitimately hold ``None`` data."""
        normalized = normalize_key(key)
        now = self._clock()
        with self._lock:
            entry = self._data.get(normalized)
            if entry is None:
                return None
            if entry.is_expired(now):
                self._data.pop(normalized, None)
                return None
            return entry

    def get(self, key: str) -> object | None:
        entry = self.get_entry(key)
        return entry.data if entry else None

    def set(self, key: str, value: object, ttl_seconds: float | None = None) -> None:
        ttl = self.default_ttl_seconds if ttl_seconds is None else max(1, ttl_seconds)
        with self._lock:
            self._data[normalize_key(key)] = CacheEntry(data=value, timestamp=self._clock(), ttl=ttl)

    def clear(self) -> None:
        with self._lock:
            self._data.clear()

    def __len__(self) -> int:
        with self._lock:
            return len(self._data)
