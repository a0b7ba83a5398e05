"""In-memory provider disable windows for fallback orchestration."""

from __future__ import annotations

import threading
import time
from typing import Callable


class ProviderStatus:
    """Tracks temporary provider disable windows after rate-limit events."""

    def __init__(self, clock: Callable[[], float] | None = None) -> None:
        self._clock = clock or time.time
        self._lock = threading.Lock()
        self._disabled_until: dict[str, float] = {}

    def disable_provider(self, provider: str, ttl_seconds: int) -> float:
        until = self._clock() + max(1, ttl_seconds)
        with self._lock:
            current = self._disabled_until.get(provider, 0.0)
            self._disabled_until[provider] = max(current, until)
            return self._disabled_until[provider]

    def is_disabled(self, provider: str) -> bool:
        return self.get_disabled_until(provider) is not None

    def get_disabled_until(self, provider: str) -> float | None:
        with self._lock:
            until = self._disabled_until.get(provider)
            if not until:
                return None
            if until <= self._clock():
                self._disabled_until.pop(provider, None)
                return None
            return until

    def snapshot(self) -> dict[str, float]:
        now = self._clock()
        with self._lock:
            return {provider: until for provider, until in self._disabled_until.items() if until > now}
