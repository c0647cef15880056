"""
TradeDesk - Agent Health Cache

TTL memoization of an agent's liveness probe, so frequent availability
checks do not hit external dependencies every time.
"""

from __future__ import annotations

import threading
import time
from typing import Callable

DEFAULT_HEALTH_CACHE_TTL = 30.0


class HealthCache:
    """
    Cached boolean with a time-to-live.

    A TTL of 0 disables caching: ``get()`` never reports a valid value.
    """

    def __init__(
        self,
        ttl: float = DEFAULT_HEALTH_CACHE_TTL,
        clock: Callable[[], float] = time.monotonic,
    ) -> None:
        self._ttl = ttl
        self._clock = clock
        self._lock = threading.Lock()
        self._available = False
        self._checked_at: float | None = None

    @property
    def ttl(self) -> float:
        return self._ttl

    def _valid(self) -> bool:
        return self._checked_at is not None and self._clock() - self._checked_at < self._ttl

    def is_valid(self) -> bool:
        """True if a value was set less than ``ttl`` seconds ago."""
        with self._lock:
            return self._valid()

    def get(self) -> tuple[bool, bool]:
        """Return ``(available, valid)``."""
        with self._lock:
            return self._available, self._valid()

    def set(self, available: bool) -> None:
        with self._lock:
            self._available = available
            self._checked_at = self._clock()

    def invalidate(self) -> None:
        """Force the next check to make a live probe."""
        with self._lock:
            self._checked_at = None
