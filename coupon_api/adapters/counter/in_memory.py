"""In-memory quota counter (single process, thread-safe)."""

from __future__ import annotations

import threading

from coupon_api.adapters.counter.base import AbstractQuotaCounter


class InMemoryQuotaCounter(AbstractQuotaCounter):
    """Integer counter guarded by a lock."""

    def __init__(self) -> None:
        self._lock = threading.RLock()
        self._value = 0

    async def increment(self) -> int:
        with self._lock:
            self._value += 1
            return self._value

    async def current(self) -> int:
        with self._lock:
            return self._value

    async def reset(self) -> None:
        with self._lock:
            self._value = 0
