"""Quota counter interface."""

from __future__ import annotations

from abc import ABC, abstractmethod


class AbstractQuotaCounter(ABC):
    """Interface for shared, strictly increasing counters."""

    @abstractmethod
    async def increment(self) -> int:
        """Atomically add one and return the new value.

        The first call after a reset returns 1. There is deliberately no
        read-then-write path: the returned value is the only way the engine
        learns the count.

        Raises:
            StoreUnavailableError: If the counter could not be incremented.
        """
        raise NotImplementedError

    @abstractmethod
    async def current(self) -> int:
        """Return the current value without changing it (diagnostics only)."""
        raise NotImplementedError

    @abstractmethod
    async def reset(self) -> None:
        """Set the counter back to zero (bootstrap only)."""
        raise NotImplementedError
