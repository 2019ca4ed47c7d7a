"""Membership store interface.

The admission engine depends on this abstraction so the single-process
store can be swapped for Redis without touching the decision logic.
"""

from __future__ import annotations

from abc import ABC, abstractmethod
from enum import Enum

RequesterId = int | str


class AddResult(str, Enum):
    """Outcome of an add-if-absent call."""

    ADDED = "added"
    ALREADY_PRESENT = "already_present"


class AbstractMembershipStore(ABC):
    """Interface for membership stores."""

    @abstractmethod
    async def add_if_absent(self, requester_id: RequesterId) -> AddResult:
        """Atomically record a requester unless already recorded.

        Exactly one concurrent caller observes ``ADDED`` for a given id
        until the store is cleared.

        Args:
            requester_id: Opaque requester identifier.

        Returns:
            AddResult.ADDED for the first caller, ALREADY_PRESENT otherwise.

        Raises:
            StoreUnavailableError: If the store could not complete the call.
        """
        raise NotImplementedError

    @abstractmethod
    async def clear(self) -> None:
        """Remove every recorded requester (bootstrap only)."""
        raise NotImplementedError
