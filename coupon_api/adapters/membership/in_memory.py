"""In-memory membership store.

Notes:
- Per-process only: multiple workers each keep their own set, so running
  more than one worker breaks the one-coupon-per-requester guarantee.
- Thread-safe: uses a lock around shared state.
"""

from __future__ import annotations

import threading

from coupon_api.adapters.membership.base import (
    AbstractMembershipStore,
    AddResult,
    RequesterId,
)


class InMemoryMembershipStore(AbstractMembershipStore):
    """Set of requester ids guarded by a re-entrant lock."""

    def __init__(self) -> None:
        self._lock = threading.RLock()
        self._members: set[str] = set()

    async def add_if_absent(self, requester_id: RequesterId) -> AddResult:
        # Ids are normalised to str so 7 and "7" are the same requester,
        # matching what a Redis set member would be.
        member = str(requester_id)
        with self._lock:
            if member in self._members:
                return AddResult.ALREADY_PRESENT
            self._members.add(member)
            return AddResult.ADDED

    async def clear(self) -> None:
        with self._lock:
            self._members.clear()

    def __len__(self) -> int:
        with self._lock:
            return len(self._members)

    def __contains__(self, requester_id: object) -> bool:
        with self._lock:
            return str(requester_id) in self._members
