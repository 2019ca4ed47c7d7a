"""In-memory grant channel backed by a bounded ``queue.Queue``.

Notes:
- Per-process only and not durable: events are lost when the process exits.
- Thread-safe and independent of any event loop, so it can be shared by
  engines running on different threads.
"""

from __future__ import annotations

import logging
import queue
import threading

from coupon_api.adapters.publisher.base import AbstractGrantPublisher
from coupon_api.core.errors import PublishError
from coupon_api.schemas.grant import GrantEvent

logger = logging.getLogger(__name__)


class InMemoryGrantPublisher(AbstractGrantPublisher):
    """Bounded FIFO handoff of grant events to a local consumer."""

    def __init__(self, *, maxsize: int = 10000) -> None:
        """Initialize the channel.

        Args:
            maxsize: Maximum number of undrained events.

        Raises:
            ValueError: If maxsize is not positive.
        """
        if maxsize < 1:
            raise ValueError("maxsize must be >= 1")

        self._queue: queue.Queue[GrantEvent] = queue.Queue(maxsize=maxsize)
        self._accepted = 0
        self._lock = threading.Lock()

    @property
    def accepted(self) -> int:
        """Total events accepted since construction."""
        return self._accepted

    def pending(self) -> int:
        return self._queue.qsize()

    async def publish(self, event: GrantEvent) -> None:
        try:
            self._queue.put_nowait(event)
        except queue.Full as exc:
            logger.warning(
                "publisher.queue_full",
                extra={
                    "requester_id": event.requester_id,
                    "capacity": self._queue.maxsize,
                },
            )
            raise PublishError("grant channel is full") from exc
        with self._lock:
            self._accepted += 1

    def drain(self, max_items: int | None = None) -> list[GrantEvent]:
        """Remove and return enqueued events in FIFO order.

        Args:
            max_items: Upper bound on events returned (None for all).
        """
        events: list[GrantEvent] = []
        while max_items is None or len(events) < max_items:
            try:
                events.append(self._queue.get_nowait())
            except queue.Empty:
                break
        return events
