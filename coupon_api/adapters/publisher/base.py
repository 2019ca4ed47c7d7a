"""Grant publisher interface."""

from __future__ import annotations

from abc import ABC, abstractmethod

from coupon_api.schemas.grant import GrantEvent


class AbstractGrantPublisher(ABC):
    """Interface for durable, asynchronous grant channels."""

    @abstractmethod
    async def publish(self, event: GrantEvent) -> None:
        """Enqueue a grant event for downstream persistence.

        Returns as soon as the channel has accepted the event; it must not
        wait for the event to be persisted. Delivery downstream is
        at-least-once.

        Args:
            event: The grant to hand off. Ownership passes to the publisher.

        Raises:
            PublishError: If the channel refused the event.
        """
        raise NotImplementedError

    async def start(self) -> None:
        """Open connections before the first publish, if the backend needs to."""

    async def close(self) -> None:
        """Flush pending events and release resources."""
