"""Redis-backed membership store using a single SET key."""

from __future__ import annotations

import logging

import redis.asyncio as redis

from coupon_api.adapters.membership.base import (
    AbstractMembershipStore,
    AddResult,
    RequesterId,
)
from coupon_api.core.errors import StoreUnavailableError

logger = logging.getLogger(__name__)


class RedisMembershipStore(AbstractMembershipStore):
    """Membership store backed by Redis ``SADD``.

    ``SADD`` replies with the number of members actually added, which makes
    it an atomic add-if-absent across every process sharing the Redis key.
    """

    def __init__(self, redis_client: redis.Redis, key: str = "applied_user") -> None:
        """
        Initialize the membership store.

        Args:
            redis_client: Async Redis client instance
            key: Name of the Redis set holding requester ids
        """
        self.redis_client: redis.Redis = redis_client
        self.key = key

    async def add_if_absent(self, requester_id: RequesterId) -> AddResult:
        try:
            added = await self.redis_client.sadd(self.key, str(requester_id))
        except redis.RedisError as exc:
            logger.error(
                "membership.redis_error",
                extra={"key": self.key, "error_msg": str(exc)},
            )
            raise StoreUnavailableError(f"SADD {self.key} failed: {exc}") from exc

        return AddResult.ADDED if int(added) == 1 else AddResult.ALREADY_PRESENT

    async def clear(self) -> None:
        try:
            await self.redis_client.delete(self.key)
        except redis.RedisError as exc:
            raise StoreUnavailableError(f"DEL {self.key} failed: {exc}") from exc

    def __str__(self) -> str:
        return f"RedisMembershipStore(key={self.key})"
