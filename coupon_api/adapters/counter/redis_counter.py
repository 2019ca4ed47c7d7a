"""Redis-backed quota counter using ``INCR``."""

from __future__ import annotations

import logging

import redis.asyncio as redis

from coupon_api.adapters.counter.base import AbstractQuotaCounter
from coupon_api.core.errors import StoreUnavailableError

logger = logging.getLogger(__name__)


class RedisQuotaCounter(AbstractQuotaCounter):
    """
    Quota counter backed by a single Redis string key.

    ``INCR`` creates the key at 0 when missing and increments it atomically,
    so concurrent engine processes always observe distinct values.
    """

    def __init__(self, redis_client: redis.Redis, key: str = "coupon_count") -> None:
        self.redis_client: redis.Redis = redis_client
        self.key = key

    async def increment(self) -> int:
        try:
            return int(await self.redis_client.incr(self.key))
        except redis.RedisError as exc:
            logger.error(
                "counter.redis_error",
                extra={"key": self.key, "error_msg": str(exc)},
            )
            raise StoreUnavailableError(f"INCR {self.key} failed: {exc}") from exc

    async def current(self) -> int:
        try:
            value = await self.redis_client.get(self.key)
        except redis.RedisError as exc:
            raise StoreUnavailableError(f"GET {self.key} failed: {exc}") from exc
        return int(value) if value is not None else 0

    async def reset(self) -> None:
        try:
            await self.redis_client.delete(self.key)
        except redis.RedisError as exc:
            raise StoreUnavailableError(f"DEL {self.key} failed: {exc}") from exc

    def __str__(self) -> str:
        return f"RedisQuotaCounter(key={self.key})"
