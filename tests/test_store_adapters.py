"""Unit tests for membership store and quota counter adapters."""

from unittest.mock import AsyncMock

import pytest
from redis.exceptions import ConnectionError as RedisConnectionError
from redis.exceptions import TimeoutError as RedisTimeoutError

from coupon_api.adapters.counter.in_memory import InMemoryQuotaCounter
from coupon_api.adapters.counter.redis_counter import RedisQuotaCounter
from coupon_api.adapters.membership.base import AddResult
from coupon_api.adapters.membership.in_memory import InMemoryMembershipStore
from coupon_api.adapters.membership.redis_store import RedisMembershipStore
from coupon_api.core.errors import StoreUnavailableError


class TestInMemoryMembershipStore:
    @pytest.mark.asyncio
    async def test_first_add_wins(self) -> None:
        store = InMemoryMembershipStore()

        assert await store.add_if_absent(1) is AddResult.ADDED
        assert await store.add_if_absent(1) is AddResult.ALREADY_PRESENT
        assert await store.add_if_absent(2) is AddResult.ADDED
        assert len(store) == 2
        assert 1 in store

    @pytest.mark.asyncio
    async def test_clear_allows_reapplying(self) -> None:
        store = InMemoryMembershipStore()
        await store.add_if_absent("u")

        await store.clear()

        assert len(store) == 0
        assert await store.add_if_absent("u") is AddResult.ADDED


class TestInMemoryQuotaCounter:
    @pytest.mark.asyncio
    async def test_increment_starts_at_one(self) -> None:
        counter = InMemoryQuotaCounter()

        assert [await counter.increment() for _ in range(3)] == [1, 2, 3]
        assert await counter.current() == 3

    @pytest.mark.asyncio
    async def test_reset_returns_to_zero(self) -> None:
        counter = InMemoryQuotaCounter()
        await counter.increment()

        await counter.reset()

        assert await counter.current() == 0
        assert await counter.increment() == 1


class TestRedisMembershipStore:
    @pytest.mark.asyncio
    async def test_sadd_reply_one_means_added(self) -> None:
        client = AsyncMock()
        client.sadd.return_value = 1
        store = RedisMembershipStore(client, key="applied_user")

        assert await store.add_if_absent(10) is AddResult.ADDED
        client.sadd.assert_awaited_once_with("applied_user", "10")

    @pytest.mark.asyncio
    async def test_sadd_reply_zero_means_present(self) -> None:
        client = AsyncMock()
        client.sadd.return_value = 0
        store = RedisMembershipStore(client)

        assert await store.add_if_absent("x") is AddResult.ALREADY_PRESENT

    @pytest.mark.asyncio
    async def test_redis_error_is_store_unavailable(self) -> None:
        client = AsyncMock()
        client.sadd.side_effect = RedisConnectionError("Connection refused")
        store = RedisMembershipStore(client)

        with pytest.raises(StoreUnavailableError):
            await store.add_if_absent(1)

    @pytest.mark.asyncio
    async def test_clear_deletes_key(self) -> None:
        client = AsyncMock()
        store = RedisMembershipStore(client, key="applied_user")

        await store.clear()

        client.delete.assert_awaited_once_with("applied_user")


class TestRedisQuotaCounter:
    @pytest.mark.asyncio
    async def test_increment_uses_incr(self) -> None:
        client = AsyncMock()
        client.incr.return_value = 7
        counter = RedisQuotaCounter(client, key="coupon_count")

        assert await counter.increment() == 7
        client.incr.assert_awaited_once_with("coupon_count")

    @pytest.mark.asyncio
    async def test_timeout_is_store_unavailable(self) -> None:
        client = AsyncMock()
        client.incr.side_effect = RedisTimeoutError("Timeout reading from socket")
        counter = RedisQuotaCounter(client)

        with pytest.raises(StoreUnavailableError):
            await counter.increment()

    @pytest.mark.asyncio
    async def test_current_of_missing_key_is_zero(self) -> None:
        client = AsyncMock()
        client.get.return_value = None
        counter = RedisQuotaCounter(client)

        assert await counter.current() == 0

        client.get.return_value = "42"
        assert await counter.current() == 42

    @pytest.mark.asyncio
    async def test_reset_deletes_key(self) -> None:
        client = AsyncMock()
        counter = RedisQuotaCounter(client, key="coupon_count")

        await counter.reset()

        client.delete.assert_awaited_once_with("coupon_count")
