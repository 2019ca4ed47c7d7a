"""Tests for startup and shutdown of the application lifespan."""

from unittest.mock import AsyncMock

import pytest
from fastapi import FastAPI

from coupon_api.core import app_factory
from coupon_api.core.errors import StoreUnavailableError


@pytest.fixture
def fake_resources(monkeypatch: pytest.MonkeyPatch):
    redis_client = AsyncMock()
    publisher = AsyncMock()
    monkeypatch.setattr(app_factory, "create_redis_client", lambda: redis_client)
    monkeypatch.setattr(app_factory, "create_grant_publisher", lambda: publisher)
    monkeypatch.setattr(app_factory, "create_membership_store", lambda client: AsyncMock())
    monkeypatch.setattr(app_factory, "create_quota_counter", lambda client: AsyncMock())
    return redis_client, publisher


@pytest.mark.asyncio
async def test_failed_startup_reset_releases_resources(fake_resources, monkeypatch) -> None:
    redis_client, publisher = fake_resources
    monkeypatch.setattr(
        app_factory,
        "reset_admission_state",
        AsyncMock(side_effect=StoreUnavailableError("DEL applied_user failed")),
    )

    with pytest.raises(StoreUnavailableError):
        async with app_factory.lifespan(FastAPI()):
            pass

    publisher.start.assert_awaited_once()
    publisher.close.assert_awaited_once()
    redis_client.aclose.assert_awaited_once()


@pytest.mark.asyncio
async def test_failed_publisher_start_releases_redis(fake_resources) -> None:
    redis_client, publisher = fake_resources
    publisher.start.side_effect = RuntimeError("no brokers available")

    with pytest.raises(RuntimeError):
        async with app_factory.lifespan(FastAPI()):
            pass

    redis_client.aclose.assert_awaited_once()


@pytest.mark.asyncio
async def test_clean_shutdown_releases_resources(fake_resources, monkeypatch) -> None:
    redis_client, publisher = fake_resources
    monkeypatch.setattr(app_factory, "reset_admission_state", AsyncMock())
    app = FastAPI()

    async with app_factory.lifespan(app):
        assert app.state.grant_publisher is publisher

    publisher.close.assert_awaited_once()
    redis_client.aclose.assert_awaited_once()
