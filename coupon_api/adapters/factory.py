"""Factory functions for store and publisher adapters."""

from __future__ import annotations

import redis.asyncio as redis

from coupon_api.adapters.counter.base import AbstractQuotaCounter
from coupon_api.adapters.counter.in_memory import InMemoryQuotaCounter
from coupon_api.adapters.counter.redis_counter import RedisQuotaCounter
from coupon_api.adapters.membership.base import AbstractMembershipStore
from coupon_api.adapters.membership.in_memory import InMemoryMembershipStore
from coupon_api.adapters.membership.redis_store import RedisMembershipStore
from coupon_api.adapters.publisher.base import AbstractGrantPublisher
from coupon_api.adapters.publisher.in_memory import InMemoryGrantPublisher
from coupon_api.adapters.publisher.kafka_publisher import KafkaGrantPublisher
from coupon_api.adapters.publisher.retrying import RetryingGrantPublisher, RetryPolicy
from coupon_api.core.config import Settings, settings as default_settings
from coupon_api.core.errors import ValidationAppError

SUPPORTED_STORE_BACKENDS = ("memory", "redis")
SUPPORTED_PUBLISHER_BACKENDS = ("memory", "kafka")


def _store_backend(cfg: Settings) -> str:
    backend = cfg.store.backend.lower()
    if backend not in SUPPORTED_STORE_BACKENDS:
        raise ValidationAppError(
            code="store_unknown_backend",
            message=(
                f"Unknown store backend: '{backend}'. "
                f"Supported backends: {', '.join(SUPPORTED_STORE_BACKENDS)}"
            ),
            details={"backend": backend},
        )
    return backend


def create_redis_client(cfg: Settings | None = None) -> redis.Redis | None:
    """Build the shared Redis client, or None for the in-memory backend.

    Membership store and quota counter share one connection pool.
    """
    cfg = cfg or default_settings
    if _store_backend(cfg) != "redis":
        return None

    return redis.Redis.from_url(
        cfg.store.redis_url,
        socket_timeout=cfg.store.socket_timeout_seconds,
        socket_connect_timeout=cfg.store.socket_timeout_seconds,
        decode_responses=True,
    )


def create_membership_store(
    redis_client: redis.Redis | None = None,
    cfg: Settings | None = None,
) -> AbstractMembershipStore:
    """Instantiate the membership store selected by ``STORE_BACKEND``.

    Raises:
        ValidationAppError: If the backend is unknown or Redis is selected
            without a client.
    """
    cfg = cfg or default_settings
    if _store_backend(cfg) == "memory":
        return InMemoryMembershipStore()

    if redis_client is None:
        raise ValidationAppError(
            code="store_missing_client",
            message="Redis store backend requires a Redis client",
        )
    return RedisMembershipStore(redis_client, key=cfg.admission.membership_key)


def create_quota_counter(
    redis_client: redis.Redis | None = None,
    cfg: Settings | None = None,
) -> AbstractQuotaCounter:
    """Instantiate the quota counter selected by ``STORE_BACKEND``."""
    cfg = cfg or default_settings
    if _store_backend(cfg) == "memory":
        return InMemoryQuotaCounter()

    if redis_client is None:
        raise ValidationAppError(
            code="store_missing_client",
            message="Redis store backend requires a Redis client",
        )
    return RedisQuotaCounter(redis_client, key=cfg.admission.counter_key)


def create_grant_publisher(cfg: Settings | None = None) -> AbstractGrantPublisher:
    """Instantiate the grant publisher selected by ``PUBLISHER_BACKEND``.

    The returned publisher is wrapped with retry/backoff unless
    ``PUBLISHER_MAX_ATTEMPTS`` is 1. A Kafka publisher still needs
    ``start()`` before use.
    """
    cfg = cfg or default_settings
    backend = cfg.publisher.backend.lower()

    inner: AbstractGrantPublisher
    if backend == "memory":
        inner = InMemoryGrantPublisher(maxsize=cfg.publisher.queue_size)
    elif backend == "kafka":
        inner = KafkaGrantPublisher(
            bootstrap_servers=cfg.publisher.kafka_bootstrap_servers,
            topic=cfg.publisher.kafka_topic,
        )
    else:
        raise ValidationAppError(
            code="publisher_unknown_backend",
            message=(
                f"Unknown publisher backend: '{backend}'. "
                f"Supported backends: {', '.join(SUPPORTED_PUBLISHER_BACKENDS)}"
            ),
            details={"backend": backend},
        )

    if cfg.publisher.max_attempts == 1:
        return inner

    return RetryingGrantPublisher(
        inner,
        RetryPolicy(
            max_attempts=cfg.publisher.max_attempts,
            base_delay=cfg.publisher.backoff_base_seconds,
            max_delay=cfg.publisher.backoff_max_seconds,
        ),
    )
