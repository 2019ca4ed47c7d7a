"""Pytest configuration and fixtures shared across all test modules.

Environment variables are set before any application import so the global
settings object is built with in-memory backends and never reaches for
Redis or Kafka.
"""

import os

os.environ["APP_ENV"] = "testing"
os.environ.setdefault("STORE_BACKEND", "memory")
os.environ.setdefault("PUBLISHER_BACKEND", "memory")
os.environ.setdefault("ADMISSION_QUOTA", "100")
os.environ.setdefault("LOG_LEVEL", "WARNING")

import pytest

from coupon_api.adapters.counter.in_memory import InMemoryQuotaCounter
from coupon_api.adapters.membership.in_memory import InMemoryMembershipStore
from coupon_api.adapters.publisher.in_memory import InMemoryGrantPublisher
from coupon_api.services.admission_service import AdmissionEngine


@pytest.fixture
def membership() -> InMemoryMembershipStore:
    return InMemoryMembershipStore()


@pytest.fixture
def counter() -> InMemoryQuotaCounter:
    return InMemoryQuotaCounter()


@pytest.fixture
def publisher() -> InMemoryGrantPublisher:
    return InMemoryGrantPublisher(maxsize=10000)


@pytest.fixture
def engine(
    membership: InMemoryMembershipStore,
    counter: InMemoryQuotaCounter,
    publisher: InMemoryGrantPublisher,
) -> AdmissionEngine:
    """Engine with the default quota of 100, wired to in-memory adapters."""
    return AdmissionEngine(membership, counter, publisher, quota=100)
