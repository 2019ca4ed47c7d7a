"""Retry wrapper for grant publishers.

Re-enqueues the same event with exponential backoff and jitter when the
wrapped channel refuses it. Safe because downstream consumers deduplicate
on the requester id carried by every event.
"""

from __future__ import annotations

import asyncio
import logging
from dataclasses import dataclass
from functools import partial
from typing import Awaitable, Callable

from tenacity import (
    AsyncRetrying,
    RetryCallState,
    retry_if_exception_type,
    stop_after_attempt,
    wait_exponential,
    wait_exponential_jitter,
)
from tenacity.wait import wait_base

from coupon_api.adapters.publisher.base import AbstractGrantPublisher
from coupon_api.core.errors import PublishError
from coupon_api.schemas.grant import GrantEvent

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class RetryPolicy:
    """Bounded exponential backoff settings.

    Attributes:
        max_attempts: Total attempts including the first (1 disables retry).
        base_delay: Delay before the second attempt, in seconds.
        max_delay: Cap on any single delay, in seconds.
        jitter: Add up to ``base_delay`` of random delay to each wait.
    """

    max_attempts: int = 3
    base_delay: float = 0.05
    max_delay: float = 0.5
    jitter: bool = True

    def __post_init__(self) -> None:
        if self.max_attempts < 1:
            raise ValueError("max_attempts must be >= 1")
        if self.base_delay < 0 or self.max_delay < 0:
            raise ValueError("delays must be >= 0")


class RetryingGrantPublisher(AbstractGrantPublisher):
    """Publisher decorator that retries ``PublishError`` with backoff."""

    def __init__(
        self,
        inner: AbstractGrantPublisher,
        policy: RetryPolicy | None = None,
        sleep: Callable[[float], Awaitable[None]] = asyncio.sleep,
    ) -> None:
        self.inner = inner
        self.policy = policy or RetryPolicy()
        self._sleep = sleep

    def _wait(self) -> wait_base:
        if self.policy.jitter:
            return wait_exponential_jitter(
                initial=self.policy.base_delay,
                max=self.policy.max_delay,
                jitter=self.policy.base_delay,
            )
        return wait_exponential(multiplier=self.policy.base_delay, max=self.policy.max_delay)

    @staticmethod
    def _log_retry(event: GrantEvent, retry_state: RetryCallState) -> None:
        exc = retry_state.outcome.exception() if retry_state.outcome else None
        delay = retry_state.next_action.sleep if retry_state.next_action else 0.0
        logger.warning(
            "publisher.retrying",
            extra={
                "requester_id": event.requester_id,
                "attempt": retry_state.attempt_number,
                "delay_s": round(delay, 4),
                "error_msg": str(exc),
            },
        )

    async def publish(self, event: GrantEvent) -> None:
        retrying = AsyncRetrying(
            retry=retry_if_exception_type(PublishError),
            stop=stop_after_attempt(self.policy.max_attempts),
            wait=self._wait(),
            sleep=self._sleep,
            before_sleep=partial(self._log_retry, event),
            reraise=True,
        )
        try:
            async for attempt in retrying:
                with attempt:
                    await self.inner.publish(event)
        except PublishError as exc:
            logger.error(
                "publisher.retries_exhausted",
                extra={
                    "requester_id": event.requester_id,
                    "attempts": self.policy.max_attempts,
                    "error_msg": str(exc),
                },
            )
            raise

        if attempt.retry_state.attempt_number > 1:
            logger.info(
                "publisher.retry_succeeded",
                extra={
                    "requester_id": event.requester_id,
                    "attempt": attempt.retry_state.attempt_number,
                },
            )

    async def start(self) -> None:
        await self.inner.start()

    async def close(self) -> None:
        await self.inner.close()

    def __str__(self) -> str:
        return f"RetryingGrantPublisher(inner={self.inner}, max_attempts={self.policy.max_attempts})"
