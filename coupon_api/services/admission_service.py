"""Coupon admission engine.

Decides, for each application, whether the requester gets a coupon. The
guarantees (one coupon per requester, never more than ``quota`` coupons)
come entirely from two shared atomic primitives:

1. membership store ``add_if_absent``: first caller per requester wins
2. quota counter ``increment``: every caller gets a distinct value

The steps run in that fixed order, and a grant is published only when the
value returned by the counter is within the quota. Because the counter is
only touched after membership succeeds, duplicates never consume quota.
The engine keeps no state of its own, so any number of engines (threads,
tasks, processes) may share the same stores without extra locking.

Known asymmetries, both accepted:
- a counter or publish failure after membership committed leaves the
  requester recorded, so a retry returns DUPLICATE_REQUEST
- a publish failure after the increment consumes a quota unit without a
  durable grant (fewer than ``quota`` grants recorded, never more)
"""

from __future__ import annotations

import asyncio
import logging
from dataclasses import dataclass
from enum import Enum
from typing import Awaitable, Callable, TypeVar

from coupon_api.adapters.counter.base import AbstractQuotaCounter
from coupon_api.adapters.membership.base import (
    AbstractMembershipStore,
    AddResult,
    RequesterId,
)
from coupon_api.adapters.publisher.base import AbstractGrantPublisher
from coupon_api.schemas.grant import GrantEvent

logger = logging.getLogger(__name__)

T = TypeVar("T")


class AdmissionOutcome(str, Enum):
    GRANTED = "granted"
    DUPLICATE_REQUEST = "duplicate_request"
    QUOTA_EXHAUSTED = "quota_exhausted"
    TRANSIENT_FAILURE = "transient_failure"


class FailureKind(str, Enum):
    """Step at which a transient failure happened."""

    MEMBERSHIP = "membership"
    COUNTER = "counter"
    PUBLISH = "publish"


@dataclass(frozen=True)
class AdmissionDecision:
    """Result of one ``apply`` call.

    Attributes:
        outcome: Final decision for the request.
        requester_id: The requester the decision is about.
        failure: Failing step, set only for TRANSIENT_FAILURE.
        sequence: Counter value observed, when the counter was reached.
    """

    outcome: AdmissionOutcome
    requester_id: RequesterId
    failure: FailureKind | None = None
    sequence: int | None = None

    @property
    def granted(self) -> bool:
        return self.outcome is AdmissionOutcome.GRANTED


class _StepFailed(Exception):
    def __init__(self, kind: FailureKind, cause: BaseException) -> None:
        super().__init__(f"{kind.value} step failed: {cause!r}")
        self.kind = kind
        self.cause = cause


class AdmissionEngine:
    """Orchestrates membership, counter and publisher for each application.

    Attributes:
        membership: Shared add-if-absent set of requesters.
        counter: Shared fetch-and-add quota counter.
        publisher: Channel receiving confirmed grants.
        quota: Maximum number of grants for the process lifetime.
    """

    def __init__(
        self,
        membership: AbstractMembershipStore,
        counter: AbstractQuotaCounter,
        publisher: AbstractGrantPublisher,
        *,
        quota: int = 100,
        store_timeout_seconds: float = 2.0,
        publish_timeout_seconds: float = 2.0,
    ) -> None:
        """Wire the engine to its collaborators.

        Raises:
            ValueError: If quota or a timeout is not positive.
        """
        if quota < 1:
            raise ValueError("quota must be >= 1")
        if store_timeout_seconds <= 0 or publish_timeout_seconds <= 0:
            raise ValueError("timeouts must be > 0")

        self.membership = membership
        self.counter = counter
        self.publisher = publisher
        self.quota = quota
        self.store_timeout_seconds = store_timeout_seconds
        self.publish_timeout_seconds = publish_timeout_seconds

    async def _call(
        self,
        kind: FailureKind,
        timeout: float,
        func: Callable[..., Awaitable[T]],
        *args: object,
    ) -> T:
        try:
            return await asyncio.wait_for(func(*args), timeout=timeout)
        except Exception as exc:
            raise _StepFailed(kind, exc) from exc

    def _build_event(self, requester_id: RequesterId, sequence: int) -> GrantEvent:
        try:
            return GrantEvent(requester_id=requester_id, sequence=sequence)
        except Exception as exc:
            raise _StepFailed(FailureKind.PUBLISH, exc) from exc

    def _transient(
        self,
        requester_id: RequesterId,
        failure: _StepFailed,
        sequence: int | None = None,
    ) -> AdmissionDecision:
        logger.warning(
            "admission.transient_failure",
            extra={
                "requester_id": requester_id,
                "outcome": AdmissionOutcome.TRANSIENT_FAILURE.value,
                "failed_step": failure.kind.value,
                "sequence": sequence,
                "error_type": type(failure.cause).__name__,
                "error_msg": str(failure.cause),
            },
        )
        return AdmissionDecision(
            outcome=AdmissionOutcome.TRANSIENT_FAILURE,
            requester_id=requester_id,
            failure=failure.kind,
            sequence=sequence,
        )

    async def apply(self, requester_id: RequesterId) -> AdmissionDecision:
        """Decide whether ``requester_id`` receives a coupon.

        Never raises for collaborator failures: every error or timeout is
        reported as TRANSIENT_FAILURE for the step that failed, and no later
        step runs.

        Args:
            requester_id: Opaque requester identifier (int or str).

        Returns:
            AdmissionDecision describing the outcome.
        """
        # Step 1: first application per requester wins
        try:
            added = await self._call(
                FailureKind.MEMBERSHIP,
                self.store_timeout_seconds,
                self.membership.add_if_absent,
                requester_id,
            )
        except _StepFailed as failure:
            return self._transient(requester_id, failure)

        if added is not AddResult.ADDED:
            logger.debug(
                "admission.duplicate",
                extra={
                    "requester_id": requester_id,
                    "outcome": AdmissionOutcome.DUPLICATE_REQUEST.value,
                },
            )
            return AdmissionDecision(
                outcome=AdmissionOutcome.DUPLICATE_REQUEST,
                requester_id=requester_id,
            )

        # Step 2: consume one quota unit; the returned value is the only read
        try:
            count = await self._call(
                FailureKind.COUNTER,
                self.store_timeout_seconds,
                self.counter.increment,
            )
            if not isinstance(count, int) or isinstance(count, bool):
                raise _StepFailed(
                    FailureKind.COUNTER, TypeError(f"counter returned {count!r}")
                )
        except _StepFailed as failure:
            return self._transient(requester_id, failure)

        # Step 3: strict post-increment comparison
        if count > self.quota:
            logger.debug(
                "admission.quota_exhausted",
                extra={
                    "requester_id": requester_id,
                    "outcome": AdmissionOutcome.QUOTA_EXHAUSTED.value,
                    "sequence": count,
                    "quota": self.quota,
                },
            )
            return AdmissionDecision(
                outcome=AdmissionOutcome.QUOTA_EXHAUSTED,
                requester_id=requester_id,
                sequence=count,
            )

        # Step 4: hand the grant off for asynchronous persistence
        try:
            event = self._build_event(requester_id, count)
            await self._call(
                FailureKind.PUBLISH,
                self.publish_timeout_seconds,
                self.publisher.publish,
                event,
            )
        except _StepFailed as failure:
            return self._transient(requester_id, failure, sequence=count)

        logger.info(
            "admission.granted",
            extra={
                "requester_id": requester_id,
                "outcome": AdmissionOutcome.GRANTED.value,
                "sequence": count,
                "quota": self.quota,
            },
        )
        return AdmissionDecision(
            outcome=AdmissionOutcome.GRANTED,
            requester_id=requester_id,
            sequence=count,
        )

    def __str__(self) -> str:
        return (
            f"AdmissionEngine(quota={self.quota}, membership={self.membership}, "
            f"counter={self.counter}, publisher={self.publisher})"
        )
