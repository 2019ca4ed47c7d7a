import logging
from typing import Annotated

from fastapi import APIRouter, Depends, Query

from coupon_api.core.dependencies import get_admission_engine
from coupon_api.core.errors import (
    DuplicateRequestAppError,
    QuotaExhaustedAppError,
    TransientAppError,
    ValidationAppError,
)
from coupon_api.schemas.grant import ApplyResponse
from coupon_api.services.admission_service import AdmissionEngine, AdmissionOutcome

logger = logging.getLogger(__name__)

router = APIRouter(tags=["Coupon"])


def parse_requester_id(raw: str) -> int | str:
    """Turn the userId query value into a requester id.

    Canonical decimal integers become ints (so "42" and 42 name the same
    requester); anything else is kept as an opaque string.

    Raises:
        ValidationAppError: If the value is blank.
    """
    value = raw.strip()
    if not value:
        raise ValidationAppError(code="invalid_user_id", message="userId must not be blank")
    if value.isdecimal() and str(int(value)) == value:
        return int(value)
    return value


@router.post(
    "/coupon/apply",
    response_model=ApplyResponse,
    responses={
        409: {"description": "Requester already applied"},
        422: {"description": "All coupons have been handed out"},
        503: {"description": "Shared store or grant channel unavailable; retry later"},
    },
)
async def apply_coupon(
    engine: Annotated[AdmissionEngine, Depends(get_admission_engine)],
    user_id: Annotated[
        str,
        Query(alias="userId", description="Opaque requester identifier"),
    ],
) -> ApplyResponse:
    """Apply for a coupon.

    Maps the admission decision to an HTTP response: 200 on grant, 409 for a
    repeated requester, 422 once the quota is exhausted and 503 when a
    shared store or the grant channel failed.

    Raises:
        ValidationAppError: If userId is blank.
        DuplicateRequestAppError: Requester already applied.
        QuotaExhaustedAppError: No coupons left.
        TransientAppError: Infrastructure failure; safe to retry.
    """
    requester_id = parse_requester_id(user_id)

    logger.info("coupon.apply_received", extra={"requester_id": requester_id})

    decision = await engine.apply(requester_id)

    if decision.outcome is AdmissionOutcome.GRANTED:
        return ApplyResponse(requester_id=requester_id, sequence=decision.sequence)

    if decision.outcome is AdmissionOutcome.DUPLICATE_REQUEST:
        raise DuplicateRequestAppError(
            code="duplicate_request",
            message="This user has already applied for a coupon.",
        )

    if decision.outcome is AdmissionOutcome.QUOTA_EXHAUSTED:
        raise QuotaExhaustedAppError(
            code="quota_exhausted",
            message="All coupons have been issued.",
        )

    raise TransientAppError(
        code="transient_failure",
        message="Coupon service is temporarily unavailable. Please retry.",
        details={"failed_step": decision.failure.value if decision.failure else "unknown"},
    )
