from __future__ import annotations

import logging
from typing import Annotated

from fastapi import APIRouter, Depends
from fastapi.responses import JSONResponse

from coupon_api.core.dependencies import get_admission_engine
from coupon_api.core.errors import StoreUnavailableError
from coupon_api.services.admission_service import AdmissionEngine

logger = logging.getLogger(__name__)

router = APIRouter(tags=["Health"])


@router.get("/health")
def health_check() -> dict:
    """Liveness probe: the process is up and serving HTTP."""

    return {"status": "ok"}


@router.get("/health/ready")
async def readiness_check(
    engine: Annotated[AdmissionEngine, Depends(get_admission_engine)],
) -> JSONResponse:
    """Readiness probe: the quota counter is reachable.

    Also reports how many quota units have been consumed. That number can
    exceed the quota (rejected applications still increment the counter)
    and is for operators only; admission never reads it.
    """

    try:
        consumed = await engine.counter.current()
    except StoreUnavailableError as exc:
        logger.warning("health.store_unavailable", extra={"error_msg": str(exc)})
        return JSONResponse(status_code=503, content={"status": "unavailable"})

    return JSONResponse(
        content={
            "status": "ok",
            "quota": engine.quota,
            "consumed": consumed,
            "remaining": max(0, engine.quota - consumed),
        }
    )
