"""FastAPI dependencies exposing objects built during application startup."""

from __future__ import annotations

from fastapi import Request

from coupon_api.services.admission_service import AdmissionEngine


def get_admission_engine(request: Request) -> AdmissionEngine:
    """Return the process-wide admission engine created by the lifespan.

    Tests override this dependency to inject an engine wired to fakes.
    """
    return request.app.state.admission_engine
