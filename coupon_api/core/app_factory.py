"""Application factory for the coupon FastAPI app.

Centralizes app construction (metadata, middleware, handlers, routers and
the startup/shutdown lifespan) so tests can build isolated instances.
"""

from __future__ import annotations

import contextlib
import logging
from typing import AsyncIterator

from fastapi import FastAPI

from coupon_api.adapters.factory import (
    create_grant_publisher,
    create_membership_store,
    create_quota_counter,
    create_redis_client,
)
from coupon_api.api.routes import coupon_router, health_router
from coupon_api.core.config import settings
from coupon_api.core.exception_handlers import setup_exception_handlers
from coupon_api.core.logging import configure_logging
from coupon_api.core.middleware import request_id_middleware
from coupon_api.services.admission_service import AdmissionEngine
from coupon_api.services.bootstrap import reset_admission_state

logger = logging.getLogger(__name__)


@contextlib.asynccontextmanager
async def lifespan(app: FastAPI) -> AsyncIterator[None]:
    """Build adapters and the admission engine; tear them down on exit.

    The bootstrap reset runs here, before the first request is served. The
    publisher and Redis client are released even when startup fails.
    """
    redis_client = create_redis_client()
    publisher = create_grant_publisher()

    try:
        membership = create_membership_store(redis_client)
        counter = create_quota_counter(redis_client)

        await publisher.start()
        if settings.admission.reset_on_startup:
            await reset_admission_state(membership, counter)

        engine = AdmissionEngine(
            membership,
            counter,
            publisher,
            quota=settings.admission.quota,
            store_timeout_seconds=settings.admission.store_timeout_seconds,
            publish_timeout_seconds=settings.admission.publish_timeout_seconds,
        )
        app.state.admission_engine = engine
        app.state.grant_publisher = publisher
        logger.info("app.started", extra={"engine": str(engine), "app_env": settings.app_env})

        yield
    finally:
        logger.info("app.stopping")
        await publisher.close()
        if redis_client is not None:
            await redis_client.aclose()


def create_app() -> FastAPI:
    """Create and configure the FastAPI application instance.

    Returns:
        Configured FastAPI app with middleware, handlers and routers.
    """
    configure_logging(settings.log)

    app = FastAPI(
        title="Coupon Admission API",
        description=(
            "First-come coupon issuing: each user gets at most one coupon and "
            "no more than the configured quota is ever granted."
        ),
        version="0.1.0",
        lifespan=lifespan,
    )

    app.middleware("http")(request_id_middleware)
    setup_exception_handlers(app)

    app.include_router(coupon_router)
    app.include_router(health_router)

    return app
