"""Request correlation middleware.

Binds the caller's request id (or a fresh one) to every log line written
while the request is handled, echoes it back, and logs one summary line
per request.
"""

from __future__ import annotations

import logging
import time
import uuid

from fastapi import Request, Response

from coupon_api.core.config import settings
from coupon_api.core.logging import request_context

logger = logging.getLogger(__name__)


async def request_id_middleware(request: Request, call_next) -> Response:
    header_name = settings.log.request_id_header
    request_id = request.headers.get(header_name) or uuid.uuid4().hex
    started = time.perf_counter()

    with request_context(request_id):
        response: Response = await call_next(request)
        elapsed_ms = (time.perf_counter() - started) * 1000
        logger.info(
            "http.request",
            extra={
                "method": request.method,
                "path": request.url.path,
                "status_code": response.status_code,
                "duration_ms": round(elapsed_ms, 2),
            },
        )

    response.headers[header_name] = request_id
    response.headers["X-Request-Duration-ms"] = f"{elapsed_ms:.2f}"
    return response
