"""Global exception handlers for consistent error responses.

Design:
- AppError subclasses → HTTP status by type (400, 409, 422, 503)
- Malformed requests → 400 (keeps 422 reserved for an exhausted quota)
- Unexpected Exception → generic 500 (safety net)
- All responses include request_id for distributed tracing
"""

import logging

from fastapi import Request
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse

from coupon_api.core.errors import (
    AppError,
    DuplicateRequestAppError,
    QuotaExhaustedAppError,
    TransientAppError,
)
from coupon_api.core.logging import get_request_id

logger = logging.getLogger(__name__)

# Seconds a client should wait before retrying after a transient failure
TRANSIENT_RETRY_AFTER_SECONDS = 1


def _status_for(exc: AppError) -> int:
    if isinstance(exc, DuplicateRequestAppError):
        return 409
    if isinstance(exc, QuotaExhaustedAppError):
        return 422
    if isinstance(exc, TransientAppError):
        return 503
    return 400


async def app_error_handler(request: Request, exc: AppError) -> JSONResponse:
    """Handle domain application errors with consistent JSON format.

    Routes domain errors to HTTP status codes:
    - DuplicateRequestAppError → 409 Conflict
    - QuotaExhaustedAppError → 422 Unprocessable Entity
    - TransientAppError → 503 Service Unavailable (with Retry-After)
    - anything else (ValidationAppError) → 400 Bad Request

    Args:
        request: FastAPI request object.
        exc: AppError instance (or subclass).

    Returns:
        JSONResponse with appropriate status code and error details.
    """
    status_code = _status_for(exc)

    log = logger.warning if status_code >= 500 else logger.info
    log(
        "app_error_handled",
        extra={
            "error_code": exc.code,
            "error_message": exc.message,
            "status_code": status_code,
            "has_details": bool(exc.details),
        },
    )

    error_content = {
        "code": exc.code,
        "message": exc.message,
        "request_id": get_request_id(),
    }
    if exc.details:
        error_content["details"] = exc.details

    headers = None
    if isinstance(exc, TransientAppError):
        headers = {"Retry-After": str(TRANSIENT_RETRY_AFTER_SECONDS)}

    return JSONResponse(
        status_code=status_code,
        content={"error": error_content},
        headers=headers,
    )


async def request_validation_handler(request: Request, exc: RequestValidationError) -> JSONResponse:
    """Render malformed requests (e.g. missing userId) as 400.

    FastAPI answers these with 422 by default, which would be
    indistinguishable from an exhausted quota.
    """
    logger.info(
        "request_validation_failed",
        extra={"request_path": request.url.path, "error_count": len(exc.errors())},
    )

    return JSONResponse(
        status_code=400,
        content={
            "error": {
                "code": "invalid_request",
                "message": "Request parameters are missing or malformed.",
                "request_id": get_request_id(),
                "details": {
                    "context": {
                        "fields": [".".join(str(part) for part in err["loc"]) for err in exc.errors()],
                    }
                },
            }
        },
    )


async def general_exception_handler(request: Request, exc: Exception) -> JSONResponse:
    """Fallback handler for unexpected errors (safety net).

    Logs detailed information for debugging while returning a generic message.
    No stack traces or exception text reach the client.
    """
    logger.error(
        "unhandled_exception",
        extra={
            "error_type": type(exc).__name__,
            "error_msg": str(exc),
            "request_path": request.url.path,
            "request_method": request.method,
        },
    )

    return JSONResponse(
        status_code=500,
        content={
            "error": {
                "code": "internal_server_error",
                "message": "An unexpected error occurred. Please try again later.",
                "request_id": get_request_id(),
            }
        },
    )


def setup_exception_handlers(app) -> None:
    """Register all exception handlers with FastAPI app.

    Args:
        app: FastAPI application instance.
    """
    app.exception_handler(AppError)(app_error_handler)
    app.exception_handler(RequestValidationError)(request_validation_handler)
    app.exception_handler(Exception)(general_exception_handler)
