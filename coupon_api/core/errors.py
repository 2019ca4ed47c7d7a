"""Application-level exception types.

Two families live here:
- ``AppError`` subclasses are raised at the HTTP edge and rendered by the
  global exception handlers.
- ``StoreUnavailableError`` / ``PublishError`` are raised by adapters when a
  shared store or the grant channel fails. The admission engine maps them
  (and any other collaborator exception) into a transient failure decision.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Any, NotRequired, TypedDict


class ErrorDetails(TypedDict, total=False):
    """Structured error context for observability and clients."""

    code: str
    message: str
    hint: str
    requester_id: str
    failed_step: str
    retry_after: float
    backend: str
    request_id: str
    context: NotRequired[dict[str, Any]]


@dataclass
class AppError(Exception):
    """Base error for application/domain failures.

    Attributes:
        code: Stable, machine-readable error code.
        message: Human-readable error message.
        details: Optional structured details for debugging/observability.
    """

    code: str
    message: str
    details: ErrorDetails | None = None

    def __post_init__(self) -> None:
        # Populate Exception args so str(error) is useful in logs/tracebacks.
        super().__init__(self.message)


class ValidationAppError(AppError):
    """Raised when input/config validation fails."""


class DuplicateRequestAppError(AppError):
    """Raised when the requester already applied once."""


class QuotaExhaustedAppError(AppError):
    """Raised when every coupon has already been handed out."""


class TransientAppError(AppError):
    """Raised when a shared store or the grant channel failed; safe to retry."""


class StoreUnavailableError(RuntimeError):
    """A membership set or quota counter operation did not complete."""


class PublishError(RuntimeError):
    """The grant channel refused to accept an event."""
