"""Pydantic schemas for coupon grants."""

from __future__ import annotations

from datetime import datetime, timezone
from typing import Any, Literal

from pydantic import BaseModel, ConfigDict, Field


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


class GrantEvent(BaseModel):
    """A confirmed coupon grant handed to the publisher.

    Immutable once built. The requester id doubles as the idempotency key
    for downstream consumers that may see the event more than once.
    """

    model_config = ConfigDict(frozen=True)

    requester_id: int | str = Field(
        ..., description="Requester that received the coupon."
    )
    sequence: int = Field(
        ...,
        ge=1,
        description="Counter value that admitted this grant (1..quota).",
    )
    issued_at: datetime = Field(
        default_factory=_utcnow,
        description="UTC time at which the grant was decided.",
    )

    @property
    def idempotency_key(self) -> str:
        return str(self.requester_id)

    def to_message(self) -> dict[str, Any]:
        """Return the JSON-compatible payload sent over the wire."""
        return self.model_dump(mode="json")


class ApplyResponse(BaseModel):
    """Body returned for a granted application."""

    status: Literal["granted"] = "granted"
    requester_id: int | str = Field(..., description="Echo of the applying requester.")
    sequence: int = Field(..., description="Position of this grant within the quota.")
