from __future__ import annotations

from coupon_api.api.routes.coupon import router as coupon_router
from coupon_api.api.routes.health import router as health_router

__all__ = ["coupon_router", "health_router"]
