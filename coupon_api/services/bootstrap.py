"""Startup reset of the shared admission state.

Must run before the service accepts traffic: clearing the stores while
applications are in flight would let a requester apply twice and let the
counter restart below already granted sequence numbers.
"""

import logging

from coupon_api.adapters.counter.base import AbstractQuotaCounter
from coupon_api.adapters.membership.base import AbstractMembershipStore

logger = logging.getLogger(__name__)


async def reset_admission_state(
    membership: AbstractMembershipStore,
    counter: AbstractQuotaCounter,
) -> None:
    """Clear the membership set and zero the quota counter.

    Idempotent. Errors propagate so that startup fails loudly.
    """
    await membership.clear()
    await counter.reset()
    logger.info(
        "bootstrap.admission_state_reset",
        extra={"membership": str(membership), "counter": str(counter)},
    )
