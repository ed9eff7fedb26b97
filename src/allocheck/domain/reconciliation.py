"""Merge on-chain and off-chain allocation signals into one classified result.

The on-chain figure trails a periodic settlement cycle while the off-chain
figure is the live confirmed value, so a positive amount from either source is
enough to classify the identity as allocated. The two figures are reported
side by side and never combined.
"""

from __future__ import annotations

from datetime import UTC, datetime
from logging import getLogger
from typing import TYPE_CHECKING

from .model import ResolvedAllocation
from .units import is_exactly_displayable, to_display_units

if TYPE_CHECKING:
    from .model import AllocationRecord, CanonicalAddress, EntityID, OffChainFetchResult

log = getLogger(__name__)


def reconcile(
    *,
    address: CanonicalAddress,
    entity_id: EntityID,
    on_chain: AllocationRecord,
    off_chain: OffChainFetchResult,
) -> ResolvedAllocation:
    allocation = off_chain.allocation
    on_chain_found = on_chain.accepted_amount > 0
    off_chain_found = allocation is not None and allocation.has_allocation

    if not is_exactly_displayable(on_chain.accepted_amount):
        log.warning(
            "Accepted amount %s for %s exceeds float precision; display value is rounded",
            on_chain.accepted_amount,
            entity_id,
        )

    if off_chain_found and not on_chain_found:
        log.info("Allocation for %s confirmed off-chain only (on-chain not yet settled)", entity_id)

    bid_timestamp = (
        datetime.fromtimestamp(on_chain.bid_timestamp, tz=UTC)
        if on_chain.bid_timestamp
        else None
    )

    return ResolvedAllocation(
        found=on_chain_found or off_chain_found,
        address=address,
        entity_id=entity_id,
        amount=to_display_units(on_chain.accepted_amount),
        raw_amount=on_chain.accepted_amount,
        refunded=on_chain.refunded,
        cancelled=on_chain.cancelled,
        bid_timestamp=bid_timestamp,
        state_source=on_chain.source,
        active_bid=on_chain.active_bid,
        as_of_block=on_chain.as_of_block,
        transaction_hash=on_chain.transaction_hash,
        off_chain_allocation=allocation if off_chain_found else None,
        off_chain_error=off_chain.error,
    )
