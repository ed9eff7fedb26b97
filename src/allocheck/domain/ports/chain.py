"""Ports for reading the on-chain allocation contract."""

from __future__ import annotations

from typing import TYPE_CHECKING, Protocol, runtime_checkable

if TYPE_CHECKING:
    from allocheck.domain.model import (
        AllocationRecord,
        BlockNumber,
        CanonicalAddress,
        EntityID,
        HistoricalAllocationEvent,
    )


@runtime_checkable
class AllocationContract(Protocol):
    """Read-only view of the allocation contract.

    Implementations raise ``ChainReadError`` for any RPC or contract-call failure.
    """

    async def entity_by_address(self, address: CanonicalAddress) -> EntityID:
        ...

    async def entity_state_by_id(self, entity_id: EntityID) -> AllocationRecord:
        ...

    async def supports_entity_state(self) -> bool:
        """Return whether the deployed contract exposes ``entityStateByID``."""
        ...

    async def block_number(self) -> BlockNumber:
        ...

    async def allocation_events(
        self,
        *,
        from_block: BlockNumber,
        to_block: BlockNumber,
        entity_id: EntityID | None = None,
    ) -> list[HistoricalAllocationEvent]:
        """Return ``AllocationSet`` logs in the closed range, optionally narrowed by topic."""
        ...


__all__ = ["AllocationContract"]
