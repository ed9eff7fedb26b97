"""Port for the off-chain allocation API."""

from __future__ import annotations

from typing import TYPE_CHECKING, Protocol, runtime_checkable

if TYPE_CHECKING:
    from allocheck.domain.model import EntityID, OffChainFetchResult


@runtime_checkable
class OffChainAllocationSource(Protocol):
    """Advisory allocation lookup that reports failures on the result instead of raising."""

    async def fetch_confirmed(self, entity_id: EntityID) -> OffChainFetchResult:
        ...


__all__ = ["OffChainAllocationSource"]
