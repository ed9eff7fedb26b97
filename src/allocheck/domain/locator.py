"""Map a canonical address to the contract's entity handle."""

from __future__ import annotations

from dataclasses import dataclass
from logging import getLogger
from typing import TYPE_CHECKING

if TYPE_CHECKING:
    from .model import CanonicalAddress, EntityID
    from .ports.chain import AllocationContract

log = getLogger(__name__)


@dataclass(slots=True)
class EntityLocator:
    contract: AllocationContract

    async def locate(self, address: CanonicalAddress) -> EntityID:
        """Return the entity registered for ``address``.

        The all-zero EntityID is returned as-is: it means no entity is registered,
        which callers classify as "not found" rather than as a failure.
        """

        entity_id = await self.contract.entity_by_address(address)
        if entity_id.is_zero:
            log.info("No entity registered for %s", address)
        else:
            log.debug("Entity for %s is %s", address, entity_id)
        return entity_id
