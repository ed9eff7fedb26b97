"""ENS name resolution through web3."""

from __future__ import annotations

from logging import getLogger
from typing import TYPE_CHECKING

from ens.exceptions import InvalidName

from allocheck.domain.errors import InvalidAddressFormat, NameResolutionTransportError

from .connection import RPC_ERRORS

if TYPE_CHECKING:
    from allocheck.domain.model import CanonicalAddress

    from .connection import ChainConnection

log = getLogger(__name__)


class EnsNameResolver:
    def __init__(self, connection: ChainConnection) -> None:
        self._connection = connection

    async def address_for_name(self, name: str) -> CanonicalAddress | None:
        async def lookup() -> CanonicalAddress | None:
            return await self._connection.w3.ens.address(name)  # type: ignore[union-attr,misc]

        try:
            return await self._connection.call(lookup)
        except InvalidName as exc:
            raise InvalidAddressFormat(f"Invalid ENS name {name!r}: {exc}") from exc
        except RPC_ERRORS as exc:
            log.warning("ENS lookup for %s failed: %s", name, exc)
            raise NameResolutionTransportError(f"Failed to resolve ENS name: {exc}") from exc
