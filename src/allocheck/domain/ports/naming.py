"""Port for human-readable name resolution."""

from __future__ import annotations

from typing import TYPE_CHECKING, Protocol, runtime_checkable

if TYPE_CHECKING:
    from allocheck.domain.model import CanonicalAddress


@runtime_checkable
class NameResolver(Protocol):
    """Address-for-name lookup.

    Returns ``None`` when no address is bound. Raises
    ``NameResolutionTransportError`` when the lookup itself fails and
    ``InvalidAddressFormat`` when the name service rejects the name's syntax.
    """

    async def address_for_name(self, name: str) -> CanonicalAddress | None:
        ...


__all__ = ["NameResolver"]
