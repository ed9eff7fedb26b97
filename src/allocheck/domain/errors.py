"""Error taxonomy for allocation resolution.

Identity, entity and chain-state errors abort a request and reach the caller
through ``ResolutionFailure``. ``OffChainFetchError`` is only ever captured as
text on the result.
"""

from __future__ import annotations


class AllocationError(RuntimeError):
    """Base class for failures surfaced by the resolution engine."""


class InvalidAddressFormat(AllocationError):
    """Input is neither a 40-hex-digit address nor a resolvable name."""


class NameNotFound(AllocationError):
    """Name resolution completed but no address is bound to the name."""

    def __init__(self, name: str) -> None:
        super().__init__(f"Name not found or not resolved: {name}")
        self.name = name


class NameResolutionTransportError(AllocationError):
    """The name service call itself failed."""


class ChainReadError(AllocationError):
    """An RPC or contract call failed.

    ``scanned_through`` is set by event reconstruction to the last block that was
    fully scanned before the failing chunk, or ``None`` if no chunk completed.
    """

    def __init__(self, message: str, *, scanned_through: int | None = None) -> None:
        super().__init__(message)
        self.scanned_through = scanned_through


class OffChainFetchError(AllocationError):
    """The allocation API could not deliver a usable record."""
