"""Allocation resolution domain: value objects, ports and the resolution engine."""

from __future__ import annotations

from .errors import (
    AllocationError,
    ChainReadError,
    InvalidAddressFormat,
    NameNotFound,
    NameResolutionTransportError,
    OffChainFetchError,
)
from .identity import IdentityResolver
from .locator import EntityLocator
from .model import (
    ActiveBid,
    AllocationRecord,
    BlockRange,
    EntityID,
    HistoricalAllocationEvent,
    OffChainAllocation,
    OffChainFetchResult,
    ResolutionFailure,
    ResolutionOutcome,
    ResolutionSuccess,
    ResolvedAllocation,
    StateSource,
)
from .onchain_state import DirectStateReader, EventScanStateReader, plan_chunks, select_state_reader
from .reconciliation import reconcile
from .resolution import AllocationResolutionEngine
from .units import to_decimal_units, to_display_units

__all__ = [
    "ActiveBid",
    "AllocationError",
    "AllocationRecord",
    "AllocationResolutionEngine",
    "BlockRange",
    "ChainReadError",
    "DirectStateReader",
    "EntityID",
    "EntityLocator",
    "EventScanStateReader",
    "HistoricalAllocationEvent",
    "IdentityResolver",
    "InvalidAddressFormat",
    "NameNotFound",
    "NameResolutionTransportError",
    "OffChainAllocation",
    "OffChainFetchError",
    "OffChainFetchResult",
    "ResolutionFailure",
    "ResolutionOutcome",
    "ResolutionSuccess",
    "ResolvedAllocation",
    "StateSource",
    "plan_chunks",
    "reconcile",
    "select_state_reader",
    "to_decimal_units",
    "to_display_units",
]
