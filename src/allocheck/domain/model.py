"""Value objects for allocation resolution.

Everything here is frozen: records are computed fresh per request and never
mutated after construction.
"""

from __future__ import annotations

from dataclasses import dataclass
from datetime import datetime
from enum import StrEnum
from typing import TYPE_CHECKING, ClassVar

if TYPE_CHECKING:
    from .errors import AllocationError

type CanonicalAddress = str  # EIP-55 checksummed, 0x-prefixed
type BlockNumber = int
type RawAmount = int  # fixed point, six decimals

ENTITY_ID_LENGTH = 16


@dataclass(frozen=True, slots=True)
class EntityID:
    """Opaque 16-byte participant handle returned by the allocation contract."""

    value: bytes

    def __post_init__(self) -> None:
        if len(self.value) != ENTITY_ID_LENGTH:
            raise ValueError(
                f"EntityID must be {ENTITY_ID_LENGTH} bytes, got {len(self.value)}"
            )

    @classmethod
    def from_hex(cls, text: str) -> EntityID:
        digits = text[2:] if text[:2].lower() == "0x" else text
        try:
            raw = bytes.fromhex(digits)
        except ValueError as exc:
            raise ValueError(f"Invalid EntityID hex: {text!r}") from exc
        return cls(raw)

    @classmethod
    def zero(cls) -> EntityID:
        return cls(bytes(ENTITY_ID_LENGTH))

    @property
    def is_zero(self) -> bool:
        return not any(self.value)

    @property
    def hex(self) -> str:
        return "0x" + self.value.hex()

    def __str__(self) -> str:
        return self.hex


class StateSource(StrEnum):
    DIRECT = "direct"
    EVENTS = "events"
    NONE = "none"


@dataclass(frozen=True, slots=True)
class ActiveBid:
    amount: RawAmount
    timestamp: int


@dataclass(frozen=True, slots=True)
class AllocationRecord:
    """On-chain allocation facts for one entity."""

    accepted_amount: RawAmount = 0
    bid_timestamp: int | None = None
    refunded: bool = False
    cancelled: bool = False
    active_bid: ActiveBid | None = None
    source: StateSource = StateSource.NONE
    as_of_block: BlockNumber | None = None
    transaction_hash: str | None = None

    @classmethod
    def empty(cls, source: StateSource = StateSource.NONE) -> AllocationRecord:
        return cls(source=source)


@dataclass(frozen=True, slots=True)
class HistoricalAllocationEvent:
    """One ``AllocationSet`` log entry."""

    entity_id: EntityID
    accepted_amount: RawAmount
    block_number: BlockNumber
    transaction_hash: str
    log_index: int = 0

    @property
    def sort_key(self) -> tuple[int, int]:
        return (self.block_number, self.log_index)


@dataclass(frozen=True, slots=True)
class BlockRange:
    """Closed interval ``[start, end]`` of block numbers."""

    start: BlockNumber
    end: BlockNumber

    @property
    def width(self) -> int:
        return self.end - self.start + 1


@dataclass(frozen=True, slots=True)
class OffChainAllocation:
    usdt_allocation: float | None = None
    token_allocation: float | None = None
    clearing_price: float | None = None

    @property
    def has_allocation(self) -> bool:
        return any(
            value is not None and value > 0
            for value in (self.usdt_allocation, self.token_allocation)
        )


@dataclass(frozen=True, slots=True)
class OffChainFetchResult:
    """Outcome of an off-chain lookup; ``error`` is set only when the lookup failed."""

    allocation: OffChainAllocation | None = None
    error: str | None = None


@dataclass(frozen=True, slots=True)
class ResolvedAllocation:
    """Final classified result, fully value-copied from its inputs."""

    found: bool
    address: CanonicalAddress
    entity_id: EntityID
    amount: float
    raw_amount: RawAmount
    refunded: bool = False
    cancelled: bool = False
    bid_timestamp: datetime | None = None
    state_source: StateSource = StateSource.NONE
    active_bid: ActiveBid | None = None
    as_of_block: BlockNumber | None = None
    transaction_hash: str | None = None
    off_chain_allocation: OffChainAllocation | None = None
    off_chain_error: str | None = None


@dataclass(frozen=True, slots=True)
class ResolutionSuccess:
    allocation: ResolvedAllocation
    ok: ClassVar[bool] = True


@dataclass(frozen=True, slots=True)
class ResolutionFailure:
    error: AllocationError
    ok: ClassVar[bool] = False

    @property
    def message(self) -> str:
        return str(self.error)

    @property
    def kind(self) -> str:
        return type(self.error).__name__


type ResolutionOutcome = ResolutionSuccess | ResolutionFailure

