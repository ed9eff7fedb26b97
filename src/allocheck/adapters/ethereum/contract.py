"""web3 adapter for the allocation contract."""

from __future__ import annotations

from logging import getLogger
from typing import TYPE_CHECKING, Any

from eth_utils import to_checksum_address
from web3 import Web3

from allocheck.domain.errors import ChainReadError
from allocheck.domain.model import (
    ActiveBid,
    AllocationRecord,
    EntityID,
    HistoricalAllocationEvent,
    StateSource,
)

from .abi import (
    ALLOCATION_CONTRACT_ABI,
    EIP1967_IMPLEMENTATION_SLOT,
    ENTITY_STATE_SELECTOR,
    MINIMAL_PROXY_PREFIX,
)
from .connection import RPC_ERRORS

if TYPE_CHECKING:
    from collections.abc import Awaitable, Callable, Mapping, Sequence

    from allocheck.domain.model import BlockNumber, CanonicalAddress

    from .connection import ChainConnection

log = getLogger(__name__)

type EntityStateTuple = tuple[str, bytes, int, int, bool, bool, tuple[int, int]]


class Web3AllocationContract:
    """Read-only calls and log queries against the deployed allocation contract."""

    def __init__(self, connection: ChainConnection) -> None:
        self._connection = connection
        self._address = connection.config.contract_address
        self._contract = connection.w3.eth.contract(
            address=Web3.to_checksum_address(self._address),
            abi=ALLOCATION_CONTRACT_ABI,
        )

    async def entity_by_address(self, address: CanonicalAddress) -> EntityID:
        raw = await self._rpc(
            f"entityByAddress({address})",
            lambda: self._contract.functions.entityByAddress(address).call(),
        )
        return EntityID(bytes(raw))

    async def entity_state_by_id(self, entity_id: EntityID) -> AllocationRecord:
        state: EntityStateTuple = await self._rpc(
            f"entityStateByID({entity_id})",
            lambda: self._contract.functions.entityStateByID(entity_id.value).call(),
        )
        return parse_entity_state(state)

    async def supports_entity_state(self) -> bool:
        """Look for the ``entityStateByID`` selector in the deployed code.

        Proxies carry only a delegating stub, so for an EIP-1167 clone or an
        EIP-1967 proxy the implementation's code is checked instead.
        """

        code = await self._code_at(self._contract.address)
        if ENTITY_STATE_SELECTOR in code:
            return True
        implementation = await self._implementation_of(code)
        if implementation is None:
            return False
        log.debug("Contract %s delegates to %s", self._address, implementation)
        return ENTITY_STATE_SELECTOR in await self._code_at(implementation)

    async def _code_at(self, address: str) -> bytes:
        code = await self._rpc(
            f"getCode({address})",
            lambda: self._connection.w3.eth.get_code(address),
        )
        return bytes(code)

    async def _implementation_of(self, code: bytes) -> CanonicalAddress | None:
        clone_end = len(MINIMAL_PROXY_PREFIX) + 20
        if code.startswith(MINIMAL_PROXY_PREFIX) and len(code) >= clone_end:
            return to_checksum_address("0x" + code[len(MINIMAL_PROXY_PREFIX) : clone_end].hex())

        slot = await self._rpc(
            f"getStorageAt({self._address}, EIP-1967 implementation slot)",
            lambda: self._connection.w3.eth.get_storage_at(
                self._contract.address, EIP1967_IMPLEMENTATION_SLOT
            ),
        )
        raw = bytes(slot)[-20:]
        if not any(raw):
            return None
        return to_checksum_address("0x" + raw.hex())

    async def block_number(self) -> BlockNumber:
        async def fetch() -> BlockNumber:
            return await self._connection.w3.eth.block_number

        return await self._rpc("eth_blockNumber", fetch)

    async def allocation_events(
        self,
        *,
        from_block: BlockNumber,
        to_block: BlockNumber,
        entity_id: EntityID | None = None,
    ) -> list[HistoricalAllocationEvent]:
        argument_filters = {"entityID": entity_id.value} if entity_id is not None else None
        logs = await self._rpc(
            f"AllocationSet logs {from_block}..{to_block}",
            lambda: self._contract.events.AllocationSet.get_logs(
                from_block=from_block,
                to_block=to_block,
                argument_filters=argument_filters,
            ),
        )
        return parse_allocation_logs(logs)

    async def _rpc[T](self, description: str, func: Callable[[], Awaitable[T]]) -> T:
        try:
            return await self._connection.call(func)
        except RPC_ERRORS as exc:
            log.warning("RPC call %s failed: %s", description, exc)
            raise ChainReadError(f"{description} failed: {exc}") from exc


def parse_entity_state(state: Sequence[Any]) -> AllocationRecord:
    """Convert the ``entityStateByID`` struct tuple into an ``AllocationRecord``."""

    try:
        _addr, _entity, accepted, bid_timestamp, refunded, cancelled, active_bid = state
        bid_amount, bid_time = active_bid
    except (TypeError, ValueError) as exc:
        raise ChainReadError(f"Unexpected entityStateByID result: {state!r}") from exc

    return AllocationRecord(
        accepted_amount=int(accepted),
        bid_timestamp=int(bid_timestamp) or None,
        refunded=bool(refunded),
        cancelled=bool(cancelled),
        active_bid=ActiveBid(int(bid_amount), int(bid_time)) if bid_amount else None,
        source=StateSource.DIRECT,
    )


def parse_allocation_logs(logs: Sequence[Mapping[str, Any]]) -> list[HistoricalAllocationEvent]:
    events: list[HistoricalAllocationEvent] = []
    for entry in logs:
        try:
            args = entry["args"]
            events.append(
                HistoricalAllocationEvent(
                    entity_id=EntityID(bytes(args["entityID"])),
                    accepted_amount=int(args["acceptedAmountUSDT"]),
                    block_number=int(entry["blockNumber"]),
                    transaction_hash=Web3.to_hex(entry["transactionHash"]),
                    log_index=int(entry.get("logIndex", 0)),
                )
            )
        except (KeyError, TypeError, ValueError) as exc:
            raise ChainReadError(f"Malformed AllocationSet log: {entry!r}") from exc
    return events
