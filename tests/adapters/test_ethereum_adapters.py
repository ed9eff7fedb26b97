from __future__ import annotations

import asyncio
from dataclasses import dataclass, field
from typing import Any

import aiohttp
import pytest
from ens.exceptions import InvalidName
from eth_utils import to_checksum_address
from hexbytes import HexBytes
from web3.exceptions import ContractLogicError

from allocheck.adapters.ethereum import (
    ChainConnection,
    EnsNameResolver,
    Web3AllocationContract,
    parse_allocation_logs,
    parse_entity_state,
)
from allocheck.adapters.ethereum.abi import (
    EIP1967_IMPLEMENTATION_SLOT,
    ENTITY_STATE_SELECTOR,
    MINIMAL_PROXY_PREFIX,
)
from allocheck.config.chain import ChainConfig
from allocheck.domain.errors import (
    ChainReadError,
    InvalidAddressFormat,
    NameResolutionTransportError,
)
from allocheck.domain.model import ActiveBid, StateSource
from tests.support.fakes import ENTITY_A, ENTITY_B

ADDRESS = "0x52908400098527886E0F7030069857D2E4169EE7"
IMPLEMENTATION = to_checksum_address("0x" + "00" * 16 + "deadbeef")
SELECTOR_CODE = b"\x60\x80\x63" + ENTITY_STATE_SELECTOR + b"\x14"
DELEGATING_STUB = b"\x36\x3d\x3d\x37\x60\x80\xf4"


class _PendingCall:
    def __init__(self, outcome: object) -> None:
        self._outcome = outcome

    async def call(self) -> object:
        if isinstance(self._outcome, BaseException):
            raise self._outcome
        return self._outcome


@dataclass
class _FakeFunctions:
    outcomes: dict[str, object]
    calls: list[tuple[str, tuple[object, ...]]] = field(default_factory=list)

    def __getattr__(self, name: str) -> Any:
        def bind(*args: object) -> _PendingCall:
            self.calls.append((name, args))
            return _PendingCall(self.outcomes[name])

        return bind


@dataclass
class _FakeAllocationSetEvent:
    logs: list[dict[str, Any]] | BaseException
    queries: list[dict[str, Any]] = field(default_factory=list)

    async def get_logs(self, **kwargs: Any) -> list[dict[str, Any]]:
        self.queries.append(kwargs)
        if isinstance(self.logs, BaseException):
            raise self.logs
        return self.logs


@dataclass
class _FakeEvents:
    AllocationSet: _FakeAllocationSetEvent  # noqa: N815


@dataclass
class _FakeContract:
    address: str
    functions: _FakeFunctions
    events: _FakeEvents


class _FakeEth:
    def __init__(
        self,
        contract: _FakeContract,
        *,
        codes: dict[str, bytes],
        storage: dict[int, bytes],
        head: int,
    ) -> None:
        self._contract = contract
        self._codes = codes
        self._storage = storage
        self._head = head
        self.code_requests: list[str] = []

    def contract(self, *, address: str, abi: object) -> _FakeContract:
        del abi
        assert address == self._contract.address
        return self._contract

    async def get_code(self, address: str) -> HexBytes:
        self.code_requests.append(address)
        return HexBytes(self._codes.get(address, b""))

    async def get_storage_at(self, address: str, position: int) -> HexBytes:
        assert address == self._contract.address
        return HexBytes(self._storage.get(position, bytes(32)))

    @property
    def block_number(self) -> Any:
        async def head() -> int:
            return self._head

        return head()


class _FakeProvider:
    def __init__(self) -> None:
        self.disconnected = False

    async def disconnect(self) -> None:
        self.disconnected = True


class _FakeEns:
    def __init__(self, outcome: object) -> None:
        self._outcome = outcome

    async def address(self, name: str) -> object:
        del name
        if isinstance(self._outcome, BaseException):
            raise self._outcome
        return self._outcome


class _FakeWeb3:
    def __init__(
        self,
        *,
        outcomes: dict[str, object] | None = None,
        logs: list[dict[str, Any]] | BaseException | None = None,
        code: bytes = b"",
        implementations: dict[str, bytes] | None = None,
        storage: dict[int, bytes] | None = None,
        head: int = 0,
        ens: object = None,
    ) -> None:
        contract_address = ChainConfig().contract_address
        self.contract = _FakeContract(
            address=contract_address,
            functions=_FakeFunctions(outcomes or {}),
            events=_FakeEvents(_FakeAllocationSetEvent(logs if logs is not None else [])),
        )
        self.eth = _FakeEth(
            self.contract,
            codes={contract_address: code, **(implementations or {})},
            storage=storage or {},
            head=head,
        )
        self.provider = _FakeProvider()
        self.ens = _FakeEns(ens)


def _connection(w3: _FakeWeb3) -> ChainConnection:
    return ChainConnection(ChainConfig(ratelimit=None), w3=w3)  # type: ignore[arg-type]


def _log(entity: bytes, amount: int, block: int, log_index: int = 0) -> dict[str, Any]:
    return {
        "args": {"entityID": entity, "acceptedAmountUSDT": amount},
        "blockNumber": block,
        "transactionHash": HexBytes(block.to_bytes(32, "big")),
        "logIndex": log_index,
    }


def test_parse_entity_state_maps_struct_fields() -> None:
    record = parse_entity_state(
        (ADDRESS, ENTITY_A.value, 2_500_000, 1_700_000_000, False, True, (3_000_000, 1_700_000_100))
    )

    assert record.accepted_amount == 2_500_000
    assert record.bid_timestamp == 1_700_000_000
    assert record.refunded is False
    assert record.cancelled is True
    assert record.active_bid == ActiveBid(amount=3_000_000, timestamp=1_700_000_100)
    assert record.source is StateSource.DIRECT


def test_parse_entity_state_for_unknown_entity() -> None:
    record = parse_entity_state((ADDRESS, bytes(16), 0, 0, False, False, (0, 0)))

    assert record.accepted_amount == 0
    assert record.bid_timestamp is None
    assert record.active_bid is None


def test_parse_entity_state_rejects_unexpected_shape() -> None:
    with pytest.raises(ChainReadError, match="Unexpected entityStateByID"):
        parse_entity_state((ADDRESS, ENTITY_A.value, 1))


def test_parse_allocation_logs() -> None:
    events = parse_allocation_logs([_log(ENTITY_A.value, 5, 100, 2), _log(ENTITY_B.value, 6, 101)])

    assert [event.entity_id for event in events] == [ENTITY_A, ENTITY_B]
    assert events[0].accepted_amount == 5
    assert events[0].block_number == 100
    assert events[0].log_index == 2
    assert events[0].transaction_hash == "0x" + (100).to_bytes(32, "big").hex()


def test_parse_allocation_logs_rejects_malformed_entries() -> None:
    with pytest.raises(ChainReadError, match="Malformed AllocationSet log"):
        parse_allocation_logs([{"blockNumber": 1}])


def test_contract_reads_entity_and_state() -> None:
    w3 = _FakeWeb3(
        outcomes={
            "entityByAddress": ENTITY_A.value,
            "entityStateByID": (ADDRESS, ENTITY_A.value, 1_000_000, 0, False, False, (0, 0)),
        }
    )
    contract = Web3AllocationContract(_connection(w3))

    entity_id = asyncio.run(contract.entity_by_address(ADDRESS))
    record = asyncio.run(contract.entity_state_by_id(entity_id))

    assert entity_id == ENTITY_A
    assert record.accepted_amount == 1_000_000
    assert w3.contract.functions.calls == [
        ("entityByAddress", (ADDRESS,)),
        ("entityStateByID", (ENTITY_A.value,)),
    ]


@pytest.mark.parametrize(
    "error",
    [
        aiohttp.ClientConnectionError("connection reset"),
        ContractLogicError("execution reverted"),
        TimeoutError("timed out"),
    ],
)
def test_contract_wraps_rpc_failures(error: Exception) -> None:
    contract = Web3AllocationContract(_connection(_FakeWeb3(outcomes={"entityByAddress": error})))

    with pytest.raises(ChainReadError, match="entityByAddress") as excinfo:
        asyncio.run(contract.entity_by_address(ADDRESS))

    assert excinfo.value.__cause__ is error


def test_supports_entity_state_checks_bytecode_selector() -> None:
    with_selector = _FakeWeb3(code=SELECTOR_CODE)
    without_selector = _FakeWeb3(code=b"\x60\x80\x60\x40")

    assert asyncio.run(Web3AllocationContract(_connection(with_selector)).supports_entity_state())
    assert not asyncio.run(
        Web3AllocationContract(_connection(without_selector)).supports_entity_state()
    )


def test_supports_entity_state_follows_eip1967_implementation_slot() -> None:
    w3 = _FakeWeb3(
        code=DELEGATING_STUB,
        implementations={IMPLEMENTATION: SELECTOR_CODE},
        storage={EIP1967_IMPLEMENTATION_SLOT: bytes(12) + bytes.fromhex(IMPLEMENTATION[2:])},
    )

    assert asyncio.run(Web3AllocationContract(_connection(w3)).supports_entity_state())
    assert w3.eth.code_requests[-1] == IMPLEMENTATION


def test_supports_entity_state_follows_minimal_proxy() -> None:
    clone = (
        MINIMAL_PROXY_PREFIX
        + bytes.fromhex(IMPLEMENTATION[2:])
        + bytes.fromhex("5af43d82803e903d91602b57fd5bf3")
    )
    w3 = _FakeWeb3(code=clone, implementations={IMPLEMENTATION: SELECTOR_CODE})

    assert asyncio.run(Web3AllocationContract(_connection(w3)).supports_entity_state())


def test_supports_entity_state_false_when_implementation_lacks_selector() -> None:
    w3 = _FakeWeb3(
        code=DELEGATING_STUB,
        implementations={IMPLEMENTATION: b"\x60\x80\x60\x40"},
        storage={EIP1967_IMPLEMENTATION_SLOT: bytes(12) + bytes.fromhex(IMPLEMENTATION[2:])},
    )

    assert not asyncio.run(Web3AllocationContract(_connection(w3)).supports_entity_state())


def test_block_number_and_allocation_events() -> None:
    w3 = _FakeWeb3(logs=[_log(ENTITY_A.value, 7, 1_000)], head=1_234)
    contract = Web3AllocationContract(_connection(w3))

    head = asyncio.run(contract.block_number())
    events = asyncio.run(contract.allocation_events(from_block=1, to_block=50_000, entity_id=ENTITY_A))

    assert head == 1_234
    assert [event.accepted_amount for event in events] == [7]
    assert w3.contract.events.AllocationSet.queries == [
        {"from_block": 1, "to_block": 50_000, "argument_filters": {"entityID": ENTITY_A.value}}
    ]


def test_allocation_events_failure_is_chain_read_error() -> None:
    w3 = _FakeWeb3(logs=ValueError("query returned more than 10000 results"))
    contract = Web3AllocationContract(_connection(w3))

    with pytest.raises(ChainReadError, match="10000 results"):
        asyncio.run(contract.allocation_events(from_block=1, to_block=2))


def test_ens_resolver_returns_address() -> None:
    resolver = EnsNameResolver(_connection(_FakeWeb3(ens=ADDRESS)))

    assert asyncio.run(resolver.address_for_name("vitalik.eth")) == ADDRESS


def test_ens_resolver_maps_errors() -> None:
    invalid = EnsNameResolver(_connection(_FakeWeb3(ens=InvalidName("bad label"))))
    broken = EnsNameResolver(_connection(_FakeWeb3(ens=aiohttp.ClientConnectionError("refused"))))

    with pytest.raises(InvalidAddressFormat, match="bad label"):
        asyncio.run(invalid.address_for_name("bad..eth"))
    with pytest.raises(NameResolutionTransportError, match="refused"):
        asyncio.run(broken.address_for_name("vitalik.eth"))


def test_connection_closes_provider() -> None:
    w3 = _FakeWeb3()

    async def open_and_close() -> None:
        async with _connection(w3):
            pass

    asyncio.run(open_and_close())

    assert w3.provider.disconnected is True
