from __future__ import annotations

import asyncio

import pytest

from allocheck.domain.errors import ChainReadError
from allocheck.domain.model import AllocationRecord, BlockRange, StateSource
from allocheck.domain.onchain_state import (
    DirectStateReader,
    EventScanStateReader,
    latest_event_for,
    plan_chunks,
    select_state_reader,
)
from tests.support.fakes import ENTITY_A, ENTITY_B, FakeContract, RecordingProgress, make_event

START = 1_000_000


def test_plan_chunks_splits_range_at_ceiling() -> None:
    chunks = plan_chunks(START, START + 119_999, 50_000)

    assert chunks == [
        BlockRange(1_000_000, 1_049_999),
        BlockRange(1_050_000, 1_099_999),
        BlockRange(1_100_000, 1_119_999),
    ]
    assert [chunk.width for chunk in chunks] == [50_000, 50_000, 20_000]


def test_plan_chunks_edge_cases() -> None:
    assert plan_chunks(10, 10, 50_000) == [BlockRange(10, 10)]
    assert plan_chunks(11, 10, 50_000) == []
    assert plan_chunks(0, 99, 50) == [BlockRange(0, 49), BlockRange(50, 99)]
    with pytest.raises(ValueError, match="at least 1"):
        plan_chunks(0, 10, 0)


def test_no_chunk_exceeds_ceiling() -> None:
    for chunk in plan_chunks(7, 1_234_567, 50_000):
        assert chunk.width <= 50_000


def test_latest_event_uses_block_then_log_index() -> None:
    events = [
        make_event(ENTITY_A, 5, 200, log_index=3),
        make_event(ENTITY_A, 7, 200, log_index=9),
        make_event(ENTITY_A, 1, 100),
        make_event(ENTITY_B, 99, 300),
    ]

    latest = latest_event_for(events, ENTITY_A)

    assert latest is not None
    assert latest.accepted_amount == 7


def test_event_scan_queries_chunks_in_ascending_order(
    fake_contract: FakeContract,
    progress: RecordingProgress,
) -> None:
    fake_contract.head = START + 119_999
    reader = EventScanStateReader(
        fake_contract,
        start_block=START,
        max_chunk_width=50_000,
        progress=progress,
    )

    record = asyncio.run(reader.read(ENTITY_A))

    assert fake_contract.log_queries == [
        (1_000_000, 1_049_999),
        (1_050_000, 1_099_999),
        (1_100_000, 1_119_999),
    ]
    assert progress.messages == [
        "scanning blocks 1000000..1049999 (1/3)",
        "scanning blocks 1050000..1099999 (2/3)",
        "scanning blocks 1100000..1119999 (3/3)",
    ]
    assert record == AllocationRecord.empty(StateSource.EVENTS)


def test_event_scan_last_matching_event_wins(fake_contract: FakeContract) -> None:
    fake_contract.head = START + 119_999
    fake_contract.events = [
        make_event(ENTITY_A, 1_000_000, START + 10),
        make_event(ENTITY_A, 3_000_000, START + 60_000),
        make_event(ENTITY_B, 9_000_000, START + 110_000),
    ]
    reader = EventScanStateReader(fake_contract, start_block=START, max_chunk_width=50_000)

    record = asyncio.run(reader.read(ENTITY_A))

    assert record.accepted_amount == 3_000_000
    assert record.as_of_block == START + 60_000
    assert record.transaction_hash == f"0x{START + 60_000:064x}"
    assert record.bid_timestamp is None
    assert record.refunded is False
    assert record.cancelled is False
    assert record.source is StateSource.EVENTS


def test_event_scan_ignores_completion_order_when_parallel(fake_contract: FakeContract) -> None:
    fake_contract.head = START + 119_999
    fake_contract.events = [
        make_event(ENTITY_A, 1, START + 5),
        make_event(ENTITY_A, 2, START + 55_000),
        make_event(ENTITY_A, 3, START + 105_000),
    ]
    # Later chunks finish first.
    fake_contract.delays = {
        (1_000_000, 1_049_999): 0.03,
        (1_050_000, 1_099_999): 0.02,
        (1_100_000, 1_119_999): 0.0,
    }
    reader = EventScanStateReader(
        fake_contract,
        start_block=START,
        max_chunk_width=50_000,
        max_concurrency=3,
    )

    events = asyncio.run(reader.scan(plan_chunks(START, START + 119_999, 50_000), ENTITY_A))
    record = asyncio.run(reader.read(ENTITY_A))

    assert [event.accepted_amount for event in events] == [1, 2, 3]
    assert record.accepted_amount == 3


def test_event_scan_failure_discards_partial_results(fake_contract: FakeContract) -> None:
    fake_contract.head = START + 119_999
    fake_contract.events = [make_event(ENTITY_A, 1, START + 5)]
    fake_contract.fail_ranges = {(1_050_000, 1_099_999)}
    reader = EventScanStateReader(fake_contract, start_block=START, max_chunk_width=50_000)

    with pytest.raises(ChainReadError, match="range too large") as excinfo:
        asyncio.run(reader.read(ENTITY_A))

    assert excinfo.value.scanned_through == 1_049_999
    assert (1_100_000, 1_119_999) not in fake_contract.log_queries


def test_event_scan_failure_in_parallel_window_raises_chain_error(
    fake_contract: FakeContract,
) -> None:
    fake_contract.head = START + 119_999
    fake_contract.fail_ranges = {(1_100_000, 1_119_999)}
    reader = EventScanStateReader(
        fake_contract,
        start_block=START,
        max_chunk_width=50_000,
        max_concurrency=3,
    )

    with pytest.raises(ChainReadError) as excinfo:
        asyncio.run(reader.read(ENTITY_A))

    assert excinfo.value.scanned_through is None


def test_event_scan_can_be_cancelled_between_chunks(fake_contract: FakeContract) -> None:
    fake_contract.head = START + 119_999
    fake_contract.block_on_range = (1_050_000, 1_099_999)
    reader = EventScanStateReader(fake_contract, start_block=START, max_chunk_width=50_000)

    async def run_and_cancel() -> None:
        task = asyncio.create_task(reader.read(ENTITY_A))
        while len(fake_contract.log_queries) < 2:
            await asyncio.sleep(0)
        task.cancel()
        with pytest.raises(asyncio.CancelledError):
            await task

    asyncio.run(run_and_cancel())

    assert fake_contract.log_queries == [(1_000_000, 1_049_999), (1_050_000, 1_099_999)]


def test_event_scan_with_start_after_head_finds_nothing(fake_contract: FakeContract) -> None:
    fake_contract.head = START - 1
    reader = EventScanStateReader(fake_contract, start_block=START)

    record = asyncio.run(reader.read(ENTITY_A))

    assert record.accepted_amount == 0
    assert fake_contract.log_queries == []


def test_direct_reader_returns_contract_state(fake_contract: FakeContract) -> None:
    state = AllocationRecord(
        accepted_amount=2_500_000,
        bid_timestamp=1_700_000_000,
        source=StateSource.DIRECT,
    )
    fake_contract.states[ENTITY_A.value] = state

    assert asyncio.run(DirectStateReader(fake_contract).read(ENTITY_A)) == state


@pytest.mark.parametrize(
    ("mode", "exposes_state", "expected"),
    [
        ("auto", True, DirectStateReader),
        ("auto", False, EventScanStateReader),
        ("direct", False, DirectStateReader),
        ("events", True, EventScanStateReader),
    ],
)
def test_select_state_reader(
    mode: str,
    exposes_state: bool,
    expected: type,
    fake_contract: FakeContract,
) -> None:
    fake_contract.exposes_state = exposes_state

    reader = asyncio.run(
        select_state_reader(fake_contract, mode=mode, start_block=START)  # type: ignore[arg-type]
    )

    assert isinstance(reader, expected)
