"""Strategies for obtaining an entity's on-chain allocation record.

Two interchangeable readers implement ``StateReader``:

* ``DirectStateReader`` issues a single ``entityStateByID`` call.
* ``EventScanStateReader`` rebuilds the accepted amount from ``AllocationSet``
  logs when the deployed contract only exposes events. The scan walks
  ``[start_block, head]`` in chunks no wider than the provider's log-range
  ceiling; the latest matching event in block order wins.

``select_state_reader`` picks between them based on the configured mode and,
in ``auto`` mode, on what the deployed bytecode exposes.
"""

from __future__ import annotations

import asyncio
from dataclasses import dataclass, field
from logging import getLogger
from typing import TYPE_CHECKING, Protocol

from .errors import ChainReadError
from .model import AllocationRecord, BlockRange, StateSource
from .ports.progress import null_progress

if TYPE_CHECKING:
    from collections.abc import Iterable, Sequence

    from allocheck.config.chain import StateReadMode

    from .model import BlockNumber, EntityID, HistoricalAllocationEvent
    from .ports.chain import AllocationContract
    from .ports.progress import ProgressSink

log = getLogger(__name__)

DEFAULT_MAX_CHUNK_WIDTH = 50_000


class StateReader(Protocol):
    async def read(self, entity_id: EntityID) -> AllocationRecord:
        ...


def plan_chunks(start: BlockNumber, end: BlockNumber, max_width: int) -> list[BlockRange]:
    """Partition the closed interval ``[start, end]`` into ascending chunks.

    Every chunk spans at most ``max_width`` blocks; only the last may be shorter.
    An empty list is returned when ``start > end``.
    """

    if max_width < 1:
        raise ValueError(f"Chunk width must be at least 1, got {max_width}")
    chunks: list[BlockRange] = []
    cursor = start
    while cursor <= end:
        chunk_end = min(cursor + max_width - 1, end)
        chunks.append(BlockRange(cursor, chunk_end))
        cursor = chunk_end + 1
    return chunks


def latest_event_for(
    events: Iterable[HistoricalAllocationEvent],
    entity_id: EntityID,
) -> HistoricalAllocationEvent | None:
    """Return the highest ``(block, log index)`` event for ``entity_id``, if any."""

    matching = [event for event in events if event.entity_id.value == entity_id.value]
    if not matching:
        return None
    return max(matching, key=lambda event: event.sort_key)


def record_from_events(
    events: Iterable[HistoricalAllocationEvent],
    entity_id: EntityID,
) -> AllocationRecord:
    latest = latest_event_for(events, entity_id)
    if latest is None:
        return AllocationRecord.empty(StateSource.EVENTS)
    # Bid time and refund/cancel flags are not carried by AllocationSet.
    return AllocationRecord(
        accepted_amount=latest.accepted_amount,
        source=StateSource.EVENTS,
        as_of_block=latest.block_number,
        transaction_hash=latest.transaction_hash,
    )


@dataclass(slots=True)
class DirectStateReader:
    contract: AllocationContract

    async def read(self, entity_id: EntityID) -> AllocationRecord:
        record = await self.contract.entity_state_by_id(entity_id)
        log.debug("Direct state for %s: %s", entity_id, record)
        return record


@dataclass(slots=True)
class EventScanStateReader:
    """Rebuild allocation state from ``AllocationSet`` logs.

    Chunks are queried in ascending block order. With ``max_concurrency > 1`` up to
    that many chunk queries run at once, but the accumulated events are still
    ordered by block and log index before the last match is picked, so completion
    order never affects the result. A failing chunk aborts the whole scan and
    discards everything gathered so far.
    """

    contract: AllocationContract
    start_block: BlockNumber
    max_chunk_width: int = DEFAULT_MAX_CHUNK_WIDTH
    max_concurrency: int = 1
    progress: ProgressSink = field(default=null_progress)

    async def read(self, entity_id: EntityID) -> AllocationRecord:
        head = await self.contract.block_number()
        chunks = plan_chunks(self.start_block, head, self.max_chunk_width)
        log.info(
            "Scanning AllocationSet logs over blocks %s..%s in %s chunk(s)",
            self.start_block,
            head,
            len(chunks),
        )
        events = await self.scan(chunks, entity_id)
        record = record_from_events(events, entity_id)
        log.info(
            "Scan finished: %s event(s) collected for %s, accepted_amount=%s",
            len(events),
            entity_id,
            record.accepted_amount,
        )
        return record

    async def scan(
        self,
        chunks: Sequence[BlockRange],
        entity_id: EntityID,
    ) -> list[HistoricalAllocationEvent]:
        if self.max_concurrency < 1:
            raise ValueError(f"max_concurrency must be at least 1, got {self.max_concurrency}")

        accumulated: list[HistoricalAllocationEvent] = []
        scanned_through: BlockNumber | None = None
        total = len(chunks)
        for offset in range(0, total, self.max_concurrency):
            window = chunks[offset : offset + self.max_concurrency]
            # Cancellation checkpoint between chunk queries.
            await asyncio.sleep(0)
            for position, chunk in enumerate(window, start=offset + 1):
                self.progress(f"scanning blocks {chunk.start}..{chunk.end} ({position}/{total})")
            try:
                batches = await self._query_window(window, entity_id)
            except ChainReadError as exc:
                log.warning(
                    "Log scan failed after block %s; discarding %s accumulated event(s)",
                    scanned_through,
                    len(accumulated),
                )
                raise ChainReadError(
                    f"Log query failed for blocks {window[0].start}..{window[-1].end}: {exc}",
                    scanned_through=scanned_through,
                ) from exc
            for batch in batches:
                accumulated.extend(batch)
            scanned_through = window[-1].end

        accumulated.sort(key=lambda event: event.sort_key)
        return accumulated

    async def _query_window(
        self,
        window: Sequence[BlockRange],
        entity_id: EntityID,
    ) -> list[list[HistoricalAllocationEvent]]:
        if len(window) == 1:
            chunk = window[0]
            return [await self._query_chunk(chunk, entity_id)]

        try:
            async with asyncio.TaskGroup() as group:
                tasks = [
                    group.create_task(self._query_chunk(chunk, entity_id)) for chunk in window
                ]
        except ExceptionGroup as failures:
            chain_errors = [exc for exc in failures.exceptions if isinstance(exc, ChainReadError)]
            if not chain_errors:
                raise
            raise chain_errors[0] from failures
        return [task.result() for task in tasks]

    async def _query_chunk(
        self,
        chunk: BlockRange,
        entity_id: EntityID,
    ) -> list[HistoricalAllocationEvent]:
        events = await self.contract.allocation_events(
            from_block=chunk.start,
            to_block=chunk.end,
            entity_id=entity_id,
        )
        log.debug("Blocks %s..%s returned %s event(s)", chunk.start, chunk.end, len(events))
        return events


async def select_state_reader(
    contract: AllocationContract,
    *,
    mode: StateReadMode = "auto",
    start_block: BlockNumber,
    max_chunk_width: int = DEFAULT_MAX_CHUNK_WIDTH,
    max_concurrency: int = 1,
    progress: ProgressSink = null_progress,
) -> StateReader:
    """Return the direct reader when available (or forced), else the event scanner."""

    use_direct: bool
    if mode == "direct":
        use_direct = True
    elif mode == "events":
        use_direct = False
    else:
        use_direct = await contract.supports_entity_state()
        log.debug("Contract exposes entityStateByID: %s", use_direct)

    if use_direct:
        return DirectStateReader(contract)
    return EventScanStateReader(
        contract,
        start_block=start_block,
        max_chunk_width=max_chunk_width,
        max_concurrency=max_concurrency,
        progress=progress,
    )
