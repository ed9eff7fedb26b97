"""Orchestrator for allocation resolution.

The engine sequences identity resolution, entity location, the on-chain state
read and the off-chain lookup, then hands both signals to ``reconcile``. It
holds no presentation state: callers receive a ``ResolutionOutcome`` and may
observe phases through a ``ProgressSink``.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from logging import getLogger
from typing import TYPE_CHECKING

from .errors import AllocationError, OffChainFetchError
from .identity import IdentityResolver
from .locator import EntityLocator
from .model import AllocationRecord, OffChainFetchResult, ResolutionFailure, ResolutionSuccess
from .onchain_state import DEFAULT_MAX_CHUNK_WIDTH, select_state_reader
from .ports.progress import null_progress
from .reconciliation import reconcile

if TYPE_CHECKING:
    from allocheck.config.chain import StateReadMode

    from .model import BlockNumber, ResolutionOutcome, ResolvedAllocation
    from .ports.allocation_api import OffChainAllocationSource
    from .ports.chain import AllocationContract
    from .ports.naming import NameResolver
    from .ports.progress import ProgressSink

log = getLogger(__name__)


@dataclass(slots=True)
class AllocationResolutionEngine:
    """Resolve one identity per ``resolve`` call; safe to reuse across calls."""

    contract: AllocationContract
    names: NameResolver
    off_chain: OffChainAllocationSource
    start_block: BlockNumber
    state_read_mode: StateReadMode = "auto"
    max_chunk_width: int = DEFAULT_MAX_CHUNK_WIDTH
    scan_concurrency: int = 1
    progress: ProgressSink = field(default=null_progress)

    async def resolve(self, identity: str) -> ResolutionOutcome:
        try:
            allocation = await self._resolve(identity)
        except AllocationError as exc:
            log.info("Resolution of %r failed: %s: %s", identity, type(exc).__name__, exc)
            return ResolutionFailure(exc)
        return ResolutionSuccess(allocation)

    async def _resolve(self, identity: str) -> ResolvedAllocation:
        self.progress("resolving identity")
        address = await IdentityResolver(self.names, progress=self.progress).resolve(identity)

        self.progress("locating entity")
        entity_id = await EntityLocator(self.contract).locate(address)
        if entity_id.is_zero:
            return reconcile(
                address=address,
                entity_id=entity_id,
                on_chain=AllocationRecord.empty(),
                off_chain=OffChainFetchResult(),
            )

        self.progress("reading allocation state")
        reader = await select_state_reader(
            self.contract,
            mode=self.state_read_mode,
            start_block=self.start_block,
            max_chunk_width=self.max_chunk_width,
            max_concurrency=self.scan_concurrency,
            progress=self.progress,
        )
        on_chain = await reader.read(entity_id)

        self.progress("fetching off-chain allocation")
        try:
            off_chain = await self.off_chain.fetch_confirmed(entity_id)
        except OffChainFetchError as exc:
            off_chain = OffChainFetchResult(error=str(exc))
        if off_chain.error is not None:
            log.warning("Off-chain allocation unavailable for %s: %s", entity_id, off_chain.error)

        self.progress("reconciling")
        return reconcile(
            address=address,
            entity_id=entity_id,
            on_chain=on_chain,
            off_chain=off_chain,
        )
