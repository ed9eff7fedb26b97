"""Application orchestration entry points."""

from __future__ import annotations

import asyncio
from dataclasses import replace
from logging import getLogger
from typing import TYPE_CHECKING

from allocheck.adapters.allocation_api import AllocationApiClient
from allocheck.adapters.ethereum import ChainConnection, EnsNameResolver, Web3AllocationContract
from allocheck.config import get_allocation_api_config, get_chain_config
from allocheck.domain.model import ResolutionSuccess
from allocheck.domain.ports.progress import null_progress
from allocheck.domain.resolution import AllocationResolutionEngine

if TYPE_CHECKING:
    from allocheck.config import AllocationApiConfig, ChainConfig, StateReadMode
    from allocheck.domain.model import ResolutionOutcome
    from allocheck.domain.ports.allocation_api import OffChainAllocationSource
    from allocheck.domain.ports.progress import ProgressSink


log = getLogger(__name__)


def build_engine(
    connection: ChainConnection,
    *,
    off_chain: OffChainAllocationSource,
    progress: ProgressSink = null_progress,
) -> AllocationResolutionEngine:
    config = connection.config
    return AllocationResolutionEngine(
        contract=Web3AllocationContract(connection),
        names=EnsNameResolver(connection),
        off_chain=off_chain,
        start_block=config.start_block,
        state_read_mode=config.state_read_mode,
        max_chunk_width=config.log_chunk_size,
        scan_concurrency=config.scan_concurrency,
        progress=progress,
    )


async def check_allocation_async(
    identity: str,
    *,
    chain_config: ChainConfig,
    api_config: AllocationApiConfig,
    progress: ProgressSink = null_progress,
    timeout_seconds: float | None = None,
) -> ResolutionOutcome:
    """Resolve ``identity`` within an optional overall deadline.

    Raises ``TimeoutError`` when the deadline expires; the in-flight RPC or HTTP
    call is cancelled and the connection is closed.
    """

    async with ChainConnection(chain_config) as connection:
        engine = build_engine(
            connection,
            off_chain=AllocationApiClient(config=api_config),
            progress=progress,
        )
        async with asyncio.timeout(timeout_seconds):
            return await engine.resolve(identity)


def check_allocation(
    identity: str,
    *,
    progress: ProgressSink = null_progress,
    timeout_seconds: float | None = None,
    state_read_mode: StateReadMode | None = None,
    log_chunk_size: int | None = None,
    scan_concurrency: int | None = None,
) -> ResolutionOutcome:
    """Resolve ``identity`` using configuration from the environment."""

    chain_config = get_chain_config()
    overrides: dict[str, object] = {
        "state_read_mode": state_read_mode,
        "log_chunk_size": log_chunk_size,
        "scan_concurrency": scan_concurrency,
    }
    chain_config = replace(
        chain_config,
        **{key: value for key, value in overrides.items() if value is not None},  # type: ignore[arg-type]
    )
    log.info(
        "Checking allocation for %s: contract=%s, state_source=%s, rpc=%s",
        identity,
        chain_config.contract_address,
        chain_config.state_read_mode,
        chain_config.rpc_url,
    )

    outcome = asyncio.run(
        check_allocation_async(
            identity,
            chain_config=chain_config,
            api_config=get_allocation_api_config(),
            progress=progress,
            timeout_seconds=timeout_seconds,
        )
    )
    if isinstance(outcome, ResolutionSuccess):
        allocation = outcome.allocation
        log.info(
            "Finished allocation check: found=%s, amount=%s, entity=%s",
            allocation.found,
            allocation.amount,
            allocation.entity_id,
        )
    return outcome
