"""Ethereum RPC and allocation contract configuration values."""

from __future__ import annotations

from dataclasses import dataclass
from typing import Final, Literal, cast, get_args

from eth_utils import is_address, to_checksum_address

from .env import env_float, env_int, env_str
from .errors import ConfigurationError
from .http_resilience import RateLimit

type StateReadMode = Literal["auto", "direct", "events"]

DEFAULT_RPC_URL: Final[str] = "https://ethereum-rpc.publicnode.com"
DEFAULT_CONTRACT_ADDRESS: Final[str] = "0xab02bf85a7a851b6a379ea3d5bd3b9b4f5dd8461"
DEFAULT_START_BLOCK: Final[int] = 21_280_000
# Public RPC providers reject eth_getLogs ranges wider than this.
DEFAULT_LOG_CHUNK_SIZE: Final[int] = 50_000
DEFAULT_RPC_TIMEOUT_SECONDS: Final[float] = 30.0
DEFAULT_RPC_CALLS_PER_SECOND: Final[int] = 10

STATE_READ_MODES: Final[tuple[str, ...]] = get_args(StateReadMode.__value__)


@dataclass(frozen=True, slots=True)
class ChainConfig:
    """Connection and scan settings for the on-chain allocation contract."""

    rpc_url: str = DEFAULT_RPC_URL
    contract_address: str = to_checksum_address(DEFAULT_CONTRACT_ADDRESS)
    start_block: int = DEFAULT_START_BLOCK
    log_chunk_size: int = DEFAULT_LOG_CHUNK_SIZE
    scan_concurrency: int = 1
    state_read_mode: StateReadMode = "auto"
    timeout_seconds: float = DEFAULT_RPC_TIMEOUT_SECONDS
    ratelimit: RateLimit | None = RateLimit(max_calls=DEFAULT_RPC_CALLS_PER_SECOND, per_seconds=1.0)


def parse_state_read_mode(value: str) -> StateReadMode:
    normalized = value.strip().lower()
    if normalized not in STATE_READ_MODES:
        allowed = ", ".join(STATE_READ_MODES)
        raise ConfigurationError(f"Unknown state read mode {value!r} (expected one of: {allowed})")
    return cast("StateReadMode", normalized)


def get_chain_config() -> ChainConfig:
    contract = env_str("ALLOCHECK_CONTRACT_ADDRESS", DEFAULT_CONTRACT_ADDRESS)
    if not is_address(contract):
        raise ConfigurationError(f"ALLOCHECK_CONTRACT_ADDRESS is not an address: {contract!r}")

    calls_per_second = env_int("ALLOCHECK_RPC_RATE_LIMIT", DEFAULT_RPC_CALLS_PER_SECOND, minimum=0)
    return ChainConfig(
        rpc_url=env_str("ALLOCHECK_RPC_URL", DEFAULT_RPC_URL),
        contract_address=to_checksum_address(contract),
        start_block=env_int("ALLOCHECK_START_BLOCK", DEFAULT_START_BLOCK, minimum=0),
        log_chunk_size=env_int("ALLOCHECK_LOG_CHUNK_SIZE", DEFAULT_LOG_CHUNK_SIZE, minimum=1),
        scan_concurrency=env_int("ALLOCHECK_SCAN_CONCURRENCY", 1, minimum=1),
        state_read_mode=parse_state_read_mode(env_str("ALLOCHECK_STATE_SOURCE", "auto")),
        timeout_seconds=env_float(
            "ALLOCHECK_RPC_TIMEOUT_SECONDS", DEFAULT_RPC_TIMEOUT_SECONDS, positive=True
        ),
        ratelimit=(
            RateLimit(max_calls=calls_per_second, per_seconds=1.0) if calls_per_second else None
        ),
    )
