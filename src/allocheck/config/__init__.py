"""Application configuration helpers."""

from __future__ import annotations

from .allocation_api import (
    AllocationApiConfig,
    build_allocation_api_resilience,
    get_allocation_api_config,
)
from .chain import (
    STATE_READ_MODES,
    ChainConfig,
    StateReadMode,
    get_chain_config,
    parse_state_read_mode,
)
from .env import env_float, env_int, env_str
from .errors import ConfigurationError
from .http_resilience import RateLimit, ResilienceConfig, RetryPolicy
from .logging import configure_logging

__all__ = [
    "STATE_READ_MODES",
    "AllocationApiConfig",
    "ChainConfig",
    "ConfigurationError",
    "RateLimit",
    "ResilienceConfig",
    "RetryPolicy",
    "StateReadMode",
    "build_allocation_api_resilience",
    "configure_logging",
    "env_float",
    "env_int",
    "env_str",
    "get_allocation_api_config",
    "get_chain_config",
    "parse_state_read_mode",
]
