"""Public interface for the Ethereum (web3) adapters."""

from __future__ import annotations

from .connection import ChainConnection
from .contract import Web3AllocationContract, parse_allocation_logs, parse_entity_state
from .ens import EnsNameResolver

__all__ = [
    "ChainConnection",
    "EnsNameResolver",
    "Web3AllocationContract",
    "parse_allocation_logs",
    "parse_entity_state",
]
