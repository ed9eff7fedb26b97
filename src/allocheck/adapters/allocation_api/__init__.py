"""Public interface for the off-chain allocation API adapter."""

from __future__ import annotations

from .client import AllocationApiClient
from .schema import AllocationPayload

__all__ = ["AllocationApiClient", "AllocationPayload"]
