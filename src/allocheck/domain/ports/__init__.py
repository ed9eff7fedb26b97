"""Domain port definitions for adapters."""

from __future__ import annotations

from .allocation_api import OffChainAllocationSource
from .chain import AllocationContract
from .naming import NameResolver
from .progress import ProgressSink, null_progress

__all__ = [
    "AllocationContract",
    "NameResolver",
    "OffChainAllocationSource",
    "ProgressSink",
    "null_progress",
]
