"""One-way progress notifications from the engine to its caller."""

from __future__ import annotations

from typing import Protocol, runtime_checkable


@runtime_checkable
class ProgressSink(Protocol):
    def __call__(self, message: str) -> None:
        ...


def null_progress(message: str) -> None:
    del message


__all__ = ["ProgressSink", "null_progress"]
