from __future__ import annotations

import pytest

from tests.support.fakes import (
    FakeContract,
    FakeNameResolver,
    FakeOffChainSource,
    RecordingProgress,
)


@pytest.fixture(autouse=True)
def _clear_allocheck_env(monkeypatch: pytest.MonkeyPatch) -> None:
    for name in (
        "ALLOCHECK_RPC_URL",
        "ALLOCHECK_CONTRACT_ADDRESS",
        "ALLOCHECK_START_BLOCK",
        "ALLOCHECK_LOG_CHUNK_SIZE",
        "ALLOCHECK_SCAN_CONCURRENCY",
        "ALLOCHECK_STATE_SOURCE",
        "ALLOCHECK_RPC_TIMEOUT_SECONDS",
        "ALLOCHECK_RPC_RATE_LIMIT",
        "ALLOCHECK_ALLOCATION_API_URL",
        "ALLOCHECK_ALLOCATION_API_TIMEOUT_SECONDS",
    ):
        monkeypatch.delenv(name, raising=False)


@pytest.fixture
def fake_contract() -> FakeContract:
    return FakeContract()


@pytest.fixture
def fake_names() -> FakeNameResolver:
    return FakeNameResolver()


@pytest.fixture
def fake_off_chain() -> FakeOffChainSource:
    return FakeOffChainSource()


@pytest.fixture
def progress() -> RecordingProgress:
    return RecordingProgress()
