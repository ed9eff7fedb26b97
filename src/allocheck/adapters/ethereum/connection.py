"""Explicitly owned connection to an Ethereum JSON-RPC endpoint."""

from __future__ import annotations

from logging import getLogger
from typing import TYPE_CHECKING

import aiohttp
from aiolimiter import AsyncLimiter
from web3 import AsyncHTTPProvider, AsyncWeb3
from web3.exceptions import Web3Exception

if TYPE_CHECKING:
    from collections.abc import Awaitable, Callable
    from types import TracebackType

    from allocheck.config.chain import ChainConfig

log = getLogger(__name__)

#: Exceptions an RPC round trip may raise; adapters translate these into domain errors.
RPC_ERRORS: tuple[type[Exception], ...] = (
    Web3Exception,
    aiohttp.ClientError,
    TimeoutError,
    OSError,
    ValueError,
)


class ChainConnection:
    """Owns one ``AsyncWeb3`` handle plus its rate limiter.

    Construct one per request (or per CLI run), share it between the contract and
    name adapters, and close it with ``async with`` or ``aclose``.
    """

    def __init__(self, config: ChainConfig, *, w3: AsyncWeb3 | None = None) -> None:
        self.config = config
        # web3's provider-level retries are disabled: callers retry whole requests.
        self.w3 = w3 or AsyncWeb3(
            AsyncHTTPProvider(
                config.rpc_url,
                request_kwargs={"timeout": aiohttp.ClientTimeout(total=config.timeout_seconds)},
                exception_retry_configuration=None,
            )
        )
        self._limiter: AsyncLimiter | None = (
            AsyncLimiter(config.ratelimit.max_calls, config.ratelimit.per_seconds)
            if config.ratelimit
            else None
        )

    async def __aenter__(self) -> ChainConnection:
        return self

    async def __aexit__(
        self,
        exc_type: type[BaseException] | None,
        exc: BaseException | None,
        tb: TracebackType | None,
    ) -> None:
        await self.aclose()

    async def aclose(self) -> None:
        await self.w3.provider.disconnect()

    async def call[T](self, func: Callable[[], Awaitable[T]]) -> T:
        """Run one RPC round trip under the connection's rate limit."""

        if self._limiter is None:
            return await func()
        async with self._limiter:
            return await func()
