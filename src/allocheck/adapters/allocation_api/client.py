"""HTTP client for the off-chain allocation API.

Lookups go through a relay exposing ``GET /allocation?entityId=...``. The API is
advisory: every failure (status, transport, payload) is reported on the
returned ``OffChainFetchResult`` and never raised to the caller.
"""

from __future__ import annotations

import json
from logging import getLogger
from typing import TYPE_CHECKING

import httpx
from pydantic import ValidationError

from allocheck.adapters.http_resilience import ResilientClient
from allocheck.config.allocation_api import build_allocation_api_resilience
from allocheck.domain.errors import OffChainFetchError
from allocheck.domain.model import OffChainAllocation, OffChainFetchResult
from allocheck.domain.ports.allocation_api import OffChainAllocationSource

from .schema import AllocationPayload, ErrorPayload

if TYPE_CHECKING:
    from collections.abc import Callable

    from allocheck.config.allocation_api import AllocationApiConfig
    from allocheck.config.http_resilience import ResilienceConfig
    from allocheck.domain.model import EntityID

log = getLogger(__name__)

ALLOCATION_PATH = "allocation"


class AllocationApiClient:
    """Fetch confirmed allocations for an entity from the allocation API."""

    def __init__(
        self,
        *,
        config: AllocationApiConfig | None = None,
        client_factory: Callable[[ResilienceConfig], ResilientClient] | None = None,
    ) -> None:
        self._resilience = config.resilience if config else build_allocation_api_resilience()
        self._client_factory = client_factory or ResilientClient

    async def fetch_confirmed(self, entity_id: EntityID) -> OffChainFetchResult:
        try:
            payload = await self._request_allocation(entity_id)
        except OffChainFetchError as exc:
            log.warning("Allocation API lookup for %s failed: %s", entity_id, exc)
            return OffChainFetchResult(error=str(exc))

        allocation = OffChainAllocation(
            usdt_allocation=payload.usdt_allocation,
            token_allocation=payload.token_allocation,
            clearing_price=payload.clearing_price,
        )
        if not allocation.has_allocation:
            log.debug("Allocation API reports no allocation for %s", entity_id)
            return OffChainFetchResult()
        return OffChainFetchResult(allocation=allocation)

    async def _request_allocation(self, entity_id: EntityID) -> AllocationPayload:
        params = httpx.QueryParams({"entityId": entity_id.hex})
        try:
            async with self._client_factory(self._resilience) as client:
                response = await client.get(ALLOCATION_PATH, params=params)
        except httpx.HTTPError as exc:
            raise OffChainFetchError(f"Allocation API request failed: {exc!r}") from exc

        if not response.is_success:
            raise OffChainFetchError(
                f"Allocation API returned HTTP {response.status_code}: {_body_excerpt(response)}"
            )

        try:
            payload = response.json()
        except (json.JSONDecodeError, UnicodeDecodeError) as exc:
            raise OffChainFetchError(f"Allocation API returned a non-JSON body: {exc}") from exc

        if not isinstance(payload, dict):
            raise OffChainFetchError("Unexpected allocation API response payload")

        if "error" in payload:
            try:
                error_payload = ErrorPayload.model_validate(payload)
            except ValidationError:
                raise OffChainFetchError(f"Allocation API error: {payload['error']!r}") from None
            raise OffChainFetchError(f"Allocation API error: {error_payload.error}")

        try:
            return AllocationPayload.model_validate(payload)
        except ValidationError as exc:
            raise OffChainFetchError(f"Malformed allocation API payload: {exc}") from exc


def _body_excerpt(response: httpx.Response, limit: int = 200) -> str:
    text = response.text.strip()
    return text[:limit] if text else "<empty body>"


if TYPE_CHECKING:
    _source_check: OffChainAllocationSource = AllocationApiClient()
