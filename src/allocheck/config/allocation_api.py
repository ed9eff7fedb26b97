"""Off-chain allocation API configuration values."""

from __future__ import annotations

from dataclasses import dataclass

import httpx

from .env import env_float, env_str
from .errors import ConfigurationError
from .http_resilience import RateLimit, ResilienceConfig, RetryPolicy

# Outside a browser there is no cross-origin restriction, so the upstream API doubles
# as the relay. Point this at a same-origin relay when one is deployed.
DEFAULT_ALLOCATION_API_URL = "https://token-api.megaeth.com/api"
ALLOCATION_API_TIMEOUT_SECONDS = 10.0


@dataclass(frozen=True, slots=True)
class AllocationApiConfig:
    resilience: ResilienceConfig


def build_allocation_api_resilience(
    base_url: str = DEFAULT_ALLOCATION_API_URL,
    *,
    timeout_seconds: float = ALLOCATION_API_TIMEOUT_SECONDS,
) -> ResilienceConfig:
    return ResilienceConfig(
        name="allocation-api",
        base_url=base_url.rstrip("/") + "/",
        timeout_seconds=timeout_seconds,
        retry=RetryPolicy(total=0),
        ratelimit=RateLimit(max_calls=2, per_seconds=1.0),
        default_headers={"Accept": "application/json"},
    )


def parse_allocation_api_url(value: str) -> str:
    """Return ``value`` if it is an absolute http(s) URL, else raise ``ConfigurationError``."""

    try:
        url = httpx.URL(value)
    except httpx.InvalidURL as exc:
        raise ConfigurationError(f"ALLOCHECK_ALLOCATION_API_URL is not a valid URL: {exc}") from exc
    if url.scheme not in {"http", "https"} or not url.host:
        raise ConfigurationError(
            f"ALLOCHECK_ALLOCATION_API_URL must be an absolute http(s) URL, got {value!r}"
        )
    return value


def get_allocation_api_config() -> AllocationApiConfig:
    return AllocationApiConfig(
        resilience=build_allocation_api_resilience(
            parse_allocation_api_url(
                env_str("ALLOCHECK_ALLOCATION_API_URL", DEFAULT_ALLOCATION_API_URL)
            ),
            timeout_seconds=env_float(
                "ALLOCHECK_ALLOCATION_API_TIMEOUT_SECONDS",
                ALLOCATION_API_TIMEOUT_SECONDS,
                positive=True,
            ),
        )
    )
