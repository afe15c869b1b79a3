from __future__ import annotations

import httpx

from .base import SourceConfig, UserAgentPool
from .preferences import SourcePreferences
from .rate_limit import RequestRateLimiter
from .state import SourceState
from .transports import HighQualityTransport, ImageCacheTransport, RateLimitTransport


def default_headers(config: SourceConfig, user_agent_pool: UserAgentPool) -> dict[str, str]:
    headers = {
        "User-Agent": config.user_agent or user_agent_pool.pick(),
        "Referer": f"{config.base_url.rstrip('/')}/",
    }
    headers.update(config.extra_headers)
    return headers


def build_transport(
    config: SourceConfig,
    preferences: SourcePreferences,
    state: SourceState,
    base: httpx.AsyncBaseTransport | None = None,
) -> httpx.AsyncBaseTransport:
    network = base or httpx.AsyncHTTPTransport(
        retries=config.transport_retries,
        limits=httpx.Limits(
            max_connections=config.max_connections,
            max_keepalive_connections=config.max_connections,
            keepalive_expiry=config.keepalive_expiry_sec,
        ),
    )
    limiter = RequestRateLimiter(config.rate_limit_permits, config.rate_limit_period_sec)
    return HighQualityTransport(
        ImageCacheTransport(RateLimitTransport(network, limiter), preferences),
        preferences,
        state,
    )


def build_client(
    config: SourceConfig,
    preferences: SourcePreferences,
    state: SourceState,
    user_agent_pool: UserAgentPool | None = None,
    transport: httpx.AsyncBaseTransport | None = None,
) -> httpx.AsyncClient:
    """AsyncClient whose requests all pass through the source transports.

    `transport` replaces the network layer only, the interceptors stay.
    """
    timeout = httpx.Timeout(
        connect=config.connect_timeout_sec,
        read=config.read_timeout_sec,
        write=config.write_timeout_sec,
        pool=config.pool_timeout_sec,
    )
    return httpx.AsyncClient(
        transport=build_transport(config, preferences, state, transport),
        headers=default_headers(config, user_agent_pool or UserAgentPool(config.user_agents)),
        timeout=timeout,
        follow_redirects=True,
    )
