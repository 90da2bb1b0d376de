"""Shared persistent httpx client for the content-metadata API.

One recommendation request fans out into several discover and trending calls;
a persistent client lets them share pooled TCP/TLS connections.
"""

import httpx

from streamsense.constants import HTTPX_TIMEOUT, TMDB_API_BASE_URL

_POOL_LIMITS = httpx.Limits(
    max_connections=20,
    max_keepalive_connections=10,
    keepalive_expiry=30,
)

_tmdb_client: httpx.AsyncClient | None = None


def get_tmdb_client() -> httpx.AsyncClient:
    """Client bound to the TMDB v3 base URL; requests pass paths like ``/discover/movie``."""
    global _tmdb_client
    if _tmdb_client is None or _tmdb_client.is_closed:
        _tmdb_client = httpx.AsyncClient(
            base_url=TMDB_API_BASE_URL,
            timeout=HTTPX_TIMEOUT,
            limits=_POOL_LIMITS,
            headers={"Accept": "application/json"},
        )
    return _tmdb_client


async def close_all_clients() -> None:
    """Close the pooled client. Call during app shutdown."""
    global _tmdb_client
    if _tmdb_client is not None:
        await _tmdb_client.aclose()
        _tmdb_client = None
