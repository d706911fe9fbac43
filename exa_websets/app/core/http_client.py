"""HTTP client construction for the Websets API.

The resilient API client owns one httpx.AsyncClient per API key. This
module builds those clients with connection limits, default headers and a
default timeout taken from settings.
"""

from typing import Dict, Optional

import httpx

from exa_websets.app.core.config import Settings, settings as default_settings


def build_default_headers(config: Settings) -> Dict[str, str]:
    """Headers sent with every request (the API key is added per request)."""
    headers = {
        "User-Agent": config.user_agent,
        "Accept": "application/json",
        "Content-Type": "application/json",
    }
    headers.update(config.extra_headers)
    return headers


def ms_to_timeout(timeout_ms: float) -> httpx.Timeout:
    """Convert a millisecond budget into an httpx timeout."""
    return httpx.Timeout(timeout_ms / 1000.0)


def create_http_client(
    config: Optional[Settings] = None,
    transport: Optional[httpx.AsyncBaseTransport] = None,
) -> httpx.AsyncClient:
    """Create a new HTTP client for the Websets API.

    Note: The returned client should be closed when done:
        async with create_http_client() as client:
            ...

    Args:
        config: Settings to read base URL, headers and limits from
        transport: Optional custom transport (used by tests)

    Returns:
        A new httpx.AsyncClient instance
    """
    config = config or default_settings
    limits = httpx.Limits(
        max_connections=config.max_connections,
        max_keepalive_connections=config.max_keepalive_connections,
    )
    kwargs = {
        "base_url": config.base_url,
        "headers": build_default_headers(config),
        "timeout": ms_to_timeout(config.timeout),
        "limits": limits,
    }
    if transport is not None:
        kwargs["transport"] = transport
    return httpx.AsyncClient(**kwargs)
