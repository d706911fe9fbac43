"""Services package for the Websets API.

This package provides:
- BaseService with validation, endpoint building and polling
- One service per API resource (websets, searches, items, enrichments,
  webhooks, events) plus plain web search
- create_services, which keeps one API client per API key
"""

import asyncio
import hashlib
import threading
from collections import OrderedDict
from dataclasses import dataclass
from typing import List, Optional, Set

from exa_websets.app.client.api_client import WebsetsApiClient
from exa_websets.app.core.config import settings
from exa_websets.app.core.logging import get_logger
from exa_websets.app.core.security import TokenProvider
from exa_websets.app.services.base import BaseService
from exa_websets.app.services.enrichments import EnrichmentService
from exa_websets.app.services.events import EventService
from exa_websets.app.services.items import ItemService
from exa_websets.app.services.searches import SearchService
from exa_websets.app.services.web_search import WebSearchService
from exa_websets.app.services.webhooks import WebhookService
from exa_websets.app.services.websets import WebsetService

logger = get_logger(__name__)


@dataclass
class Services:
    """All services bound to one API client."""

    api_client: WebsetsApiClient
    websets: WebsetService
    searches: SearchService
    items: ItemService
    enrichments: EnrichmentService
    webhooks: WebhookService
    events: EventService
    web_search: WebSearchService

    @classmethod
    def for_client(cls, api_client: WebsetsApiClient) -> "Services":
        return cls(
            api_client=api_client,
            websets=WebsetService(api_client),
            searches=SearchService(api_client),
            items=ItemService(api_client),
            enrichments=EnrichmentService(api_client),
            webhooks=WebhookService(api_client),
            events=EventService(api_client),
            web_search=WebSearchService(api_client),
        )


# Keyed by a SHA-256 digest of the API key; "" is the configured default key.
# Least recently used entries come first.
_services: "OrderedDict[str, Services]" = OrderedDict()
_services_lock = threading.Lock()
_closing: Set["asyncio.Task[None]"] = set()


def _cache_key(api_key: Optional[str]) -> str:
    if not api_key:
        return ""
    return hashlib.sha256(api_key.encode("utf-8")).hexdigest()


def _close_evicted(evicted: List[Services]) -> None:
    if not evicted:
        return
    try:
        loop = asyncio.get_running_loop()
    except RuntimeError:
        # No running loop to close them on
        logger.debug(f"Dropped {len(evicted)} evicted API client(s) outside an event loop")
        return
    for services in evicted:
        task = loop.create_task(services.api_client.aclose())
        _closing.add(task)
        task.add_done_callback(_closing.discard)


def create_services(api_key: Optional[str] = None) -> Services:
    """Get the services for an API key.

    Clients are cached per key so each key keeps its own rate limiter and
    circuit breaker across tool calls. At most ``settings.max_cached_clients``
    clients are kept; the least recently used one is evicted and closed.

    Args:
        api_key: Key to use instead of the configured EXA_API_KEY

    Returns:
        Services instance
    """
    key = _cache_key(api_key)
    evicted: List[Services] = []
    with _services_lock:
        services = _services.get(key)
        if services is None:
            token_provider = TokenProvider.static(api_key) if api_key else None
            services = Services.for_client(WebsetsApiClient(settings, token_provider=token_provider))
            _services[key] = services
        else:
            _services.move_to_end(key)
        while len(_services) > settings.max_cached_clients:
            _, oldest = _services.popitem(last=False)
            evicted.append(oldest)

    if evicted:
        logger.info(f"Evicting {len(evicted)} cached API client(s)")
    _close_evicted(evicted)
    return services


async def close_services() -> None:
    """Close every cached client and forget them."""
    with _services_lock:
        cached = list(_services.values())
        _services.clear()
    for services in cached:
        await services.api_client.aclose()
    if _closing:
        await asyncio.gather(*_closing)


def reset_services() -> None:
    """Forget cached clients without closing them.

    Useful for testing.
    """
    with _services_lock:
        _services.clear()


__all__ = [
    "BaseService",
    "EnrichmentService",
    "EventService",
    "ItemService",
    "SearchService",
    "Services",
    "WebSearchService",
    "WebhookService",
    "WebsetService",
    "close_services",
    "create_services",
    "reset_services",
]
