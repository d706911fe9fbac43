"""MCP tool handlers.

Each handler calls one service method and renders the result as pretty JSON
text. Failures never escape as exceptions: classified API errors and
validation errors become a ``success: false`` payload with hints the model
can act on.
"""

import json
import time
import uuid
from typing import Annotated, Any, Awaitable, Callable, Dict, List, Literal, Optional

from pydantic import Field

from exa_websets.app.core.logging import get_log_context, get_logger
from exa_websets.app.core.security import mask_sensitive_data
from exa_websets.app.exceptions import ApiErrorType, WebsetsApiError, WebsetsException
from exa_websets.app.services import create_services

logger = get_logger(__name__)

ApiKey = Annotated[Optional[str], Field(description="Exa API key; defaults to EXA_API_KEY")]
WebsetId = Annotated[str, Field(description="ID of the webset")]
Cursor = Annotated[Optional[str], Field(description="Pagination cursor from a previous call")]
Limit = Annotated[Optional[int], Field(description="Maximum number of results", ge=1, le=100)]
NumResults = Annotated[int, Field(description="Number of results (default 5)", ge=1, le=50)]

_TROUBLESHOOTING: Dict[ApiErrorType, List[str]] = {
    ApiErrorType.AUTHENTICATION: [
        "Verify your API key is valid and has Websets access",
        "Pass api_key explicitly or set EXA_API_KEY",
    ],
    ApiErrorType.AUTHORIZATION: ["Check that your plan includes access to this operation"],
    ApiErrorType.NOT_FOUND: ["Check that the ID is correct", "Use websets_list to see available websets"],
    ApiErrorType.VALIDATION: ["Check the request parameters against the tool description"],
    ApiErrorType.RATE_LIMIT: ["Wait a moment before retrying", "Reduce the request rate"],
    ApiErrorType.SERVER_ERROR: ["The Exa API had a problem; try again shortly"],
    ApiErrorType.NETWORK_ERROR: ["Check your network connection"],
    ApiErrorType.TIMEOUT_ERROR: ["Try again; the API may be under load"],
    ApiErrorType.CIRCUIT_BREAKER_OPEN: [
        "Recent calls failed repeatedly; requests are paused",
        "Wait for the retry window shown in details, then try again",
    ],
}


def _to_text(payload: Dict[str, Any]) -> str:
    return json.dumps(payload, indent=2, default=str)


def _public_details(details: Any) -> Any:
    # Stack traces stay in the logs
    if isinstance(details, dict):
        details = {key: value for key, value in details.items() if key != "stack"}
    return mask_sensitive_data(details)


def error_payload(error: Exception, operation: str) -> Dict[str, Any]:
    """Render a failure as a tool result."""
    if isinstance(error, WebsetsApiError):
        payload: Dict[str, Any] = {
            "success": False,
            "error": f"{operation} failed",
            "code": error.code,
            "message": error.user_message,
            "details": _public_details(error.details) if error.details is not None else error.message,
            "troubleshooting": _TROUBLESHOOTING.get(error.kind, []),
        }
        if error.status is not None:
            payload["status"] = error.status
        return payload

    return {
        "success": False,
        "error": f"{operation} failed",
        "code": ApiErrorType.VALIDATION.value,
        "message": mask_sensitive_data(str(error)),
        "troubleshooting": ["Check the request parameters against the tool description"],
    }


async def run_tool(
    tool: str,
    operation: str,
    call: Callable[[], Awaitable[Any]],
    render: Callable[[Any], Dict[str, Any]],
    hints: Optional[List[str]] = None,
) -> str:
    """Run one tool invocation with request-scoped logging.

    ``hints`` are added to failure payloads as ``help``.
    """
    request_id = f"{tool}-{uuid.uuid4().hex[:8]}"
    started = time.perf_counter()
    logger.info(f"{operation} started", extra=get_log_context(request_id=request_id, tool=tool))

    try:
        result = await call()
    except WebsetsException as e:
        kind = e.kind.value if isinstance(e, WebsetsApiError) else None
        logger.warning(
            f"{operation} failed: {mask_sensitive_data(e.message)}",
            extra=get_log_context(request_id=request_id, tool=tool, error_kind=kind),
        )
        payload = error_payload(e, operation)
        if hints:
            payload["help"] = hints
        return _to_text(payload)

    duration_ms = round((time.perf_counter() - started) * 1000, 2)
    logger.info(
        f"{operation} completed",
        extra=get_log_context(request_id=request_id, tool=tool, duration_ms=duration_ms),
    )
    return _to_text({"success": True, **render(result)})


def _search_results(response: Any) -> Dict[str, Any]:
    results = (response or {}).get("results", [])
    return {"count": len(results), "results": results}


def page_summary(page: Dict[str, Any], key: str) -> Dict[str, Any]:
    data = page.get("data") or []
    return {
        key: data,
        "count": len(data),
        "hasMore": bool(page.get("hasMore")),
        "nextCursor": page.get("nextCursor"),
    }


# Websets


async def websets_create(
    query: Annotated[str, Field(description="What the webset should find")],
    count: Annotated[Optional[int], Field(description="Number of items to find (default 10)", ge=1)] = None,
    entity_type: Annotated[Optional[str], Field(description="Entity type, e.g. 'company'")] = None,
    criteria: Annotated[Optional[List[str]], Field(description="Criteria every result must meet")] = None,
    enrichments: Annotated[
        Optional[List[Dict[str, Any]]],
        Field(description="Enrichments: description, format, options, metadata"),
    ] = None,
    external_id: Annotated[Optional[str], Field(description="Your own identifier for the webset")] = None,
    metadata: Annotated[Optional[Dict[str, str]], Field(description="Metadata key-value pairs")] = None,
    api_key: ApiKey = None,
) -> str:
    """Create a Webset. Returns immediately with an ID; collection takes 10-15 minutes."""
    services = create_services(api_key)
    search: Dict[str, Any] = {"query": query, "count": count or 10}
    if entity_type:
        search["entity"] = {"type": entity_type}
    if criteria:
        search["criteria"] = [{"description": c} for c in criteria]
    request = {"search": search, "enrichments": enrichments, "externalId": external_id, "metadata": metadata}

    def render(webset: Dict[str, Any]) -> Dict[str, Any]:
        webset_id = webset.get("id")
        return {
            "websetId": webset_id,
            "status": webset.get("status"),
            "message": "Webset creation initiated. This typically takes 10-15 minutes.",
            "nextSteps": [
                f'Use websets_get_status with webset_id "{webset_id}" to check progress',
                "Once complete, use websets_list_items to retrieve results",
            ],
        }

    return await run_tool(
        "websets_create", "Webset creation", lambda: services.websets.create(request), render
    )


async def websets_get_status(
    webset_id: WebsetId,
    expand: Annotated[Optional[str], Field(description="Related data to include, e.g. 'items'")] = None,
    api_key: ApiKey = None,
) -> str:
    """Get a webset's status and progress."""
    services = create_services(api_key)

    def render(webset: Dict[str, Any]) -> Dict[str, Any]:
        status = webset.get("status")
        if status == "running":
            next_steps = [
                "Wait for the webset to complete processing",
                f'Check status again with websets_get_status and webset_id "{webset_id}"',
            ]
        elif status == "idle":
            next_steps = [
                f'Use websets_list_items with webset_id "{webset_id}" to retrieve results',
                "Set up enrichments to enhance the data",
            ]
        elif status == "paused":
            next_steps = ["Resume the webset if needed", "Check for any errors or issues"]
        else:
            next_steps = ["Check the status again in a few minutes"]
        return {
            "websetId": webset_id,
            "status": status,
            "progress": services.websets.get_progress(webset),
            "webset": webset,
            "nextSteps": next_steps,
        }

    return await run_tool(
        "websets_get_status", "Webset status check", lambda: services.websets.get(webset_id, expand), render
    )


async def websets_list(cursor: Cursor = None, limit: Limit = None, api_key: ApiKey = None) -> str:
    """List your websets."""
    services = create_services(api_key)

    def render(page: Dict[str, Any]) -> Dict[str, Any]:
        result = page_summary(page, "websets")
        result["nextSteps"] = ["Use websets_get_status with a webset_id for details"]
        if result["hasMore"]:
            result["nextSteps"].append(f'Pass cursor "{result["nextCursor"]}" to fetch the next page')
        return result

    return await run_tool("websets_list", "Webset listing", lambda: services.websets.list(cursor, limit), render)


async def websets_update(
    webset_id: WebsetId,
    metadata: Annotated[Optional[Dict[str, str]], Field(description="New metadata")] = None,
    external_id: Annotated[Optional[str], Field(description="New external identifier")] = None,
    api_key: ApiKey = None,
) -> str:
    """Update a webset's metadata or external ID."""
    services = create_services(api_key)
    request = {"metadata": metadata, "externalId": external_id}
    return await run_tool(
        "websets_update",
        "Webset update",
        lambda: services.websets.update(webset_id, request),
        lambda webset: {"webset": webset, "nextSteps": ["Use websets_get_status to confirm the change"]},
    )


async def websets_delete(webset_id: WebsetId, api_key: ApiKey = None) -> str:
    """Delete a webset and all its items. This cannot be undone."""
    services = create_services(api_key)
    return await run_tool(
        "websets_delete",
        "Webset deletion",
        lambda: services.websets.delete(webset_id),
        lambda webset: {"websetId": webset_id, "deleted": True, "webset": webset},
    )


async def websets_cancel(webset_id: WebsetId, api_key: ApiKey = None) -> str:
    """Cancel all running operations of a webset."""
    services = create_services(api_key)
    return await run_tool(
        "websets_cancel",
        "Webset cancellation",
        lambda: services.websets.cancel(webset_id),
        lambda webset: {
            "websetId": webset_id,
            "status": webset.get("status"),
            "nextSteps": [f'Use websets_list_items with webset_id "{webset_id}" to see items found so far'],
        },
    )


async def websets_list_items(
    webset_id: WebsetId, cursor: Cursor = None, limit: Limit = None, api_key: ApiKey = None
) -> str:
    """List the items a webset has collected."""
    services = create_services(api_key)
    return await run_tool(
        "websets_list_items",
        "Item listing",
        lambda: services.items.list(webset_id, cursor, limit),
        lambda page: {"websetId": webset_id, **page_summary(page, "items")},
    )


# Searches


async def websets_search_create(
    webset_id: WebsetId,
    query: Annotated[str, Field(description="Search query")],
    count: Annotated[Optional[int], Field(description="Number of items to find (default 10)", ge=1, le=1000)] = None,
    entity_type: Annotated[Optional[str], Field(description="Entity type, e.g. 'company'")] = None,
    criteria: Annotated[Optional[List[str]], Field(description="Criteria every result must meet")] = None,
    metadata: Annotated[Optional[Dict[str, str]], Field(description="Metadata key-value pairs")] = None,
    api_key: ApiKey = None,
) -> str:
    """Run a new search inside an existing webset."""
    services = create_services(api_key)
    entity = {"type": entity_type} if entity_type else None
    criteria_objects = [{"description": c} for c in criteria] if criteria else None

    def render(search: Dict[str, Any]) -> Dict[str, Any]:
        search_id = search.get("id")
        return {
            "searchId": search_id,
            "websetId": webset_id,
            "status": search.get("status"),
            "nextSteps": [f'Use websets_search_get with search_id "{search_id}" to check progress'],
        }

    return await run_tool(
        "websets_search_create",
        "Search creation",
        lambda: services.searches.create(webset_id, query, count, entity, criteria_objects, metadata),
        render,
    )


async def websets_search_get(
    webset_id: WebsetId,
    search_id: Annotated[str, Field(description="ID of the search")],
    api_key: ApiKey = None,
) -> str:
    """Get a search and its progress."""
    services = create_services(api_key)
    return await run_tool(
        "websets_search_get",
        "Search lookup",
        lambda: services.searches.get(webset_id, search_id),
        lambda search: {"search": search, "status": search.get("status")},
    )


async def websets_search_cancel(
    webset_id: WebsetId,
    search_id: Annotated[str, Field(description="ID of the search")],
    api_key: ApiKey = None,
) -> str:
    """Cancel a running search."""
    services = create_services(api_key)
    return await run_tool(
        "websets_search_cancel",
        "Search cancellation",
        lambda: services.searches.cancel(webset_id, search_id),
        lambda search: {"searchId": search_id, "status": search.get("status")},
    )


# Enrichments


async def websets_enrichment_create(
    webset_id: WebsetId,
    description: Annotated[str, Field(description="What to extract for each item")],
    format: Annotated[
        Optional[Literal["text", "date", "number", "options", "email", "phone"]],
        Field(description="Format of the extracted value"),
    ] = None,
    options: Annotated[
        Optional[List[str]], Field(description="Allowed labels when format is 'options'")
    ] = None,
    metadata: Annotated[Optional[Dict[str, str]], Field(description="Metadata key-value pairs")] = None,
    api_key: ApiKey = None,
) -> str:
    """Add an enrichment that extracts a field for every item of a webset."""
    services = create_services(api_key)
    option_objects = [{"label": label} for label in options] if options else None

    def render(enrichment: Dict[str, Any]) -> Dict[str, Any]:
        enrichment_id = enrichment.get("id")
        return {
            "enrichmentId": enrichment_id,
            "websetId": webset_id,
            "status": enrichment.get("status"),
            "nextSteps": [
                f'Use websets_enrichment_get with enrichment_id "{enrichment_id}" to check progress',
                "Enriched values appear on items returned by websets_list_items",
            ],
        }

    return await run_tool(
        "websets_enrichment_create",
        "Enrichment creation",
        lambda: services.enrichments.create(webset_id, description, format, option_objects, metadata),
        render,
    )


EnrichmentId = Annotated[str, Field(description="ID of the enrichment")]


async def websets_enrichment_get(
    webset_id: WebsetId, enrichment_id: EnrichmentId, api_key: ApiKey = None
) -> str:
    """Get an enrichment and its progress."""
    services = create_services(api_key)
    return await run_tool(
        "websets_enrichment_get",
        "Enrichment lookup",
        lambda: services.enrichments.get(webset_id, enrichment_id),
        lambda enrichment: {"enrichment": enrichment, "status": enrichment.get("status")},
    )


async def websets_enrichment_delete(
    webset_id: WebsetId, enrichment_id: EnrichmentId, api_key: ApiKey = None
) -> str:
    """Delete an enrichment and its extracted values."""
    services = create_services(api_key)
    return await run_tool(
        "websets_enrichment_delete",
        "Enrichment deletion",
        lambda: services.enrichments.delete(webset_id, enrichment_id),
        lambda enrichment: {"enrichmentId": enrichment_id, "deleted": True},
    )


async def websets_enrichment_cancel(
    webset_id: WebsetId, enrichment_id: EnrichmentId, api_key: ApiKey = None
) -> str:
    """Cancel a running enrichment."""
    services = create_services(api_key)
    return await run_tool(
        "websets_enrichment_cancel",
        "Enrichment cancellation",
        lambda: services.enrichments.cancel(webset_id, enrichment_id),
        lambda enrichment: {"enrichmentId": enrichment_id, "status": enrichment.get("status")},
    )


# Webhooks

WebhookId = Annotated[str, Field(description="ID of the webhook")]


async def websets_webhook_create(
    url: Annotated[str, Field(description="HTTPS endpoint that receives events")],
    events: Annotated[List[str], Field(description="Event types to deliver, e.g. 'webset.idle'")],
    metadata: Annotated[Optional[Dict[str, str]], Field(description="Metadata key-value pairs")] = None,
    api_key: ApiKey = None,
) -> str:
    """Register a webhook for webset events."""
    services = create_services(api_key)

    def render(webhook: Dict[str, Any]) -> Dict[str, Any]:
        result = {
            "webhookId": webhook.get("id"),
            "url": webhook.get("url", url),
            "events": webhook.get("events", events),
            "nextSteps": ["Verify the webhook signature on every delivery"],
        }
        # The signing secret is only returned once
        if webhook.get("secret"):
            result["secret"] = webhook["secret"]
            result["nextSteps"].insert(0, "Store the secret now; it will not be shown again")
        return result

    return await run_tool(
        "websets_webhook_create",
        "Webhook creation",
        lambda: services.webhooks.create(url, events, metadata),
        render,
    )


async def websets_webhook_get(webhook_id: WebhookId, api_key: ApiKey = None) -> str:
    """Get a webhook."""
    services = create_services(api_key)
    return await run_tool(
        "websets_webhook_get",
        "Webhook lookup",
        lambda: services.webhooks.get(webhook_id),
        lambda webhook: {"webhook": mask_sensitive_data(webhook)},
    )


async def websets_webhook_list(cursor: Cursor = None, limit: Limit = None, api_key: ApiKey = None) -> str:
    """List registered webhooks."""
    services = create_services(api_key)
    return await run_tool(
        "websets_webhook_list",
        "Webhook listing",
        lambda: services.webhooks.list(cursor, limit),
        lambda page: mask_sensitive_data(page_summary(page, "webhooks")),
    )


async def websets_webhook_delete(webhook_id: WebhookId, api_key: ApiKey = None) -> str:
    """Delete a webhook."""
    services = create_services(api_key)
    return await run_tool(
        "websets_webhook_delete",
        "Webhook deletion",
        lambda: services.webhooks.delete(webhook_id),
        lambda _: {"webhookId": webhook_id, "deleted": True},
    )


# Events


async def websets_event_list(
    cursor: Cursor = None,
    limit: Limit = None,
    types: Annotated[Optional[List[str]], Field(description="Only these event types")] = None,
    api_key: ApiKey = None,
) -> str:
    """List recent webset events."""
    services = create_services(api_key)
    return await run_tool(
        "websets_event_list",
        "Event listing",
        lambda: services.events.list(cursor, limit, types),
        lambda page: page_summary(page, "events"),
    )


async def websets_event_get(
    event_id: Annotated[str, Field(description="ID of the event")], api_key: ApiKey = None
) -> str:
    """Get a single event."""
    services = create_services(api_key)
    return await run_tool(
        "websets_event_get",
        "Event lookup",
        lambda: services.events.get(event_id),
        lambda event: {"event": event},
    )


# Other


async def web_search_exa(
    query: Annotated[str, Field(description="Search query")],
    num_results: NumResults = 5,
    api_key: ApiKey = None,
) -> str:
    """Search the web with Exa and return page text for each result."""
    services = create_services(api_key)
    return await run_tool(
        "web_search_exa",
        "Web search",
        lambda: services.web_search.search(query, num_results),
        _search_results,
    )


async def github_search(
    query: Annotated[str, Field(description="Repository, GitHub account or code to look for")],
    num_results: NumResults = 5,
    api_key: ApiKey = None,
) -> str:
    """Search GitHub repositories and accounts with Exa."""
    services = create_services(api_key)
    return await run_tool(
        "github_search",
        "GitHub search",
        lambda: services.web_search.search_github(query, num_results),
        _search_results,
    )


async def linkedin_search(
    query: Annotated[str, Field(description="Company URL or name followed by 'company page'")],
    num_results: NumResults = 5,
    api_key: ApiKey = None,
) -> str:
    """Search LinkedIn company pages with Exa."""
    services = create_services(api_key)
    return await run_tool(
        "linkedin_search",
        "LinkedIn search",
        lambda: services.web_search.search_linkedin(query, num_results),
        _search_results,
    )


async def wikipedia_search_exa(
    query: Annotated[str, Field(description="Search query for Wikipedia")],
    num_results: NumResults = 5,
    api_key: ApiKey = None,
) -> str:
    """Search Wikipedia articles with Exa."""
    services = create_services(api_key)
    return await run_tool(
        "wikipedia_search_exa",
        "Wikipedia search",
        lambda: services.web_search.search_wikipedia(query, num_results),
        _search_results,
    )


async def research_paper_search(
    query: Annotated[str, Field(description="Research topic or keyword")],
    num_results: NumResults = 5,
    max_characters: Annotated[
        int, Field(description="Maximum text characters per paper (default 3000)", ge=100, le=20000)
    ] = 3000,
    api_key: ApiKey = None,
) -> str:
    """Search research papers with Exa, returning titles, authors, dates and full-text excerpts."""
    services = create_services(api_key)
    return await run_tool(
        "research_paper_search",
        "Research paper search",
        lambda: services.web_search.search_research_papers(query, num_results, max_characters),
        _search_results,
    )


async def websets_client_stats(api_key: ApiKey = None) -> str:
    """Show rate limiter and circuit breaker state for the API client."""
    services = create_services(api_key)

    async def stats() -> Dict[str, Any]:
        return services.api_client.get_stats()

    return await run_tool("websets_client_stats", "Client stats", stats, lambda s: {"stats": s})


TOOLS = [
    websets_create,
    websets_get_status,
    websets_list,
    websets_update,
    websets_delete,
    websets_cancel,
    websets_list_items,
    websets_search_create,
    websets_search_get,
    websets_search_cancel,
    websets_enrichment_create,
    websets_enrichment_get,
    websets_enrichment_delete,
    websets_enrichment_cancel,
    websets_webhook_create,
    websets_webhook_get,
    websets_webhook_list,
    websets_webhook_delete,
    websets_event_list,
    websets_event_get,
    web_search_exa,
    github_search,
    linkedin_search,
    wikipedia_search_exa,
    research_paper_search,
    websets_client_stats,
]
