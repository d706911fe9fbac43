"""Unified ``websets_manager`` tool.

One tool that routes an ``operation`` name to the matching service call, for
clients that prefer a single entry point over the per-resource tools.
"""

from dataclasses import dataclass
from typing import Annotated, Any, Awaitable, Callable, Dict, List, Literal, Optional

from pydantic import BaseModel, Field

from exa_websets.app.api.tools import ApiKey, page_summary, run_tool
from exa_websets.app.core.security import mask_sensitive_data
from exa_websets.app.exceptions import ServiceValidationError
from exa_websets.app.services import Services, create_services

Operation = Literal[
    "create_webset",
    "list_websets",
    "get_webset_status",
    "update_webset",
    "delete_webset",
    "cancel_webset",
    "search_webset",
    "get_search_results",
    "cancel_search",
    "enhance_content",
    "get_enhancement_results",
    "delete_enhancement",
    "cancel_enhancement",
    "setup_notifications",
    "list_notifications",
    "get_notification_details",
    "remove_notifications",
    "list_activities",
    "get_activity_details",
    "list_content_items",
]


class WebsetParams(BaseModel):
    search_query: str = Field(description="What the webset should find")
    count: int = Field(default=10, ge=1, le=1000, description="How many items to find")
    entity_type: Optional[str] = Field(default=None, description="Entity type, e.g. 'company'")
    criteria: Optional[List[str]] = Field(default=None, description="Requirements every result must meet")
    external_id: Optional[str] = Field(default=None, description="Your own reference ID")
    metadata: Optional[Dict[str, str]] = None


class SearchParams(BaseModel):
    query: str = Field(description="What to search for within the webset")
    count: int = Field(default=10, ge=1, le=100, description="Maximum number of results")
    entity_type: Optional[str] = None
    criteria: Optional[List[str]] = None
    metadata: Optional[Dict[str, str]] = None
    wait_for_results: bool = Field(default=False, description="Poll until the search completes (max 1 minute)")


class EnhancementParams(BaseModel):
    task: str = Field(description="What data to extract for each item")
    format: Literal["text", "date", "number", "options", "email", "phone"] = "text"
    options: Optional[List[str]] = Field(default=None, description="Answer choices for the 'options' format")
    metadata: Optional[Dict[str, str]] = None


class NotificationParams(BaseModel):
    url: str = Field(description="HTTPS endpoint that receives events")
    events: List[str] = Field(description="Event types to deliver, e.g. 'webset.idle'")
    metadata: Optional[Dict[str, str]] = None


class UpdateParams(BaseModel):
    metadata: Dict[str, str] = Field(description="Replacement metadata for the webset")


class QueryParams(BaseModel):
    limit: Optional[int] = Field(default=None, ge=1, le=100)
    cursor: Optional[str] = None
    event_types: Optional[List[str]] = Field(default=None, description="Event types to filter activities by")


SEARCH_WAIT_MS = 60000

_OPERATION_HELP: Dict[str, List[str]] = {
    "create_webset": [
        "Provide webset.search_query describing what to collect",
        "Webset creation takes 10-15 minutes to complete",
    ],
    "search_webset": [
        "Provide resource_id of the webset to search within",
        "Provide search.query describing what to find",
    ],
    "enhance_content": [
        "Provide resource_id of the webset to enhance",
        "Provide enhancement.task describing the data to extract",
    ],
}


@dataclass
class ManagerCall:
    """Arguments of one ``websets_manager`` invocation."""

    operation: str
    resource_id: Optional[str] = None
    webset_id: Optional[str] = None
    webset: Optional[WebsetParams] = None
    search: Optional[SearchParams] = None
    enhancement: Optional[EnhancementParams] = None
    notification: Optional[NotificationParams] = None
    update: Optional[UpdateParams] = None
    query: Optional[QueryParams] = None

    def require(self, name: str) -> Any:
        value = getattr(self, name)
        if value is None or value == "":
            raise ServiceValidationError(f"{name} is required for {self.operation}")
        return value

    @property
    def limit(self) -> Optional[int]:
        return self.query.limit if self.query else None

    @property
    def cursor(self) -> Optional[str]:
        return self.query.cursor if self.query else None


def get_operation_help(operation: str) -> List[str]:
    return _OPERATION_HELP.get(
        operation,
        [
            "Check the operation name and required parameters",
            "Provide resource_id when working with an existing resource",
        ],
    )


# Websets


async def _create_webset(services: Services, call: ManagerCall) -> Dict[str, Any]:
    params: WebsetParams = call.require("webset")
    search: Dict[str, Any] = {"query": params.search_query, "count": params.count}
    if params.entity_type:
        search["entity"] = {"type": params.entity_type}
    if params.criteria:
        search["criteria"] = [{"description": c} for c in params.criteria]
    webset = await services.websets.create(
        {"search": search, "externalId": params.external_id, "metadata": params.metadata}
    )
    webset_id = webset.get("id")
    return {
        "websetId": webset_id,
        "status": webset.get("status"),
        "nextSteps": [
            f'Check progress: operation "get_webset_status" with resource_id "{webset_id}"',
            f'When complete: operation "list_content_items" with resource_id "{webset_id}"',
        ],
    }


async def _list_websets(services: Services, call: ManagerCall) -> Dict[str, Any]:
    return page_summary(await services.websets.list(call.cursor, call.limit), "websets")


async def _get_webset_status(services: Services, call: ManagerCall) -> Dict[str, Any]:
    webset_id = call.require("resource_id")
    webset = await services.websets.get(webset_id)
    result = {
        "websetId": webset_id,
        "status": webset.get("status"),
        "progress": services.websets.get_progress(webset),
        "webset": webset,
    }
    if services.websets.is_complete(webset):
        result["nextSteps"] = [
            f'Search within webset: operation "search_webset" with resource_id "{webset_id}"',
            f'View content: operation "list_content_items" with resource_id "{webset_id}"',
            f'Enhance data: operation "enhance_content" with resource_id "{webset_id}"',
        ]
    return result


async def _update_webset(services: Services, call: ManagerCall) -> Dict[str, Any]:
    webset_id = call.require("resource_id")
    params: UpdateParams = call.require("update")
    return {"webset": await services.websets.update(webset_id, {"metadata": params.metadata})}


async def _delete_webset(services: Services, call: ManagerCall) -> Dict[str, Any]:
    webset_id = call.require("resource_id")
    await services.websets.delete(webset_id)
    return {"websetId": webset_id, "deleted": True}


async def _cancel_webset(services: Services, call: ManagerCall) -> Dict[str, Any]:
    webset_id = call.require("resource_id")
    return {"webset": await services.websets.cancel(webset_id)}


# Searches


async def _search_webset(services: Services, call: ManagerCall) -> Dict[str, Any]:
    webset_id = call.require("resource_id")
    params: SearchParams = call.require("search")
    search = await services.searches.create(
        webset_id,
        params.query,
        count=params.count,
        entity={"type": params.entity_type} if params.entity_type else None,
        criteria=[{"description": c} for c in params.criteria] if params.criteria else None,
        metadata=params.metadata,
    )
    if params.wait_for_results and search.get("id"):
        search = await services.searches.wait_for_completion(webset_id, search["id"], timeout_ms=SEARCH_WAIT_MS)
    return {
        "searchId": search.get("id"),
        "status": search.get("status"),
        "search": search,
        "nextSteps": [
            f'Check results: operation "get_search_results" with resource_id "{search.get("id")}" '
            f'and webset_id "{webset_id}"',
        ],
    }


async def _get_search_results(services: Services, call: ManagerCall) -> Dict[str, Any]:
    return {"search": await services.searches.get(call.require("webset_id"), call.require("resource_id"))}


async def _cancel_search(services: Services, call: ManagerCall) -> Dict[str, Any]:
    return {"search": await services.searches.cancel(call.require("webset_id"), call.require("resource_id"))}


# Enhancements


async def _enhance_content(services: Services, call: ManagerCall) -> Dict[str, Any]:
    webset_id = call.require("resource_id")
    params: EnhancementParams = call.require("enhancement")
    enrichment = await services.enrichments.create(
        webset_id,
        params.task,
        format=params.format,
        options=[{"label": label} for label in params.options] if params.options else None,
        metadata=params.metadata,
    )
    return {
        "enhancementId": enrichment.get("id"),
        "status": enrichment.get("status"),
        "nextSteps": [
            f'Check results: operation "get_enhancement_results" with resource_id "{enrichment.get("id")}" '
            f'and webset_id "{webset_id}"',
        ],
    }


async def _get_enhancement_results(services: Services, call: ManagerCall) -> Dict[str, Any]:
    return {
        "enhancement": await services.enrichments.get(call.require("webset_id"), call.require("resource_id"))
    }


async def _delete_enhancement(services: Services, call: ManagerCall) -> Dict[str, Any]:
    enrichment_id = call.require("resource_id")
    await services.enrichments.delete(call.require("webset_id"), enrichment_id)
    return {"enhancementId": enrichment_id, "deleted": True}


async def _cancel_enhancement(services: Services, call: ManagerCall) -> Dict[str, Any]:
    return {
        "enhancement": await services.enrichments.cancel(call.require("webset_id"), call.require("resource_id"))
    }


# Notifications


async def _setup_notifications(services: Services, call: ManagerCall) -> Dict[str, Any]:
    params: NotificationParams = call.require("notification")
    webhook = await services.webhooks.create(params.url, params.events, params.metadata)
    result = {"webhookId": webhook.get("id"), "events": webhook.get("events", params.events)}
    if webhook.get("secret"):
        result["secret"] = webhook["secret"]
    return result


async def _list_notifications(services: Services, call: ManagerCall) -> Dict[str, Any]:
    page = await services.webhooks.list(call.cursor, call.limit)
    return mask_sensitive_data(page_summary(page, "webhooks"))


async def _get_notification_details(services: Services, call: ManagerCall) -> Dict[str, Any]:
    return {"webhook": mask_sensitive_data(await services.webhooks.get(call.require("resource_id")))}


async def _remove_notifications(services: Services, call: ManagerCall) -> Dict[str, Any]:
    webhook_id = call.require("resource_id")
    await services.webhooks.delete(webhook_id)
    return {"webhookId": webhook_id, "deleted": True}


# Activity and content


async def _list_activities(services: Services, call: ManagerCall) -> Dict[str, Any]:
    types = call.query.event_types if call.query else None
    return page_summary(await services.events.list(call.cursor, call.limit, types), "events")


async def _get_activity_details(services: Services, call: ManagerCall) -> Dict[str, Any]:
    return {"event": await services.events.get(call.require("resource_id"))}


async def _list_content_items(services: Services, call: ManagerCall) -> Dict[str, Any]:
    page = await services.items.list(call.require("resource_id"), call.cursor, call.limit)
    return page_summary(page, "items")


OPERATIONS: Dict[str, Callable[[Services, ManagerCall], Awaitable[Dict[str, Any]]]] = {
    "create_webset": _create_webset,
    "list_websets": _list_websets,
    "get_webset_status": _get_webset_status,
    "update_webset": _update_webset,
    "delete_webset": _delete_webset,
    "cancel_webset": _cancel_webset,
    "search_webset": _search_webset,
    "get_search_results": _get_search_results,
    "cancel_search": _cancel_search,
    "enhance_content": _enhance_content,
    "get_enhancement_results": _get_enhancement_results,
    "delete_enhancement": _delete_enhancement,
    "cancel_enhancement": _cancel_enhancement,
    "setup_notifications": _setup_notifications,
    "list_notifications": _list_notifications,
    "get_notification_details": _get_notification_details,
    "remove_notifications": _remove_notifications,
    "list_activities": _list_activities,
    "get_activity_details": _get_activity_details,
    "list_content_items": _list_content_items,
}


async def websets_manager(
    operation: Annotated[Operation, Field(description="What you want to do")],
    resource_id: Annotated[
        Optional[str], Field(description="ID of the webset, search, enhancement, webhook or event to work with")
    ] = None,
    webset_id: Annotated[
        Optional[str], Field(description="Parent webset ID for search and enhancement operations")
    ] = None,
    webset: Annotated[Optional[WebsetParams], Field(description="Settings for create_webset")] = None,
    search: Annotated[Optional[SearchParams], Field(description="Settings for search_webset")] = None,
    enhancement: Annotated[Optional[EnhancementParams], Field(description="Settings for enhance_content")] = None,
    notification: Annotated[
        Optional[NotificationParams], Field(description="Settings for setup_notifications")
    ] = None,
    update: Annotated[Optional[UpdateParams], Field(description="Changes for update_webset")] = None,
    query: Annotated[Optional[QueryParams], Field(description="Paging and filters for list operations")] = None,
    api_key: ApiKey = None,
) -> str:
    """Manage websets, searches, enhancements and notifications through a single tool."""
    services = create_services(api_key)
    call = ManagerCall(
        operation=operation,
        resource_id=resource_id,
        webset_id=webset_id,
        webset=webset,
        search=search,
        enhancement=enhancement,
        notification=notification,
        update=update,
        query=query,
    )

    async def dispatch() -> Dict[str, Any]:
        handler = OPERATIONS.get(operation)
        if handler is None:
            raise ServiceValidationError(f"Unknown operation: {operation}")
        return await handler(services, call)

    return await run_tool(
        "websets_manager",
        operation,
        dispatch,
        lambda result: {"operation": operation, **result},
        hints=get_operation_help(operation),
    )


TOOLS = [websets_manager]
