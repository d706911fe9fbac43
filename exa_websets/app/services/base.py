"""Common functionality for all Websets API services."""

import asyncio
import json
from typing import Any, Callable, Dict, Iterable, Optional
from urllib.parse import quote

from exa_websets.app.client.api_client import WebsetsApiClient
from exa_websets.app.client.error_handler import ApiErrorHandler
from exa_websets.app.core.logging import get_logger
from exa_websets.app.core.security import mask_sensitive_data
from exa_websets.app.exceptions import OperationTimeoutError, ServiceValidationError, WebsetsApiError

logger = get_logger(__name__)


class BaseService:
    """Base class for Websets API services.

    Services are thin wrappers: they validate identifiers, build endpoint
    paths and return the ``data`` of the API response. All resilience
    (rate limiting, retries, circuit breaking) lives in the API client.
    """

    def __init__(self, api_client: WebsetsApiClient):
        self.api_client = api_client

    async def _get(self, endpoint: str, params: Optional[Dict[str, Any]] = None) -> Any:
        response = await self.api_client.get(endpoint, params=params)
        return response.data

    async def _post(self, endpoint: str, body: Any = None) -> Any:
        response = await self.api_client.post(endpoint, body=body)
        return response.data

    async def _put(self, endpoint: str, body: Any = None) -> Any:
        response = await self.api_client.put(endpoint, body=body)
        return response.data

    async def _patch(self, endpoint: str, body: Any = None) -> Any:
        response = await self.api_client.patch(endpoint, body=body)
        return response.data

    async def _delete(self, endpoint: str) -> Any:
        response = await self.api_client.delete(endpoint)
        return response.data

    async def _paginated(
        self,
        endpoint: str,
        params: Optional[Dict[str, Any]] = None,
        cursor: Optional[str] = None,
        limit: Optional[int] = None,
    ) -> Dict[str, Any]:
        """GET a cursor-paginated collection.

        Returns:
            The page as returned by the API: ``data``, ``hasMore``, ``nextCursor``
        """
        request_params = dict(params or {})
        if cursor:
            request_params["cursor"] = cursor
        if limit:
            request_params["limit"] = limit
        page = await self._get(endpoint, request_params)
        return page if isinstance(page, dict) else {"data": page or [], "hasMore": False}

    @staticmethod
    def validate_required(params: Dict[str, Any], required_fields: Iterable[str]) -> None:
        """Raise if any required parameter is missing or empty."""
        missing = [f for f in required_fields if params.get(f) in (None, "")]
        if missing:
            raise ServiceValidationError(f"Missing required parameters: {', '.join(missing)}")

    @staticmethod
    def sanitize_params(params: Dict[str, Any]) -> Dict[str, Any]:
        """Drop None values so they are not sent to the API."""
        return {k: v for k, v in params.items() if v is not None}

    @staticmethod
    def build_endpoint(template: str, **path_params: str) -> str:
        """Fill ``{name}`` placeholders with URL-quoted values.

        Example:
            >>> BaseService.build_endpoint("/websets/{webset_id}", webset_id="ws 1")
            '/websets/ws%201'
        """
        endpoint = template
        for key, value in path_params.items():
            endpoint = endpoint.replace(f"{{{key}}}", quote(str(value), safe=""))
        return endpoint

    def log_operation(self, operation: str, **details: Any) -> None:
        message = f"[{type(self).__name__}] {operation}"
        details = self.sanitize_params(details)
        if details:
            message += f": {json.dumps(mask_sensitive_data(details), default=str)}"
        logger.info(message)

    async def poll_for_completion(
        self,
        endpoint: str,
        is_complete: Callable[[Any], bool],
        max_attempts: int = 30,
        interval_ms: int = 2000,
    ) -> Any:
        """Poll ``endpoint`` until ``is_complete`` accepts the result.

        Temporary API errors (network, timeout, server, rate limit) are
        tolerated until the last attempt; permanent ones are raised at once.

        Args:
            endpoint: Resource path to GET
            is_complete: Predicate on the decoded resource
            max_attempts: Number of GETs before giving up
            interval_ms: Delay between GETs

        Raises:
            WebsetsApiError: Permanent error, or temporary error on the last attempt
            OperationTimeoutError: The resource never completed
        """
        for attempt in range(1, max_attempts + 1):
            try:
                data = await self._get(endpoint)
            except WebsetsApiError as e:
                if not ApiErrorHandler.is_temporary_error(e.kind) or attempt == max_attempts:
                    raise
                logger.warning(f"Polling {endpoint} hit a temporary error ({e.kind.value}), continuing")
            else:
                if is_complete(data):
                    return data

            if attempt < max_attempts:
                await asyncio.sleep(interval_ms / 1000.0)

        raise OperationTimeoutError(
            f"Operation did not complete within {max_attempts} attempts", attempts=max_attempts
        )

    def get_stats(self) -> Dict[str, Any]:
        return {
            "serviceName": type(self).__name__,
            "apiClientStats": self.api_client.get_stats(),
        }
