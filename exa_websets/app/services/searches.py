"""Searches run inside a webset."""

import math
from typing import Any, Dict, List, Optional

from exa_websets.app.exceptions import ServiceValidationError
from exa_websets.app.services.base import BaseService

SEARCH_ENDPOINT = "/websets/{webset_id}/searches/{search_id}"

DEFAULT_COUNT = 10
MAX_QUERY_LENGTH = 5000


class SearchService(BaseService):

    async def create(
        self,
        webset_id: str,
        query: str,
        count: Optional[int] = None,
        entity: Optional[Dict[str, Any]] = None,
        criteria: Optional[List[Dict[str, str]]] = None,
        metadata: Optional[Dict[str, str]] = None,
    ) -> Dict[str, Any]:
        """Start a search that overrides the webset's current items."""
        self.validate_required({"webset_id": webset_id, "query": query}, ["webset_id", "query"])
        self.validate_query(query, count)
        self.log_operation("create", webset_id=webset_id, query=query, count=count)

        endpoint = self.build_endpoint("/websets/{webset_id}/searches", webset_id=webset_id)
        body = self.sanitize_params(
            {
                "behavior": "override",
                "query": query,
                "entity": entity,
                "criteria": criteria,
                "count": count or DEFAULT_COUNT,
                "metadata": metadata,
            }
        )
        return await self._post(endpoint, body)

    async def get(self, webset_id: str, search_id: str) -> Dict[str, Any]:
        self._validate_ids(webset_id, search_id)
        self.log_operation("get", webset_id=webset_id, search_id=search_id)
        return await self._get(self._endpoint(webset_id, search_id))

    async def cancel(self, webset_id: str, search_id: str) -> Dict[str, Any]:
        self._validate_ids(webset_id, search_id)
        self.log_operation("cancel", webset_id=webset_id, search_id=search_id)
        return await self._post(self._endpoint(webset_id, search_id) + "/cancel")

    async def wait_for_completion(
        self, webset_id: str, search_id: str, timeout_ms: int = 300000, interval_ms: int = 5000
    ) -> Dict[str, Any]:
        self._validate_ids(webset_id, search_id)
        return await self.poll_for_completion(
            self._endpoint(webset_id, search_id),
            lambda search: search.get("status") in ("completed", "canceled"),
            max_attempts=max(1, math.ceil(timeout_ms / interval_ms)),
            interval_ms=interval_ms,
        )

    @staticmethod
    def validate_query(query: str, count: Optional[int] = None) -> None:
        if not isinstance(query, str) or not query.strip():
            raise ServiceValidationError("Query must be a non-empty string")
        if len(query) > MAX_QUERY_LENGTH:
            raise ServiceValidationError(f"Query must be less than {MAX_QUERY_LENGTH} characters")
        if count is not None and not 1 <= count <= 1000:
            raise ServiceValidationError("Count must be a number between 1 and 1000")

    def _validate_ids(self, webset_id: str, search_id: str) -> None:
        self.validate_required({"webset_id": webset_id, "search_id": search_id}, ["webset_id", "search_id"])

    def _endpoint(self, webset_id: str, search_id: str) -> str:
        return self.build_endpoint(SEARCH_ENDPOINT, webset_id=webset_id, search_id=search_id)
