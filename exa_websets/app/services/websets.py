"""Webset CRUD and lifecycle operations."""

import math
from typing import Any, Dict, Optional

from exa_websets.app.exceptions import ServiceValidationError
from exa_websets.app.services.base import BaseService

WEBSET_ENDPOINT = "/websets/{webset_id}"

POLL_INTERVAL_MS = 5000


class WebsetService(BaseService):
    """Create, inspect and manage websets."""

    async def create(self, request: Dict[str, Any]) -> Dict[str, Any]:
        self.validate_required(request, ["search"])
        self.validate_create_request(request)
        self.log_operation("create", query=request["search"].get("query"))
        return await self._post("/websets", self.sanitize_params(request))

    async def get(self, webset_id: str, expand: Optional[str] = None) -> Dict[str, Any]:
        self.validate_required({"webset_id": webset_id}, ["webset_id"])
        self.log_operation("get", webset_id=webset_id, expand=expand)
        endpoint = self.build_endpoint(WEBSET_ENDPOINT, webset_id=webset_id)
        params = {"expand": expand} if expand else None
        return await self._get(endpoint, params)

    async def list(self, cursor: Optional[str] = None, limit: Optional[int] = None) -> Dict[str, Any]:
        self.log_operation("list", cursor=cursor, limit=limit)
        return await self._paginated("/websets", cursor=cursor, limit=limit)

    async def update(self, webset_id: str, request: Dict[str, Any]) -> Dict[str, Any]:
        """Update metadata and external id. The API takes updates as POST."""
        self.validate_required({"webset_id": webset_id}, ["webset_id"])
        self.log_operation("update", webset_id=webset_id)
        endpoint = self.build_endpoint(WEBSET_ENDPOINT, webset_id=webset_id)
        return await self._post(endpoint, self.sanitize_params(request))

    async def delete(self, webset_id: str) -> Dict[str, Any]:
        self.validate_required({"webset_id": webset_id}, ["webset_id"])
        self.log_operation("delete", webset_id=webset_id)
        return await self._delete(self.build_endpoint(WEBSET_ENDPOINT, webset_id=webset_id))

    async def cancel(self, webset_id: str) -> Dict[str, Any]:
        self.validate_required({"webset_id": webset_id}, ["webset_id"])
        self.log_operation("cancel", webset_id=webset_id)
        return await self._post(self.build_endpoint(WEBSET_ENDPOINT + "/cancel", webset_id=webset_id))

    async def get_status(self, webset_id: str, poll_until_complete: bool = False) -> Dict[str, Any]:
        """Fetch the webset, optionally polling until it stops running."""
        self.validate_required({"webset_id": webset_id}, ["webset_id"])
        self.log_operation("get_status", webset_id=webset_id, poll_until_complete=poll_until_complete)
        endpoint = self.build_endpoint(WEBSET_ENDPOINT, webset_id=webset_id)

        if not poll_until_complete:
            return await self._get(endpoint)

        return await self.poll_for_completion(
            endpoint,
            lambda webset: webset.get("status") != "running",
            max_attempts=30,
            interval_ms=POLL_INTERVAL_MS,
        )

    async def wait_for_completion(self, webset_id: str, timeout_ms: int = 300000) -> Dict[str, Any]:
        """Poll every 5s until the webset is idle or paused.

        Raises:
            OperationTimeoutError: Still running after ``timeout_ms``
        """
        self.validate_required({"webset_id": webset_id}, ["webset_id"])
        self.log_operation("wait_for_completion", webset_id=webset_id, timeout_ms=timeout_ms)
        return await self.poll_for_completion(
            self.build_endpoint(WEBSET_ENDPOINT, webset_id=webset_id),
            self.is_complete,
            max_attempts=max(1, math.ceil(timeout_ms / POLL_INTERVAL_MS)),
            interval_ms=POLL_INTERVAL_MS,
        )

    @staticmethod
    def is_complete(webset: Dict[str, Any]) -> bool:
        return webset.get("status") in ("idle", "paused")

    @staticmethod
    def is_running(webset: Dict[str, Any]) -> bool:
        return webset.get("status") == "running"

    @staticmethod
    def get_progress(webset: Dict[str, Any]) -> Dict[str, int]:
        """Summarize completed searches and enrichments as a percentage."""
        searches = webset.get("searches") or []
        enrichments = webset.get("enrichments") or []
        completed_searches = sum(1 for s in searches if s.get("status") == "completed")
        completed_enrichments = sum(1 for e in enrichments if e.get("status") == "completed")

        total = len(searches) + len(enrichments)
        completed = completed_searches + completed_enrichments
        overall = round(completed / total * 100) if total else 0

        return {
            "totalSearches": len(searches),
            "completedSearches": completed_searches,
            "totalEnrichments": len(enrichments),
            "completedEnrichments": completed_enrichments,
            "overallProgress": overall,
        }

    @staticmethod
    def validate_create_request(request: Dict[str, Any]) -> None:
        search = request.get("search")
        if not isinstance(search, dict) or not search.get("query"):
            raise ServiceValidationError("search.query is required")

        external_id = request.get("externalId")
        if external_id is not None and not isinstance(external_id, str):
            raise ServiceValidationError("externalId must be a string")

        metadata = request.get("metadata")
        if metadata is not None:
            if not isinstance(metadata, dict):
                raise ServiceValidationError("metadata must be an object")
            for key, value in metadata.items():
                if not isinstance(value, str):
                    raise ServiceValidationError(f"metadata.{key} must be a string")
