"""Enrichments that extract extra fields for every webset item."""

from typing import Any, Dict, List, Optional

from exa_websets.app.exceptions import ServiceValidationError
from exa_websets.app.services.base import BaseService

ENRICHMENT_ENDPOINT = "/websets/{webset_id}/enrichments/{enrichment_id}"

ENRICHMENT_FORMATS = ("text", "date", "number", "options", "email", "phone")
MAX_OPTIONS = 50


class EnrichmentService(BaseService):

    async def create(
        self,
        webset_id: str,
        description: str,
        format: Optional[str] = None,
        options: Optional[List[Dict[str, str]]] = None,
        metadata: Optional[Dict[str, str]] = None,
    ) -> Dict[str, Any]:
        self.validate_required(
            {"webset_id": webset_id, "description": description}, ["webset_id", "description"]
        )
        self.validate_enrichment(description, format, options)
        self.log_operation("create", webset_id=webset_id, format=format)

        endpoint = self.build_endpoint("/websets/{webset_id}/enrichments", webset_id=webset_id)
        body = self.sanitize_params(
            {"description": description, "format": format, "options": options, "metadata": metadata}
        )
        return await self._post(endpoint, body)

    async def get(self, webset_id: str, enrichment_id: str) -> Dict[str, Any]:
        self._validate_ids(webset_id, enrichment_id)
        self.log_operation("get", webset_id=webset_id, enrichment_id=enrichment_id)
        return await self._get(self._endpoint(webset_id, enrichment_id))

    async def delete(self, webset_id: str, enrichment_id: str) -> Dict[str, Any]:
        self._validate_ids(webset_id, enrichment_id)
        self.log_operation("delete", webset_id=webset_id, enrichment_id=enrichment_id)
        return await self._delete(self._endpoint(webset_id, enrichment_id))

    async def cancel(self, webset_id: str, enrichment_id: str) -> Dict[str, Any]:
        self._validate_ids(webset_id, enrichment_id)
        self.log_operation("cancel", webset_id=webset_id, enrichment_id=enrichment_id)
        return await self._post(self._endpoint(webset_id, enrichment_id) + "/cancel")

    @staticmethod
    def validate_enrichment(
        description: str,
        format: Optional[str] = None,
        options: Optional[List[Dict[str, str]]] = None,
    ) -> None:
        """Check description, format and the option list for ``options`` enrichments."""
        if not isinstance(description, str) or not description.strip():
            raise ServiceValidationError("Description must be a non-empty string")

        if format is not None and format not in ENRICHMENT_FORMATS:
            raise ServiceValidationError(f"Format must be one of: {', '.join(ENRICHMENT_FORMATS)}")

        if format == "options":
            if not options:
                raise ServiceValidationError("Options are required for options format")
            if len(options) > MAX_OPTIONS:
                raise ServiceValidationError(f"Maximum {MAX_OPTIONS} options allowed")
            for option in options:
                if not str(option.get("label") or "").strip():
                    raise ServiceValidationError("Each option must have a non-empty label")

    def _validate_ids(self, webset_id: str, enrichment_id: str) -> None:
        self.validate_required(
            {"webset_id": webset_id, "enrichment_id": enrichment_id}, ["webset_id", "enrichment_id"]
        )

    def _endpoint(self, webset_id: str, enrichment_id: str) -> str:
        return self.build_endpoint(ENRICHMENT_ENDPOINT, webset_id=webset_id, enrichment_id=enrichment_id)
