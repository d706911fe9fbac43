"""Webhook registrations for webset events."""

from typing import Any, Dict, List, Optional

from exa_websets.app.exceptions import ServiceValidationError
from exa_websets.app.services.base import BaseService

WEBHOOK_ENDPOINT = "/webhooks/{webhook_id}"


class WebhookService(BaseService):
    """Manage webhooks.

    Signature verification of delivered payloads is left to the receiver.
    """

    async def list(self, cursor: Optional[str] = None, limit: Optional[int] = None) -> Dict[str, Any]:
        self.log_operation("list", cursor=cursor, limit=limit)
        return await self._paginated("/webhooks", cursor=cursor, limit=limit)

    async def get(self, webhook_id: str) -> Dict[str, Any]:
        self.validate_required({"webhook_id": webhook_id}, ["webhook_id"])
        self.log_operation("get", webhook_id=webhook_id)
        return await self._get(self.build_endpoint(WEBHOOK_ENDPOINT, webhook_id=webhook_id))

    async def create(
        self,
        url: str,
        events: List[str],
        metadata: Optional[Dict[str, str]] = None,
    ) -> Dict[str, Any]:
        self.validate_required({"url": url}, ["url"])
        self.validate_webhook(url, events)
        self.log_operation("create", url=url, events=events)
        return await self._post("/webhooks", self.sanitize_params({"url": url, "events": events, "metadata": metadata}))

    async def update(self, webhook_id: str, request: Dict[str, Any]) -> Dict[str, Any]:
        self.validate_required({"webhook_id": webhook_id}, ["webhook_id"])
        if "url" in request:
            self.validate_url(request["url"])
        if "events" in request and not request["events"]:
            raise ServiceValidationError("At least one event type is required")
        self.log_operation("update", webhook_id=webhook_id)
        endpoint = self.build_endpoint(WEBHOOK_ENDPOINT, webhook_id=webhook_id)
        return await self._put(endpoint, self.sanitize_params(request))

    async def delete(self, webhook_id: str) -> Dict[str, Any]:
        self.validate_required({"webhook_id": webhook_id}, ["webhook_id"])
        self.log_operation("delete", webhook_id=webhook_id)
        return await self._delete(self.build_endpoint(WEBHOOK_ENDPOINT, webhook_id=webhook_id))

    async def list_attempts(
        self,
        webhook_id: str,
        cursor: Optional[str] = None,
        limit: Optional[int] = None,
        event_type: Optional[str] = None,
    ) -> Dict[str, Any]:
        """Delivery attempts for one webhook, optionally filtered by event type."""
        self.validate_required({"webhook_id": webhook_id}, ["webhook_id"])
        endpoint = self.build_endpoint(WEBHOOK_ENDPOINT + "/attempts", webhook_id=webhook_id)
        params = self.sanitize_params({"eventType": event_type})
        return await self._paginated(endpoint, params, cursor=cursor, limit=limit)

    @staticmethod
    def validate_url(url: str) -> None:
        if not isinstance(url, str) or not url.startswith(("http://", "https://")):
            raise ServiceValidationError("Webhook url must start with http:// or https://")

    @staticmethod
    def validate_webhook(url: str, events: Optional[List[str]]) -> None:
        WebhookService.validate_url(url)
        if not events:
            raise ServiceValidationError("At least one event type is required")
