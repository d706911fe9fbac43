"""Read access to the webset event log."""

from typing import Any, Dict, List, Optional

from exa_websets.app.services.base import BaseService


class EventService(BaseService):

    async def list(
        self,
        cursor: Optional[str] = None,
        limit: Optional[int] = None,
        types: Optional[List[str]] = None,
    ) -> Dict[str, Any]:
        self.log_operation("list", cursor=cursor, limit=limit, types=types)
        params = {"types": ",".join(types)} if types else None
        return await self._paginated("/events", params, cursor=cursor, limit=limit)

    async def get(self, event_id: str) -> Dict[str, Any]:
        self.validate_required({"event_id": event_id}, ["event_id"])
        self.log_operation("get", event_id=event_id)
        return await self._get(self.build_endpoint("/events/{event_id}", event_id=event_id))
