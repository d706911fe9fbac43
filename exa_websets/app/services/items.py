"""Items collected by a webset."""

from typing import Any, Dict, List, Optional

from exa_websets.app.services.base import BaseService

ITEM_ENDPOINT = "/websets/{webset_id}/items/{item_id}"


class ItemService(BaseService):

    async def get(self, webset_id: str, item_id: str) -> Dict[str, Any]:
        self.validate_required({"webset_id": webset_id, "item_id": item_id}, ["webset_id", "item_id"])
        self.log_operation("get", webset_id=webset_id, item_id=item_id)
        return await self._get(self.build_endpoint(ITEM_ENDPOINT, webset_id=webset_id, item_id=item_id))

    async def list(
        self,
        webset_id: str,
        cursor: Optional[str] = None,
        limit: Optional[int] = None,
    ) -> Dict[str, Any]:
        self.validate_required({"webset_id": webset_id}, ["webset_id"])
        self.log_operation("list", webset_id=webset_id, cursor=cursor, limit=limit)
        endpoint = self.build_endpoint("/websets/{webset_id}/items", webset_id=webset_id)
        return await self._paginated(endpoint, cursor=cursor, limit=limit)

    async def delete(self, webset_id: str, item_id: str) -> Dict[str, Any]:
        self.validate_required({"webset_id": webset_id, "item_id": item_id}, ["webset_id", "item_id"])
        self.log_operation("delete", webset_id=webset_id, item_id=item_id)
        return await self._delete(self.build_endpoint(ITEM_ENDPOINT, webset_id=webset_id, item_id=item_id))

    async def get_all_items(self, webset_id: str, batch_size: int = 50) -> List[Dict[str, Any]]:
        """Follow ``nextCursor`` until the API reports no more pages."""
        items: List[Dict[str, Any]] = []
        cursor: Optional[str] = None

        while True:
            page = await self.list(webset_id, cursor=cursor, limit=batch_size)
            items.extend(page.get("data") or [])
            cursor = page.get("nextCursor")
            if not page.get("hasMore") or not cursor:
                break

        return items

    async def search_items_by_content(self, webset_id: str, search_term: str) -> List[Dict[str, Any]]:
        """Case-insensitive substring match on item title and content."""
        self.validate_required(
            {"webset_id": webset_id, "search_term": search_term}, ["webset_id", "search_term"]
        )
        term = search_term.lower()
        return [
            item
            for item in await self.get_all_items(webset_id)
            if term in str(item.get("title") or "").lower() or term in str(item.get("content") or "").lower()
        ]
