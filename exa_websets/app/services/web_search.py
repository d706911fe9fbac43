"""Exa web search and its domain-focused variants, sent through the same resilient client."""

from typing import Any, Dict, List, Optional

from exa_websets.app.services.base import BaseService

DEFAULT_NUM_RESULTS = 5
DEFAULT_MAX_CHARACTERS = 3000


class WebSearchService(BaseService):

    async def search(
        self,
        query: str,
        num_results: int = DEFAULT_NUM_RESULTS,
        include_domains: Optional[List[str]] = None,
        category: Optional[str] = None,
        max_characters: int = DEFAULT_MAX_CHARACTERS,
        livecrawl: str = "always",
    ) -> Dict[str, Any]:
        """Search the web and return results with page text.

        Args:
            query: Search query
            num_results: Number of results to return
            include_domains: Restrict results to these domains
            category: Exa content category, e.g. "research paper"
            max_characters: Cap on page text per result
            livecrawl: Exa livecrawl mode ("always" or "fallback")

        Returns:
            The search response with ``results``
        """
        self.validate_required({"query": query}, ["query"])
        self.log_operation(
            "search", query=query, num_results=num_results, include_domains=include_domains, category=category
        )

        url = f"{self.api_client.config.search_base_url}/search"
        body: Dict[str, Any] = {
            "query": query,
            "type": "auto",
            "numResults": num_results or DEFAULT_NUM_RESULTS,
            "contents": {
                "text": {"maxCharacters": max_characters or DEFAULT_MAX_CHARACTERS},
                "livecrawl": livecrawl,
            },
        }
        if include_domains:
            body["includeDomains"] = include_domains
        if category:
            body["category"] = category
        return await self._post(url, body)

    async def search_github(self, query: str, num_results: int = DEFAULT_NUM_RESULTS) -> Dict[str, Any]:
        # Queries that don't mention GitHub get a prefix steering Exa to repositories
        if "github" not in query.lower():
            query = f"exa.ai GitHub: {query}"
        return await self.search(query, num_results, include_domains=["github.com"])

    async def search_linkedin(self, query: str, num_results: int = DEFAULT_NUM_RESULTS) -> Dict[str, Any]:
        return await self.search(query, num_results, include_domains=["linkedin.com"])

    async def search_wikipedia(self, query: str, num_results: int = DEFAULT_NUM_RESULTS) -> Dict[str, Any]:
        return await self.search(query, num_results, include_domains=["wikipedia.org"])

    async def search_research_papers(
        self,
        query: str,
        num_results: int = DEFAULT_NUM_RESULTS,
        max_characters: int = DEFAULT_MAX_CHARACTERS,
    ) -> Dict[str, Any]:
        """Search academic papers; live crawling only as a fallback."""
        return await self.search(
            query,
            num_results,
            category="research paper",
            max_characters=max_characters,
            livecrawl="fallback",
        )
