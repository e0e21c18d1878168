"""General web search provider."""

from typing import Any, Dict, Optional, Sequence

import httpx

from research_gate.app.exceptions import ResearchProviderError
from research_gate.app.providers.base import BaseResearchProvider, ResearchFinding


class WebSearchProvider(BaseResearchProvider):
    """Web search provider (Brave Search compatible API).

    The focus areas are appended to the query string so the search engine
    weights them alongside the question.
    """

    name = "web_search"

    def __init__(
        self,
        base_url: str,
        api_key: str = "",
        http_client: Optional[httpx.AsyncClient] = None,
        timeout: float = 20.0,
        max_results: int = 5,
    ):
        super().__init__(base_url, api_key, http_client, timeout)
        self.max_results = max_results

    def _build_headers(self) -> Dict[str, str]:
        # Brave authenticates with a subscription token header only
        headers = {"Accept": "application/json"}
        if self.api_key:
            headers["X-Subscription-Token"] = self.api_key
        return headers

    @staticmethod
    def build_query(query: str, focus_areas: Sequence[str]) -> str:
        if not focus_areas:
            return query
        return f"{query} {' '.join(focus_areas)}"

    async def research(self, query: str, focus_areas: Sequence[str] = ()) -> ResearchFinding:
        """Run a web search for the query.

        Raises:
            ResearchProviderError: If the API is unreachable or returns an error
        """
        search_query = self.build_query(query, focus_areas)
        params: Dict[str, Any] = {"q": search_query, "count": self.max_results}
        url = self._get_endpoint_url("/search")
        try:
            async with self._client_context() as client:
                resp = await client.get(
                    url, headers=self.headers, params=params, timeout=self.timeout
                )
                resp.raise_for_status()
                payload = resp.json()
        except (httpx.HTTPError, ValueError) as e:
            raise ResearchProviderError(self.name, f"{type(e).__name__}: {e}") from e

        reference = f"Web search: {search_query}" if payload else None
        return ResearchFinding(source=self.name, payload=payload, reference=reference)
