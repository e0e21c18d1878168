"""Documentation lookup provider.

Queries a library documentation search service (Context7 compatible API)
for docs matching the research question and its focus areas.
"""

from typing import Any, Dict, Optional, Sequence

import httpx

from research_gate.app.exceptions import ResearchProviderError
from research_gate.app.providers.base import BaseResearchProvider, ResearchFinding


class DocumentationProvider(BaseResearchProvider):
    """Documentation search provider with shared HTTP client support."""

    name = "documentation"

    def __init__(
        self,
        base_url: str,
        api_key: str = "",
        http_client: Optional[httpx.AsyncClient] = None,
        timeout: float = 20.0,
        max_tokens: int = 5000,
    ):
        super().__init__(base_url, api_key, http_client, timeout)
        self.max_tokens = max_tokens

    def _build_params(self, query: str, focus_areas: Sequence[str]) -> Dict[str, Any]:
        params: Dict[str, Any] = {"query": query, "tokens": self.max_tokens}
        if focus_areas:
            params["topic"] = ",".join(focus_areas)
        return params

    async def research(self, query: str, focus_areas: Sequence[str] = ()) -> ResearchFinding:
        """Search documentation for the query.

        Raises:
            ResearchProviderError: If the API is unreachable or returns an error
        """
        url = self._get_endpoint_url("/search")
        try:
            async with self._client_context() as client:
                resp = await client.get(
                    url,
                    headers=self.headers,
                    params=self._build_params(query, focus_areas),
                    timeout=self.timeout,
                )
                resp.raise_for_status()
                payload = resp.json()
        except (httpx.HTTPError, ValueError) as e:
            raise ResearchProviderError(self.name, f"{type(e).__name__}: {e}") from e

        reference = f"Documentation lookup: {query}" if payload else None
        return ResearchFinding(source=self.name, payload=payload, reference=reference)
