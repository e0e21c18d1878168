from abc import ABC, abstractmethod
from contextlib import asynccontextmanager
from dataclasses import dataclass
from typing import Any, Dict, Optional, Sequence

import httpx


@dataclass
class ResearchFinding:
    """Result of one research provider call.

    Attributes:
        source: Provider name the finding came from
        payload: Opaque provider response
        reference: Human readable reference, None when nothing was found
    """
    source: str
    payload: Any
    reference: Optional[str] = None


class BaseResearchProvider(ABC):
    """Base class for external research providers.

    Subclasses can accept an external httpx.AsyncClient for connection pooling,
    or create their own if not provided.
    """

    name: str = "base"

    def __init__(
        self,
        base_url: str,
        api_key: str = "",
        http_client: Optional[httpx.AsyncClient] = None,
        timeout: float = 20.0
    ):
        """Initialize the provider.

        Args:
            base_url: The API base URL
            api_key: The API key for authentication
            http_client: Optional shared HTTP client for connection pooling
            timeout: Request timeout in seconds
        """
        self._http_client = http_client
        self.base_url = base_url.rstrip('/')
        self.api_key = api_key
        self.timeout = timeout
        self.headers = self._build_headers()

    @property
    def http_client(self) -> Optional[httpx.AsyncClient]:
        """Get the HTTP client, if one was provided."""
        return self._http_client

    def _build_headers(self) -> Dict[str, str]:
        """Build the HTTP headers for API requests.

        Returns:
            Dictionary of HTTP headers
        """
        headers = {"Accept": "application/json"}
        if self.api_key:
            headers["Authorization"] = f"Bearer {self.api_key}"
        return headers

    def _get_client(self) -> httpx.AsyncClient:
        if self._http_client is not None:
            return self._http_client
        return httpx.AsyncClient(timeout=self.timeout)

    @asynccontextmanager
    async def _client_context(self):
        """Context manager for HTTP client lifecycle.

        If using shared client, just yield it.
        If using per-request client, manage its lifecycle.

        Yields:
            httpx.AsyncClient: HTTP client to use
        """
        client = self._get_client()
        is_shared = self._http_client is not None
        try:
            yield client
        finally:
            if not is_shared:
                await client.aclose()

    def _get_endpoint_url(self, endpoint: str) -> str:
        return f"{self.base_url}{endpoint}"

    @abstractmethod
    async def research(self, query: str, focus_areas: Sequence[str] = ()) -> ResearchFinding:
        """Look up information for a research question.

        Args:
            query: Free text research question
            focus_areas: Topics to narrow the lookup, may be empty

        Returns:
            ResearchFinding with the raw payload and a reference string

        Raises:
            ResearchProviderError: If the provider call fails
        """
        pass
