"""Provider factory for creating research provider instances.

The auto-research trigger always fans out to two providers: a
documentation lookup and a general web search.
"""

from typing import Optional, Tuple

import httpx

from research_gate.app.core.config import settings
from research_gate.app.core.logging import get_logger
from research_gate.app.providers.base import BaseResearchProvider
from research_gate.app.providers.documentation import DocumentationProvider
from research_gate.app.providers.mock import MockResearchProvider
from research_gate.app.providers.web_search import WebSearchProvider

logger = get_logger(__name__)


def create_research_providers(
    http_client: Optional[httpx.AsyncClient] = None,
    use_mock: Optional[bool] = None,
) -> Tuple[BaseResearchProvider, BaseResearchProvider]:
    """Create the documentation and web search providers from settings.

    Args:
        http_client: Optional shared HTTP client for connection pooling
        use_mock: Force mock providers (None = read from settings)

    Returns:
        (documentation provider, web search provider)
    """
    mock = use_mock if use_mock is not None else settings.research_mock_providers
    if mock:
        logger.info("Using mock research providers")
        return (
            MockResearchProvider(name=DocumentationProvider.name),
            MockResearchProvider(name=WebSearchProvider.name),
        )

    if not settings.docs_api_key:
        logger.warning("DOCS_API_KEY not set; documentation lookups may be throttled")
    if not settings.search_api_key:
        logger.warning("SEARCH_API_KEY not set; web search calls will likely fail")

    docs = DocumentationProvider(
        base_url=settings.docs_base_url,
        api_key=settings.docs_api_key,
        http_client=http_client,
        timeout=settings.docs_timeout,
    )
    search = WebSearchProvider(
        base_url=settings.search_base_url,
        api_key=settings.search_api_key,
        http_client=http_client,
        timeout=settings.search_timeout,
        max_results=settings.search_max_results,
    )
    return docs, search
