"""Research providers package.

This package provides:
- Base provider interface (BaseResearchProvider, ResearchFinding)
- Provider implementations (DocumentationProvider, WebSearchProvider)
- Mock provider for development and tests (MockResearchProvider)
- Factory building the provider pair from settings
"""

from research_gate.app.providers.base import BaseResearchProvider, ResearchFinding
from research_gate.app.providers.documentation import DocumentationProvider
from research_gate.app.providers.factory import create_research_providers
from research_gate.app.providers.mock import MockResearchProvider
from research_gate.app.providers.web_search import WebSearchProvider

__all__ = [
    "BaseResearchProvider",
    "ResearchFinding",
    "DocumentationProvider",
    "WebSearchProvider",
    "MockResearchProvider",
    "create_research_providers",
]
