"""Mock research provider for testing purposes.

This provider simulates research lookups without making external API calls.
It's useful for local development when provider keys are not available.

Enable by setting environment variable:
    RESEARCH_MOCK_PROVIDERS=true
"""

import asyncio
import random
from typing import Any, Optional, Sequence

from research_gate.app.exceptions import ResearchProviderError
from research_gate.app.providers.base import BaseResearchProvider, ResearchFinding


class MockResearchProvider(BaseResearchProvider):
    """Mock provider that returns simulated findings.

    Features:
    - Simulates response delays (configurable)
    - Configurable failure rate for testing error handling
    - Fixed payload override for deterministic tests
    """

    def __init__(
        self,
        name: str = "mock",
        delay: float = 0.0,
        failure_rate: float = 0.0,
        payload: Optional[Any] = None,
    ):
        """Initialize the mock provider.

        Args:
            name: Provider name reported in findings
            delay: Simulated response delay in seconds
            failure_rate: Probability of raising ResearchProviderError (0-1)
            payload: Payload to return instead of the generated one
        """
        super().__init__(base_url=f"http://mock.{name}")
        self.name = name
        self.delay = delay
        self.failure_rate = failure_rate
        self.payload = payload
        self.calls = 0

    async def research(self, query: str, focus_areas: Sequence[str] = ()) -> ResearchFinding:
        self.calls += 1
        if self.delay:
            await asyncio.sleep(self.delay)

        if self.failure_rate and random.random() < self.failure_rate:
            raise ResearchProviderError(self.name, "Simulated provider failure")

        payload = self.payload
        if payload is None:
            payload = {
                "query": query,
                "focus_areas": list(focus_areas),
                "results": [f"{self.name} result for {query}"],
            }
        reference = f"{self.name}: {query}" if payload else None
        return ResearchFinding(source=self.name, payload=payload, reference=reference)
