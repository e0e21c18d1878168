"""HTTP routes for research gate."""

from research_gate.app.api.recommendations import router as recommendations_router
from research_gate.app.api.research import router as research_router

__all__ = ["recommendations_router", "research_router"]
