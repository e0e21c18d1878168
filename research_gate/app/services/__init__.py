"""Services package for research gate."""

from research_gate.app.services.auto_research import (
    AutoResearchResult,
    AutoResearchTrigger,
    get_auto_research_trigger,
    reset_auto_research_trigger,
    should_trigger_auto_research,
    trigger_auto_research,
)
from research_gate.app.services.confidence import (
    ConfidenceInput,
    ConfidenceResult,
    calculate_confidence,
)
from research_gate.app.services.recommendation_log import (
    RecommendationLog,
    RecommendationRecord,
    RecommendationSummary,
    summarize,
)

__all__ = [
    "AutoResearchResult",
    "AutoResearchTrigger",
    "get_auto_research_trigger",
    "reset_auto_research_trigger",
    "should_trigger_auto_research",
    "trigger_auto_research",
    "ConfidenceInput",
    "ConfidenceResult",
    "calculate_confidence",
    "RecommendationLog",
    "RecommendationRecord",
    "RecommendationSummary",
    "summarize",
]
