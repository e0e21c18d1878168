"""FastAPI dependencies resolving the components wired in the lifespan."""

from fastapi import Request

from research_gate.app.rate_limit import RateLimiter, get_rate_limit_store
from research_gate.app.services.auto_research import (
    AutoResearchTrigger,
    get_auto_research_trigger,
)
from research_gate.app.services.recommendation_log import (
    RecommendationLog,
    get_recommendation_log,
)


def get_rate_limiter(request: Request) -> RateLimiter:
    return getattr(request.app.state, "rate_limiter", None) or get_rate_limit_store()


def get_trigger(request: Request) -> AutoResearchTrigger:
    return getattr(request.app.state, "auto_research_trigger", None) or get_auto_research_trigger()


def get_log() -> RecommendationLog:
    return get_recommendation_log()
