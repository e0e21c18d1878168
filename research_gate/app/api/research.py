"""Session rate limit and auto-research endpoints."""

from typing import Any, Optional

from fastapi import APIRouter, Depends, Request, Response, status
from pydantic import BaseModel, Field

from research_gate.app.api.dependencies import get_rate_limiter, get_trigger
from research_gate.app.core.config import settings
from research_gate.app.core.logging import get_log_context, get_logger
from research_gate.app.middleware.request_id import get_request_id
from research_gate.app.rate_limit import RateLimiter
from research_gate.app.services.auto_research import (
    AutoResearchTrigger,
    should_trigger_auto_research,
)
from research_gate.app.services.confidence import (
    ArchitectureSimplicity,
    ConfidenceInput,
    ConfidenceResult,
    KnowledgeRecency,
    ResearchDepth,
    TechStackMatch,
)

logger = get_logger(__name__)
router = APIRouter(prefix="/sessions", tags=["auto-research"])


class ConfidenceFactors(BaseModel):
    """Scorer inputs, used to rescore after research."""

    research_depth: ResearchDepth = ResearchDepth.MEDIUM
    tech_stack_match: TechStackMatch = TechStackMatch.PARTIAL
    architecture_simplicity: ArchitectureSimplicity = ArchitectureSimplicity.MODERATE
    knowledge_recency: KnowledgeRecency = KnowledgeRecency.RECENT
    context: Optional[str] = None


class ConfidencePayload(BaseModel):
    percentage: int = Field(..., ge=0, le=100)
    reasoning: str = ""
    factors: Optional[ConfidenceFactors] = None

    def to_result(self) -> ConfidenceResult:
        inputs = ConfidenceInput(**self.factors.model_dump()) if self.factors else None
        return ConfidenceResult(
            percentage=self.percentage, reasoning=self.reasoning, inputs=inputs
        )


class ResearchRequest(BaseModel):
    confidence: ConfidencePayload
    query: str = Field(..., min_length=1)
    focus_areas: list[str] = Field(default_factory=list)
    enforce_limit: bool = False  # Respond 429 instead of an untriggered result


class ResearchResponse(BaseModel):
    triggered: bool
    new_confidence: int
    external_refs: list[str]
    enhanced_findings: Optional[dict[str, Any]] = None
    skipped_reason: Optional[str] = None


class RateLimitStatus(BaseModel):
    session_id: str
    count: int
    max_triggers: int
    allowed: bool


@router.get("/{session_id}/rate-limit", response_model=RateLimitStatus)
async def get_rate_limit_status(
    session_id: str,
    limiter: RateLimiter = Depends(get_rate_limiter),
) -> RateLimitStatus:
    """Current auto-research usage for a session."""
    allowed = await limiter.check(session_id)
    count = await limiter.get_count(session_id)
    return RateLimitStatus(
        session_id=session_id,
        count=count,
        max_triggers=limiter.max_triggers,
        allowed=allowed,
    )


@router.delete("/{session_id}/rate-limit", status_code=status.HTTP_204_NO_CONTENT)
async def reset_rate_limit_status(
    session_id: str,
    limiter: RateLimiter = Depends(get_rate_limiter),
) -> Response:
    """Forget a session's usage, e.g. when the session is restarted."""
    await limiter.reset(session_id)
    logger.info("Rate limit reset", extra=get_log_context(session_id=session_id))
    return Response(status_code=status.HTTP_204_NO_CONTENT)


@router.post("/{session_id}/research", response_model=ResearchResponse)
async def run_auto_research(
    session_id: str,
    body: ResearchRequest,
    request: Request,
    limiter: RateLimiter = Depends(get_rate_limiter),
    trigger: AutoResearchTrigger = Depends(get_trigger),
) -> ResearchResponse:
    """Run auto-research when confidence is below the threshold.

    With enforce_limit an exhausted budget raises RateLimitExceededError,
    which the app maps to HTTP 429.
    """
    confidence = body.confidence.to_result()
    context = get_log_context(session_id=session_id, request_id=get_request_id(request))

    if not should_trigger_auto_research(confidence):
        logger.debug(
            f"Confidence {confidence.percentage}% meets threshold "
            f"{settings.confidence_threshold}%, skipping research",
            extra=context,
        )
        return ResearchResponse(
            triggered=False,
            new_confidence=confidence.percentage,
            external_refs=[],
            skipped_reason="confidence_above_threshold",
        )

    if body.enforce_limit:
        await limiter.enforce(session_id)

    result = await trigger.trigger(session_id, confidence, body.query, body.focus_areas)
    return ResearchResponse(
        triggered=result.triggered,
        new_confidence=result.new_confidence,
        external_refs=result.external_refs,
        enhanced_findings=result.enhanced_findings,
    )
