"""Recommendation decision log endpoints."""

from typing import Any, Optional

from fastapi import APIRouter, Depends, status
from pydantic import BaseModel, Field

from research_gate.app.api.dependencies import get_log
from research_gate.app.services.recommendation_log import (
    RecommendationLog,
    RecommendationRecord,
)

router = APIRouter(prefix="/recommendations", tags=["recommendations"])


class RecommendationCreate(BaseModel):
    feature_name: str = Field(..., min_length=1)
    confidence: int = Field(..., ge=0, le=100)
    accepted: bool
    research_triggered: bool = False
    session_id: Optional[str] = None


@router.post("", status_code=status.HTTP_201_CREATED)
def record_recommendation(
    body: RecommendationCreate,
    log: RecommendationLog = Depends(get_log),
) -> dict[str, Any]:
    """Append one planning decision to the log."""
    record = RecommendationRecord(**body.model_dump())
    log.append(record)
    return record.to_dict()


@router.get("/summary")
def recommendation_summary(
    recent: int = 3,
    log: RecommendationLog = Depends(get_log),
) -> dict[str, Any]:
    """Acceptance, research and confidence metrics over the log."""
    return log.summarize(recent_count=recent).to_dict()
