"""Confidence scoring for planning recommendations.

Scores how certain a recommendation is from four factors. The weights add
up to 100, so a recommendation with deep research, an exact stack match,
a simple architecture and current knowledge scores 100%.
"""

from dataclasses import dataclass, field, replace
from enum import Enum
from typing import Any, Dict, List, Optional


class ResearchDepth(str, Enum):
    LOW = "low"
    MEDIUM = "medium"
    HIGH = "high"


class TechStackMatch(str, Enum):
    EXACT = "exact"
    PARTIAL = "partial"
    NONE = "none"


class ArchitectureSimplicity(str, Enum):
    SIMPLE = "simple"
    MODERATE = "moderate"
    COMPLEX = "complex"


class KnowledgeRecency(str, Enum):
    CURRENT = "current"
    RECENT = "recent"
    OUTDATED = "outdated"


RESEARCH_DEPTH_WEIGHTS = {
    ResearchDepth.HIGH: 30,
    ResearchDepth.MEDIUM: 20,
    ResearchDepth.LOW: 10,
}
TECH_STACK_WEIGHTS = {
    TechStackMatch.EXACT: 30,
    TechStackMatch.PARTIAL: 18,
    TechStackMatch.NONE: 5,
}
SIMPLICITY_WEIGHTS = {
    ArchitectureSimplicity.SIMPLE: 20,
    ArchitectureSimplicity.MODERATE: 12,
    ArchitectureSimplicity.COMPLEX: 5,
}
RECENCY_WEIGHTS = {
    KnowledgeRecency.CURRENT: 20,
    KnowledgeRecency.RECENT: 12,
    KnowledgeRecency.OUTDATED: 5,
}


@dataclass
class ConfidenceInput:
    """Factors the scorer weighs.

    Plain strings are accepted for the enum fields and converted.
    """
    research_depth: ResearchDepth = ResearchDepth.MEDIUM
    tech_stack_match: TechStackMatch = TechStackMatch.PARTIAL
    architecture_simplicity: ArchitectureSimplicity = ArchitectureSimplicity.MODERATE
    knowledge_recency: KnowledgeRecency = KnowledgeRecency.RECENT
    context: Optional[str] = None
    findings: Optional[Dict[str, Any]] = None

    def __post_init__(self) -> None:
        self.research_depth = ResearchDepth(self.research_depth)
        self.tech_stack_match = TechStackMatch(self.tech_stack_match)
        self.architecture_simplicity = ArchitectureSimplicity(self.architecture_simplicity)
        self.knowledge_recency = KnowledgeRecency(self.knowledge_recency)


@dataclass
class ConfidenceResult:
    """A 0-100 confidence score with its reasoning.

    inputs is kept so the score can be recomputed after research.
    """
    percentage: int
    reasoning: str
    inputs: Optional[ConfidenceInput] = field(default=None, compare=False)

    def __post_init__(self) -> None:
        if not 0 <= self.percentage <= 100:
            raise ValueError("percentage must be between 0 and 100")


def calculate_confidence(inputs: ConfidenceInput) -> ConfidenceResult:
    """Score a recommendation.

    Args:
        inputs: The four factors plus optional context and findings

    Returns:
        ConfidenceResult carrying the inputs it was computed from
    """
    parts = [
        RESEARCH_DEPTH_WEIGHTS[inputs.research_depth],
        TECH_STACK_WEIGHTS[inputs.tech_stack_match],
        SIMPLICITY_WEIGHTS[inputs.architecture_simplicity],
        RECENCY_WEIGHTS[inputs.knowledge_recency],
    ]
    percentage = max(0, min(100, sum(parts)))

    reasons: List[str] = [
        f"research depth {inputs.research_depth.value} (+{parts[0]})",
        f"tech stack match {inputs.tech_stack_match.value} (+{parts[1]})",
        f"architecture {inputs.architecture_simplicity.value} (+{parts[2]})",
        f"knowledge {inputs.knowledge_recency.value} (+{parts[3]})",
    ]
    if inputs.findings:
        reasons.append(f"informed by {len(inputs.findings)} research source(s)")
    if inputs.context:
        reasons.append(f"context: {inputs.context}")

    return ConfidenceResult(
        percentage=percentage,
        reasoning="; ".join(reasons),
        inputs=inputs,
    )


def with_research(inputs: Optional[ConfidenceInput], findings: Dict[str, Any], context: str) -> ConfidenceInput:
    """Copy of inputs marked as deeply researched, carrying new findings."""
    base = inputs or ConfidenceInput()
    merged_context = f"{base.context}\n{context}" if base.context else context
    return replace(
        base,
        research_depth=ResearchDepth.HIGH,
        findings=findings,
        context=merged_context,
    )
