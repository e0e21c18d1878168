"""Recommendation decision log.

Each planning recommendation is appended as one JSON line so acceptance
and research rates can be analysed over time. Field names follow the
camelCase layout the planning tooling already writes.
"""

import json
from dataclasses import asdict, dataclass, field
from datetime import datetime, timezone
from pathlib import Path
from typing import Any, Dict, Iterable, List, Optional

from research_gate.app.core.config import settings
from research_gate.app.core.logging import get_logger

logger = get_logger(__name__)

# Success criteria
TARGET_ACCEPTANCE_RATE = 70
TARGET_RESEARCH_RATE_MIN = 25
TARGET_RESEARCH_RATE_MAX = 35


@dataclass
class RecommendationRecord:
    """One planning decision."""
    feature_name: str
    confidence: int
    accepted: bool
    research_triggered: bool = False
    session_id: Optional[str] = None
    timestamp: str = field(
        default_factory=lambda: datetime.now(timezone.utc).isoformat()
    )

    def to_dict(self) -> Dict[str, Any]:
        """Convert to the on-disk JSON layout."""
        return {
            "featureName": self.feature_name,
            "confidence": self.confidence,
            "accepted": self.accepted,
            "researchTriggered": self.research_triggered,
            "sessionId": self.session_id,
            "timestamp": self.timestamp,
        }

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "RecommendationRecord":
        """Create from the on-disk JSON layout."""
        return cls(
            feature_name=str(data.get("featureName", "")),
            confidence=int(data.get("confidence", 0)),
            accepted=bool(data.get("accepted", False)),
            research_triggered=bool(data.get("researchTriggered", False)),
            session_id=data.get("sessionId"),
            timestamp=data.get("timestamp") or "",
        )


@dataclass
class RecommendationSummary:
    """Aggregate metrics over the decision log. Rates are integer percents."""
    total: int = 0
    accepted: int = 0
    acceptance_rate: int = 0
    research_triggered: int = 0
    research_rate: int = 0
    avg_confidence_accepted: int = 0
    avg_confidence_rejected: int = 0
    recent: List[RecommendationRecord] = field(default_factory=list)

    @property
    def rejected(self) -> int:
        return self.total - self.accepted

    @property
    def acceptance_target_met(self) -> bool:
        return self.acceptance_rate >= TARGET_ACCEPTANCE_RATE

    @property
    def research_rate_advice(self) -> str:
        """Threshold tuning advice derived from the research trigger rate."""
        if self.research_rate < TARGET_RESEARCH_RATE_MIN:
            return "consider lowering threshold"
        if self.research_rate > TARGET_RESEARCH_RATE_MAX:
            return "consider raising threshold"
        return "on target"

    def to_dict(self) -> Dict[str, Any]:
        data = asdict(self)
        data["rejected"] = self.rejected
        data["acceptance_target_met"] = self.acceptance_target_met
        data["research_rate_advice"] = self.research_rate_advice
        data["recent"] = [r.to_dict() for r in self.recent]
        return data


def _average(values: List[int]) -> int:
    return int(sum(values) / len(values)) if values else 0


def summarize(records: Iterable[RecommendationRecord], recent_count: int = 3) -> RecommendationSummary:
    """Compute acceptance, research and confidence metrics.

    Args:
        records: Decisions in log order
        recent_count: Number of trailing records to keep for display

    Returns:
        RecommendationSummary (all zeros for an empty log)
    """
    records = list(records)
    total = len(records)
    if total == 0:
        return RecommendationSummary()

    accepted = [r for r in records if r.accepted]
    rejected = [r for r in records if not r.accepted]
    research_triggered = sum(1 for r in records if r.research_triggered)

    return RecommendationSummary(
        total=total,
        accepted=len(accepted),
        acceptance_rate=len(accepted) * 100 // total,
        research_triggered=research_triggered,
        research_rate=research_triggered * 100 // total,
        avg_confidence_accepted=_average([r.confidence for r in accepted]),
        avg_confidence_rejected=_average([r.confidence for r in rejected]),
        recent=records[-recent_count:] if recent_count > 0 else [],
    )


class RecommendationLog:
    """Append-only JSON lines store for recommendation decisions."""

    def __init__(self, path: Optional[str | Path] = None):
        self.path = Path(path or settings.recommendation_log_path)

    def exists(self) -> bool:
        return self.path.is_file()

    def append(self, record: RecommendationRecord) -> None:
        """Append one decision, creating the log directory if needed."""
        self.path.parent.mkdir(parents=True, exist_ok=True)
        with self.path.open("a", encoding="utf-8") as f:
            line = json.dumps(record.to_dict(), ensure_ascii=False, separators=(",", ":"))
            f.write(line + "\n")

    def read(self) -> List[RecommendationRecord]:
        """Read every decision. Malformed lines are skipped with a warning."""
        if not self.exists():
            return []
        records: List[RecommendationRecord] = []
        with self.path.open("r", encoding="utf-8") as f:
            for lineno, line in enumerate(f, start=1):
                line = line.strip()
                if not line:
                    continue
                try:
                    data = json.loads(line)
                    records.append(RecommendationRecord.from_dict(data))
                except (json.JSONDecodeError, TypeError, ValueError, AttributeError) as e:
                    logger.warning(f"Skipping malformed line {lineno} in {self.path}: {e}")
        return records

    def summarize(self, recent_count: int = 3) -> RecommendationSummary:
        return summarize(self.read(), recent_count=recent_count)


def get_recommendation_log() -> RecommendationLog:
    """Recommendation log at the configured path."""
    return RecommendationLog(settings.recommendation_log_path)
