"""Text report over the recommendation decision log.

Usage:
    python scripts/analyze_recommendations.py [--log-file PATH] [--json]
"""

import argparse
import json
import sys
from typing import List, Optional

from research_gate.app.core.config import settings
from research_gate.app.services.recommendation_log import (
    TARGET_ACCEPTANCE_RATE,
    RecommendationLog,
    RecommendationSummary,
)

RULE = "━" * 40


def render_report(summary: RecommendationSummary, log_path: str) -> str:
    """Render the summary the way the planning tooling prints it."""
    lines: List[str] = [
        RULE,
        "📊 Confidence Recommendation Analysis",
        RULE,
        "",
        "📈 Overall Metrics",
        f"   Total recommendations: {summary.total}",
        f"   Accepted: {summary.accepted} ({summary.acceptance_rate}%)",
        f"   Rejected: {summary.rejected} ({100 - summary.acceptance_rate}%)",
        "",
        "🔍 Research Triggers",
        f"   Research triggered: {summary.research_triggered} ({summary.research_rate}%)",
        f"   Direct recommendations: {summary.total - summary.research_triggered} "
        f"({100 - summary.research_rate}%)",
        "",
        "🎯 Confidence Levels",
        f"   Avg confidence (accepted): {summary.avg_confidence_accepted}%",
        f"   Avg confidence (rejected): {summary.avg_confidence_rejected}%",
        "",
        RULE,
        "✅ Success Criteria",
        "",
    ]

    mark = "✅" if summary.acceptance_target_met else "⚠️ "
    lines.append(
        f"   {mark} Acceptance rate: {summary.acceptance_rate}% "
        f"(target: ≥{TARGET_ACCEPTANCE_RATE}%)"
    )

    advice = summary.research_rate_advice
    if advice == "on target":
        lines.append(f"   ✅ Research trigger rate: {summary.research_rate}% (target: ~30%)")
    else:
        lines.append(
            f"   ⚠️  Research trigger rate: {summary.research_rate}% (target: ~30%, {advice})"
        )

    lines += [
        "",
        RULE,
        "📝 Detailed Logs",
        f"   View log file: {log_path}",
        "   Recent entries:",
        "",
    ]
    for record in summary.recent:
        lines.append(
            f"   - {record.feature_name} ({record.confidence}% confidence, "
            f"accepted: {str(record.accepted).lower()})"
        )
    lines += ["", RULE]
    return "\n".join(lines)


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        description="Analyze confidence-based recommendation decisions"
    )
    parser.add_argument(
        "--log-file",
        default=settings.recommendation_log_path,
        help="Path to the recommendations JSON lines log",
    )
    parser.add_argument("--json", action="store_true", help="Print the summary as JSON")
    parser.add_argument("--recent", type=int, default=3, help="Number of recent entries to show")
    return parser


def main(argv: Optional[List[str]] = None) -> int:
    args = build_parser().parse_args(argv)
    log = RecommendationLog(args.log_file)

    if not log.exists():
        print(f"⚠️  No recommendation log found at {args.log_file}")
        print("   Run the planning workflow to generate recommendations.")
        return 0

    summary = log.summarize(recent_count=args.recent)
    if summary.total == 0:
        print("⚠️  Log file exists but is empty")
        return 0

    if args.json:
        print(json.dumps(summary.to_dict(), ensure_ascii=False, indent=2))
    else:
        print(render_report(summary, args.log_file))
    return 0


if __name__ == "__main__":
    sys.exit(main())
