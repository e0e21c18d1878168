"""Confidence-driven auto-research.

When a planning recommendation scores below the confidence threshold, the
caller may ask for a time-boxed research pass. The pass fans out to the
research providers concurrently, then rescores the recommendation with the
findings as added context.

Auto-research is always optional. trigger() never raises: a denied budget,
a timeout or provider failures all come back as an untriggered result with
the original confidence.

Budget accounting: one unit is reserved atomically before research starts.
On success the unit is committed, and counted again in a fresh window if the
reserved one expired while research ran. On failure it is refunded, but only
into the window it was taken from, so only successful passes count against
the session.
"""

import asyncio
import time
from dataclasses import dataclass, field
from typing import Any, Callable, Dict, List, Optional, Sequence

from research_gate.app.core.config import settings
from research_gate.app.core.logging import get_log_context, get_logger
from research_gate.app.exceptions import ResearchProviderError, ResearchTimeoutError
from research_gate.app.providers.base import BaseResearchProvider, ResearchFinding
from research_gate.app.rate_limit import RateLimiter, Reservation, get_rate_limit_store
from research_gate.app.services.confidence import (
    ConfidenceInput,
    ConfidenceResult,
    calculate_confidence,
    with_research,
)

logger = get_logger(__name__)

Scorer = Callable[[ConfidenceInput], ConfidenceResult]


@dataclass
class AutoResearchResult:
    """Outcome of one auto-research attempt.

    Attributes:
        triggered: Whether research actually ran and succeeded
        new_confidence: Updated percentage, or the original one when not triggered
        external_refs: Human readable descriptions of the sources used
        enhanced_findings: Raw provider payloads keyed by provider name
    """
    triggered: bool
    new_confidence: int
    external_refs: List[str] = field(default_factory=list)
    enhanced_findings: Optional[Dict[str, Any]] = None

    @classmethod
    def unchanged(cls, confidence: ConfidenceResult) -> "AutoResearchResult":
        return cls(triggered=False, new_confidence=confidence.percentage, external_refs=[])


def should_trigger_auto_research(
    confidence: ConfidenceResult, threshold: Optional[int] = None
) -> bool:
    """Return True when confidence is below the threshold (default 90)."""
    limit = settings.confidence_threshold if threshold is None else threshold
    return confidence.percentage < limit


class AutoResearchTrigger:
    """Runs budgeted, time-boxed research passes for planning sessions.

    Usage:
        trigger = AutoResearchTrigger(rate_limiter, [docs, search])
        if should_trigger_auto_research(confidence):
            result = await trigger.trigger(session_id, confidence, query)
    """

    def __init__(
        self,
        rate_limiter: RateLimiter,
        providers: Sequence[BaseResearchProvider],
        scorer: Scorer = calculate_confidence,
        timeout: Optional[float] = None,
        max_triggers: Optional[int] = None,
    ):
        """Initialize the trigger.

        Args:
            rate_limiter: Session budget store
            providers: Research providers queried concurrently
            scorer: Confidence function used to rescore after research
            timeout: Seconds to wait for research (default from settings)
            max_triggers: Per-session ceiling (default from the rate limiter)
        """
        self.rate_limiter = rate_limiter
        self.providers = list(providers)
        self.scorer = scorer
        self.timeout = timeout if timeout is not None else settings.research_timeout_seconds
        self.max_triggers = max_triggers

    async def _research_one(
        self,
        provider: BaseResearchProvider,
        session_id: str,
        query: str,
        focus_areas: Sequence[str],
    ) -> Optional[ResearchFinding]:
        """Query one provider. Failures are logged and reported as None."""
        start = time.perf_counter()
        try:
            finding = await provider.research(query, focus_areas)
        except Exception as e:
            logger.warning(
                f"Research provider '{provider.name}' failed: {type(e).__name__}: {e}",
                extra=get_log_context(session_id=session_id, provider=provider.name),
            )
            return None
        logger.debug(
            f"Research provider '{provider.name}' answered",
            extra=get_log_context(
                session_id=session_id,
                provider=provider.name,
                duration_ms=round((time.perf_counter() - start) * 1000, 1),
            ),
        )
        return finding

    async def research(
        self, session_id: str, query: str, focus_areas: Sequence[str] = ()
    ) -> List[ResearchFinding]:
        """Query every provider concurrently within the timeout.

        On timeout the pending provider calls are cancelled.

        Returns:
            Findings of the providers that succeeded

        Raises:
            ResearchTimeoutError: If the providers did not finish in time
            ResearchProviderError: If no provider succeeded
        """
        try:
            async with asyncio.timeout(self.timeout):
                async with asyncio.TaskGroup() as tg:
                    tasks = [
                        tg.create_task(
                            self._research_one(provider, session_id, query, focus_areas)
                        )
                        for provider in self.providers
                    ]
        except TimeoutError as e:
            raise ResearchTimeoutError(self.timeout) from e

        findings = [task.result() for task in tasks if task.result() is not None]
        if not findings:
            raise ResearchProviderError("all", "No research provider returned a result")
        return findings

    def _rescore(
        self,
        current: ConfidenceResult,
        query: str,
        findings: List[ResearchFinding],
    ) -> tuple[ConfidenceResult, List[str], Dict[str, Any]]:
        external_refs = [f.reference for f in findings if f.reference]
        enhanced_findings = {f.source: f.payload for f in findings}
        context = f"Auto-research for '{query}'"
        if external_refs:
            context += f": {', '.join(external_refs)}"
        new_inputs = with_research(current.inputs, enhanced_findings, context)
        return self.scorer(new_inputs), external_refs, enhanced_findings

    async def _commit(self, reservation: Reservation) -> None:
        try:
            await self.rate_limiter.commit(reservation)
        except Exception as e:
            logger.error(
                f"Failed to record auto-research budget: {e}",
                extra=get_log_context(session_id=reservation.session_id),
            )

    async def _refund(self, reservation: Reservation) -> None:
        if reservation.window_start is None:
            return
        try:
            await self.rate_limiter.release(reservation.session_id, reservation.window_start)
        except Exception as e:
            logger.error(
                f"Failed to refund auto-research budget: {e}",
                extra=get_log_context(session_id=reservation.session_id),
            )

    async def trigger(
        self,
        session_id: str,
        current_confidence: ConfidenceResult,
        query: str,
        focus_areas: Sequence[str] = (),
    ) -> AutoResearchResult:
        """Run one auto-research pass for a session.

        Callers should first confirm should_trigger_auto_research(); this
        method does not re-check the threshold.

        Args:
            session_id: Planning session identifier
            current_confidence: Confidence before research
            query: Research question
            focus_areas: Topics to narrow the research, may be empty

        Returns:
            AutoResearchResult, untriggered with the original confidence on
            any failure
        """
        context = get_log_context(session_id=session_id)
        unchanged = AutoResearchResult.unchanged(current_confidence)

        try:
            reservation = await self.rate_limiter.reserve(session_id, self.max_triggers)
            if reservation is None:
                message = await self.rate_limiter.error_message(session_id, self.max_triggers)
                logger.warning(message, extra=context)
                return unchanged
        except Exception as e:
            logger.warning(f"Rate limit check failed, skipping auto-research: {e}", extra=context)
            return unchanged

        logger.info(
            f"Confidence {current_confidence.percentage}% is below threshold, "
            f"running auto-research for '{query}'",
            extra=context,
        )
        logger.info(f"Current reasoning: {current_confidence.reasoning}", extra=context)

        try:
            findings = await self.research(session_id, query, focus_areas)
            new_confidence, external_refs, enhanced_findings = self._rescore(
                current_confidence, query, findings
            )
        except asyncio.CancelledError:
            await self._refund(reservation)
            raise
        except Exception as e:
            await self._refund(reservation)
            logger.warning(
                f"Auto-research failed ({e}); continuing with "
                f"{current_confidence.percentage}% confidence",
                extra=context,
            )
            return unchanged

        await self._commit(reservation)
        logger.info(
            f"Auto-research complete: confidence {current_confidence.percentage}% "
            f"-> {new_confidence.percentage}% ({len(external_refs)} reference(s))",
            extra=context,
        )
        return AutoResearchResult(
            triggered=True,
            new_confidence=new_confidence.percentage,
            external_refs=external_refs,
            enhanced_findings=enhanced_findings,
        )


_auto_research_trigger: Optional[AutoResearchTrigger] = None


def get_auto_research_trigger() -> AutoResearchTrigger:
    """Get the global auto-research trigger instance."""
    global _auto_research_trigger
    if _auto_research_trigger is None:
        from research_gate.app.providers.factory import create_research_providers

        _auto_research_trigger = AutoResearchTrigger(
            rate_limiter=get_rate_limit_store(),
            providers=create_research_providers(),
        )
    return _auto_research_trigger


def reset_auto_research_trigger() -> None:
    """Reset the global auto-research trigger instance."""
    global _auto_research_trigger
    _auto_research_trigger = None


async def trigger_auto_research(
    session_id: str,
    current_confidence: ConfidenceResult,
    query: str,
    focus_areas: Sequence[str] = (),
) -> AutoResearchResult:
    """Run auto-research with the shared trigger instance."""
    return await get_auto_research_trigger().trigger(
        session_id, current_confidence, query, focus_areas
    )
