"""Tests for the confidence-driven auto-research trigger."""

import asyncio
from typing import Awaitable, Callable, Sequence
from unittest.mock import AsyncMock, patch

import pytest

from research_gate.app.exceptions import ResearchProviderError, ResearchTimeoutError
from research_gate.app.providers import BaseResearchProvider, MockResearchProvider, ResearchFinding
from research_gate.app.services import auto_research
from research_gate.app.services.auto_research import (
    AutoResearchResult,
    AutoResearchTrigger,
    should_trigger_auto_research,
    trigger_auto_research,
)
from research_gate.app.services.confidence import (
    ConfidenceInput,
    ConfidenceResult,
    calculate_confidence,
)


class SlowProvider(BaseResearchProvider):
    """Provider that blocks until cancelled."""

    def __init__(self, name: str = "slow"):
        super().__init__(base_url="http://slow.test")
        self.name = name
        self.cancelled = False

    async def research(self, query: str, focus_areas: Sequence[str] = ()) -> ResearchFinding:
        try:
            await asyncio.sleep(60)
        except asyncio.CancelledError:
            self.cancelled = True
            raise
        return ResearchFinding(source=self.name, payload={}, reference=None)


class HookProvider(BaseResearchProvider):
    """Provider that runs a callback before answering."""

    def __init__(self, name: str, hook: Callable[[], Awaitable[None]]):
        super().__init__(base_url="http://hook.test")
        self.name = name
        self.hook = hook

    async def research(self, query: str, focus_areas: Sequence[str] = ()) -> ResearchFinding:
        await self.hook()
        return ResearchFinding(
            source=self.name, payload={"query": query}, reference=f"{self.name}: {query}"
        )


@pytest.fixture
def low_confidence():
    """52%: low depth, partial stack match, moderate architecture, recent knowledge."""
    return calculate_confidence(ConfidenceInput(research_depth="low"))


@pytest.fixture
def providers():
    return [MockResearchProvider(name="documentation"), MockResearchProvider(name="web_search")]


@pytest.fixture
def trigger(limiter, providers):
    return AutoResearchTrigger(limiter, providers, timeout=1.0)


class TestShouldTrigger:
    """Tests for the threshold gate."""

    def test_below_threshold_triggers(self):
        assert should_trigger_auto_research(ConfidenceResult(89, "x")) is True

    def test_at_threshold_does_not_trigger(self):
        assert should_trigger_auto_research(ConfidenceResult(90, "x")) is False

    def test_high_confidence_does_not_trigger(self):
        assert should_trigger_auto_research(ConfidenceResult(95, "x")) is False

    def test_custom_threshold(self):
        assert should_trigger_auto_research(ConfidenceResult(70, "x"), threshold=60) is False
        assert should_trigger_auto_research(ConfidenceResult(59, "x"), threshold=60) is True


class TestTriggerSuccess:
    """Tests for successful research passes."""

    @pytest.mark.asyncio
    async def test_successful_research(self, trigger, limiter, low_confidence):
        assert low_confidence.percentage == 52

        result = await trigger.trigger("s1", low_confidence, "How should auth work?", ["auth"])

        assert result.triggered is True
        # Same factors with research depth raised to high
        assert result.new_confidence == 72
        assert result.external_refs == [
            "documentation: How should auth work?",
            "web_search: How should auth work?",
        ]
        assert set(result.enhanced_findings) == {"documentation", "web_search"}
        assert result.enhanced_findings["documentation"]["focus_areas"] == ["auth"]
        assert await limiter.get_count("s1") == 1

    @pytest.mark.asyncio
    async def test_counts_each_successful_call(self, trigger, limiter, low_confidence):
        for n in range(1, 6):
            result = await trigger.trigger("s1", low_confidence, "q")
            assert result.triggered is True
            assert await limiter.get_count("s1") == n

    @pytest.mark.asyncio
    async def test_rescore_without_original_inputs(self, trigger):
        confidence = ConfidenceResult(percentage=40, reasoning="gut feeling")
        result = await trigger.trigger("s1", confidence, "q")
        assert result.triggered is True
        # Default factors: partial 18, moderate 12, recent 12, plus high depth 30
        assert result.new_confidence == 72

    @pytest.mark.asyncio
    async def test_scorer_receives_findings(self, limiter, providers, low_confidence):
        seen = []

        def recording_scorer(inputs: ConfidenceInput) -> ConfidenceResult:
            seen.append(inputs)
            return ConfidenceResult(percentage=88, reasoning="rescored", inputs=inputs)

        trigger = AutoResearchTrigger(limiter, providers, scorer=recording_scorer, timeout=1.0)
        result = await trigger.trigger("s1", low_confidence, "q")

        assert result.new_confidence == 88
        assert seen[0].research_depth.value == "high"
        assert set(seen[0].findings) == {"documentation", "web_search"}
        assert "Auto-research for 'q'" in seen[0].context

    @pytest.mark.asyncio
    async def test_one_provider_failing_keeps_the_other(self, limiter, low_confidence):
        providers = [
            MockResearchProvider(name="documentation", failure_rate=1.0),
            MockResearchProvider(name="web_search"),
        ]
        trigger = AutoResearchTrigger(limiter, providers, timeout=1.0)

        result = await trigger.trigger("s1", low_confidence, "q")

        assert result.triggered is True
        assert result.external_refs == ["web_search: q"]
        assert list(result.enhanced_findings) == ["web_search"]
        assert await limiter.get_count("s1") == 1

    @pytest.mark.asyncio
    async def test_empty_payload_has_no_reference(self, limiter, low_confidence):
        providers = [
            MockResearchProvider(name="documentation", payload={}),
            MockResearchProvider(name="web_search"),
        ]
        trigger = AutoResearchTrigger(limiter, providers, timeout=1.0)

        result = await trigger.trigger("s1", low_confidence, "q")

        assert result.external_refs == ["web_search: q"]
        assert result.enhanced_findings["documentation"] == {}


class TestTriggerDenied:
    """Tests for an exhausted session budget."""

    @pytest.mark.asyncio
    async def test_exhausted_budget_returns_unchanged(self, trigger, limiter, providers):
        for _ in range(10):
            await limiter.increment("s3")
        confidence = ConfidenceResult(percentage=50, reasoning="unsure")

        result = await trigger.trigger("s3", confidence, "q")

        assert result == AutoResearchResult(triggered=False, new_confidence=50, external_refs=[])
        assert result.enhanced_findings is None
        assert await limiter.get_count("s3") == 10
        assert all(p.calls == 0 for p in providers)

    @pytest.mark.asyncio
    async def test_denied_logs_rate_limit_message(self, limiter, providers, low_confidence):
        trigger = AutoResearchTrigger(limiter, providers, timeout=1.0, max_triggers=1)
        await trigger.trigger("s1", low_confidence, "q")

        with patch.object(auto_research, "logger") as mock_logger:
            result = await trigger.trigger("s1", low_confidence, "q")

        assert result.triggered is False
        message = mock_logger.warning.call_args[0][0]
        assert "Rate limit exceeded: 1/1" in message

    @pytest.mark.asyncio
    async def test_rate_limiter_error_degrades(self, providers, low_confidence):
        limiter = AsyncMock()
        limiter.reserve.side_effect = RuntimeError("store unavailable")
        trigger = AutoResearchTrigger(limiter, providers, timeout=1.0)

        result = await trigger.trigger("s1", low_confidence, "q")

        assert result.triggered is False
        assert result.new_confidence == low_confidence.percentage


class TestTriggerFailure:
    """Tests for timeouts and provider failures."""

    @pytest.mark.asyncio
    async def test_timeout_returns_unchanged_and_is_free(self, limiter, low_confidence):
        slow = [SlowProvider("documentation"), SlowProvider("web_search")]
        trigger = AutoResearchTrigger(limiter, slow, timeout=0.05)
        await limiter.increment("s4")

        result = await trigger.trigger("s4", low_confidence, "q")

        assert result.triggered is False
        assert result.new_confidence == low_confidence.percentage
        assert result.external_refs == []
        assert await limiter.get_count("s4") == 1

    @pytest.mark.asyncio
    async def test_timeout_cancels_provider_calls(self, limiter, low_confidence):
        slow = [SlowProvider("documentation"), SlowProvider("web_search")]
        trigger = AutoResearchTrigger(limiter, slow, timeout=0.05)

        await trigger.trigger("s1", low_confidence, "q")

        assert all(p.cancelled for p in slow)

    @pytest.mark.asyncio
    async def test_all_providers_failing_is_free(self, limiter, low_confidence):
        providers = [
            MockResearchProvider(name="documentation", failure_rate=1.0),
            MockResearchProvider(name="web_search", failure_rate=1.0),
        ]
        trigger = AutoResearchTrigger(limiter, providers, timeout=1.0)

        result = await trigger.trigger("s1", low_confidence, "q")

        assert result.triggered is False
        assert await limiter.get_count("s1") == 0

    @pytest.mark.asyncio
    async def test_scorer_failure_is_free(self, limiter, providers, low_confidence):
        def broken_scorer(inputs):
            raise ValueError("bad inputs")

        trigger = AutoResearchTrigger(limiter, providers, scorer=broken_scorer, timeout=1.0)
        result = await trigger.trigger("s1", low_confidence, "q")

        assert result.triggered is False
        assert await limiter.get_count("s1") == 0

    @pytest.mark.asyncio
    async def test_failed_attempts_do_not_block_later_success(self, limiter, low_confidence):
        flaky = MockResearchProvider(name="documentation", failure_rate=1.0)
        trigger = AutoResearchTrigger(limiter, [flaky], timeout=1.0, max_triggers=1)

        for _ in range(3):
            assert (await trigger.trigger("s1", low_confidence, "q")).triggered is False

        flaky.failure_rate = 0.0
        assert (await trigger.trigger("s1", low_confidence, "q")).triggered is True
        assert await limiter.get_count("s1") == 1


class TestWindowExpiryDuringResearch:
    """Tests for a session window that ends while research is running."""

    @pytest.mark.asyncio
    async def test_success_is_counted_in_the_new_window(self, limiter, clock, low_confidence):
        for _ in range(3):
            await limiter.increment("s1")
        clock.advance(86400 - 10)

        async def expire_window():
            clock.advance(20)
            # Any check sweeps the whole store, dropping the reserved entry
            await limiter.check("other-session")

        trigger = AutoResearchTrigger(
            limiter, [HookProvider("documentation", expire_window)], timeout=1.0
        )
        result = await trigger.trigger("s1", low_confidence, "q")

        assert result.triggered is True
        assert await limiter.get_count("s1") == 1

    @pytest.mark.asyncio
    async def test_success_is_counted_when_entry_expired_but_not_swept(
        self, limiter, clock, low_confidence
    ):
        await limiter.increment("s1")
        clock.advance(86400 - 10)

        async def expire_window():
            clock.advance(20)

        trigger = AutoResearchTrigger(
            limiter, [HookProvider("documentation", expire_window)], timeout=1.0
        )
        result = await trigger.trigger("s1", low_confidence, "q")

        assert result.triggered is True
        assert await limiter.get_count("s1") == 1

    @pytest.mark.asyncio
    async def test_late_failure_does_not_refund_a_newer_window(
        self, limiter, clock, low_confidence
    ):
        for _ in range(3):
            await limiter.increment("s1")
        clock.advance(86400 - 10)
        window_expired = asyncio.Event()
        other_done = asyncio.Event()

        async def fail_after_window_ends():
            clock.advance(20)
            window_expired.set()
            await other_done.wait()
            raise ResearchProviderError("documentation", "late failure")

        failing = AutoResearchTrigger(
            limiter, [HookProvider("documentation", fail_after_window_ends)], timeout=1.0
        )
        succeeding = AutoResearchTrigger(
            limiter, [MockResearchProvider(name="web_search")], timeout=1.0
        )

        async def succeed_in_new_window():
            await window_expired.wait()
            try:
                return await succeeding.trigger("s1", low_confidence, "q")
            finally:
                other_done.set()

        r_fail, r_ok = await asyncio.gather(
            failing.trigger("s1", low_confidence, "q"),
            succeed_in_new_window(),
        )

        assert r_fail.triggered is False
        assert r_ok.triggered is True
        assert await limiter.get_count("s1") == 1


class TestResearch:
    """Tests for the raw research fan-out."""

    @pytest.mark.asyncio
    async def test_research_raises_timeout(self, limiter):
        trigger = AutoResearchTrigger(limiter, [SlowProvider()], timeout=0.05)
        with pytest.raises(ResearchTimeoutError):
            await trigger.research("s1", "q")

    @pytest.mark.asyncio
    async def test_research_raises_when_nothing_found(self, limiter):
        trigger = AutoResearchTrigger(
            limiter, [MockResearchProvider(failure_rate=1.0)], timeout=1.0
        )
        with pytest.raises(ResearchProviderError):
            await trigger.research("s1", "q")

    @pytest.mark.asyncio
    async def test_providers_run_concurrently(self, limiter):
        providers = [
            MockResearchProvider(name="documentation", delay=0.2),
            MockResearchProvider(name="web_search", delay=0.2),
        ]
        trigger = AutoResearchTrigger(limiter, providers, timeout=0.35)

        findings = await trigger.research("s1", "q")

        assert [f.source for f in findings] == ["documentation", "web_search"]


class TestSharedTrigger:
    """Tests for the module-level convenience function."""

    @pytest.mark.asyncio
    async def test_trigger_auto_research_uses_shared_instance(
        self, monkeypatch, limiter, providers, low_confidence
    ):
        shared = AutoResearchTrigger(limiter, providers, timeout=1.0)
        monkeypatch.setattr(auto_research, "_auto_research_trigger", shared)

        result = await trigger_auto_research("s1", low_confidence, "q")

        assert result.triggered is True
        assert await limiter.get_count("s1") == 1
