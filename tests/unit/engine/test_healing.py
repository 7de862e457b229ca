"""
Tests for the self-healing engine.
"""

import pytest

from adaptive_resolver.config import ResolutionSettings, Settings
from adaptive_resolver.engine.healing import SelfHealingEngine
from adaptive_resolver.engine.strategies import HealingStrategy
from adaptive_resolver.exceptions import ExtractionError
from adaptive_resolver.locators.strategy import LocatorKind, LocatorStrategy
from adaptive_resolver.reporting.events import EventType, ResolutionEventLog
from tests.conftest import FakeDocument


class StubStrategy(HealingStrategy):
    """Strategy returning a fixed candidate, or raising."""

    def __init__(self, name, priority, candidate=None, error=None):
        self.name = name
        self.priority = priority
        self.candidate = candidate
        self.error = error
        self.calls = 0

    async def heal(self, document, original_locator, context):
        self.calls += 1
        if self.error:
            raise self.error
        return self.candidate


@pytest.fixture
def healer(settings):
    return SelfHealingEngine(settings)


class TestHealingSequence:
    """Test the order in which substitutes are tried."""

    @pytest.mark.asyncio
    async def test_text_strategy_heals_renamed_id(self, healer):
        document = FakeDocument(counts={"text=submit": 1})

        result = await healer.heal(document, "#submit-btn")

        assert result.success
        assert result.strategy == "text"
        assert result.confidence == 90
        assert result.healed_locator == "text=submit"
        assert healer.history.latest("#submit-btn") == result

    @pytest.mark.asyncio
    async def test_original_matches_again(self, healer):
        document = FakeDocument(counts={"#submit-btn": 1})

        result = await healer.heal(document, "#submit-btn", ["text:Submit"])

        assert result.success
        assert result.healed_locator is None
        assert result.strategy is None
        assert len(healer.history) == 0
        assert healer.strategy_invocations == 0

    @pytest.mark.asyncio
    async def test_original_requeried_by_its_kind(self, healer):
        document = FakeDocument(counts={"getByTestId:submit": 1})
        original = LocatorStrategy(LocatorKind.TEST_ID, "submit")

        result = await healer.heal(document, "submit", original_strategy=original)

        assert result.success
        assert result.healed_locator is None
        assert document.probes == ["getByTestId:submit"]
        assert healer.strategy_invocations == 0

    @pytest.mark.asyncio
    async def test_prefixed_original_without_strategy(self, healer):
        document = FakeDocument(counts={"xpath=//button[@type='submit']": 1})

        result = await healer.heal(document, "xpath://button[@type='submit']")

        assert result.success
        assert result.healed_locator is None
        assert healer.strategy_invocations == 0

    @pytest.mark.asyncio
    async def test_second_alternative(self, healer):
        document = FakeDocument(counts={"getByText:Submit": 1})

        result = await healer.heal(document, "#submit-btn", [".old-submit", "text:Submit"])

        assert result.success
        assert result.strategy == "alternative"
        assert result.confidence == 100
        assert result.healed_locator == "text:Submit"
        assert healer.strategy_invocations == 0
        assert ".old-submit" in document.probes

    @pytest.mark.asyncio
    async def test_disabled_skips_chain(self):
        settings = Settings(resolution=ResolutionSettings(self_healing_enabled=False))
        healer = SelfHealingEngine(settings)
        document = FakeDocument(counts={"text=submit": 1, "xpath=//button": 1})

        failed = await healer.heal(document, "#submit-btn")
        healed = await healer.heal(document, "#submit-btn", ["xpath://button"])

        assert not failed.success
        assert healed.strategy == "alternative"
        assert healer.strategy_invocations == 0

    @pytest.mark.asyncio
    async def test_exhausted(self, healer):
        result = await healer.heal(FakeDocument(), "#submit-btn")

        assert not result.success
        assert result.healed_locator is None
        assert len(healer.history) == 0


class TestStrategyChain:
    """Test chain behaviour with injected strategies."""

    @pytest.mark.asyncio
    async def test_failing_strategy_does_not_stop_chain(self, settings):
        broken = StubStrategy("broken", 1, error=RuntimeError("scan failed"))
        working = StubStrategy("working", 2, candidate="#ok")
        healer = SelfHealingEngine(settings, strategies=[working, broken])
        document = FakeDocument(counts={"#ok": 1})

        result = await healer.heal(document, "#gone")

        assert broken.calls == 1
        assert result.strategy == "working"
        assert result.confidence == SelfHealingEngine.calculate_confidence("working") == 50

    @pytest.mark.asyncio
    async def test_unverified_candidate_rejected(self, settings):
        ghost = StubStrategy("ghost", 1, candidate="#ghost")
        real = StubStrategy("real", 2, candidate="#real")
        healer = SelfHealingEngine(settings, strategies=[ghost, real])
        document = FakeDocument(counts={"#real": 2})

        result = await healer.heal(document, "#gone")

        assert result.healed_locator == "#real"
        assert "#ghost" in document.probes
        assert healer.strategy_invocations == 2

    def test_register_strategy_replaces_by_name(self, settings):
        healer = SelfHealingEngine(settings)
        healer.register_strategy(StubStrategy("text", 0))

        names = [s.name for s in healer.strategies]
        assert names[0] == "text"
        assert names.count("text") == 1

    def test_ai_strategy_needs_suggester(self, settings):
        async def suggest(prompt, context):
            return None

        assert "ai" not in [s.name for s in SelfHealingEngine(settings).strategies]
        assert SelfHealingEngine(settings, suggester=suggest).strategies[-1].name == "ai"


class TestReporting:
    """Test history, events and the summary report."""

    @pytest.mark.asyncio
    async def test_generate_report(self, healer):
        document = FakeDocument(counts={"text=submit": 1})
        await healer.heal(document, "#submit-btn")
        await healer.heal(document, "#nothing-here-at-all")

        report = healer.generate_report()

        assert report["total_attempts"] == 2
        assert report["successful_heals"] == 1
        assert report["success_rate"] == 50.0
        assert report["strategy_usage"] == {"text": 1}
        assert report["history"][0]["locator"] == "#submit-btn"
        assert report["history"][0]["healed_locator"] == "text=submit"

    def test_empty_report(self, healer):
        report = healer.generate_report()
        assert report["success_rate"] == 0.0
        assert report["average_healing_time"] == 0.0

    @pytest.mark.asyncio
    async def test_events(self, settings):
        events = ResolutionEventLog()
        healer = SelfHealingEngine(settings, events=events)

        await healer.heal(FakeDocument(counts={"text=submit": 1}), "#submit-btn")

        healed = events.get_events(EventType.HEALED)
        assert len(healed) == 1
        assert healed[0].strategy == "text"
        assert healed[0].confidence == 90
        assert events.get_events(EventType.STRATEGY_FAILURE)[0].strategy == "nearby"


class TestSignatures:
    """Test signature capture for later visual/structure healing."""

    @pytest.mark.asyncio
    async def test_cache_element_signature(self, healer):
        document = FakeDocument(element_results={"#submit-btn": {
            "signature.visual": {"width": 100, "height": 30, "top": 400, "left": 200,
                                 "background_color": "rgb(0, 0, 255)"},
            "signature.structure": {"tag": "button", "parent": {"tag": "form", "class_name": "signup"},
                                    "sibling_index": 3, "child_count": 0},
        }})

        await healer.cache_element_signature("#submit-btn", document.query("#submit-btn"))

        assert healer.signatures.visual("#submit-btn").width == 100
        assert healer.signatures.structure("#submit-btn").parent.tag == "form"

        healer.clear_cache()
        assert healer.signatures.visual("#submit-btn") is None

    @pytest.mark.asyncio
    async def test_capture_failure(self, healer):
        document = FakeDocument(element_results={"#gone": {
            "signature.visual": RuntimeError("element detached"),
            "signature.structure": {"tag": "button"},
        }})

        with pytest.raises(ExtractionError) as exc_info:
            await healer.cache_element_signature("#gone", document.query("#gone"))

        assert exc_info.value.group == "visual"
        assert healer.signatures.structure("#gone") is None
