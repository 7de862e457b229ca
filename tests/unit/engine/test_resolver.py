"""
Tests for description-based resolution and the descriptor factories.
"""

import pytest

from adaptive_resolver.config import ResolutionSettings, Settings
from adaptive_resolver.engine.resolver import ElementResolver
from adaptive_resolver.exceptions import ElementNotFoundError
from adaptive_resolver.locators.strategy import LocatorKind
from adaptive_resolver.reporting.events import EventType, ResolutionEventLog
from tests.conftest import FakeDocument


CHECKOUT_SCAN = {
    "viewport": {"width": 1280, "height": 1000},
    "elements": [
        {
            "tag": "a",
            "text": "Help",
            "selector": "#help",
            "position": {"x": 20, "y": 20, "width": 40, "height": 20},
        },
        {
            "tag": "button",
            "text": "Checkout",
            "selector": "#checkout",
            "position": {"x": 600, "y": 900, "width": 200, "height": 120},
            "style": {"background_color": "rgb(0, 0, 255)"},
        },
    ],
}


@pytest.fixture
def resolver(settings):
    return ElementResolver(settings)


@pytest.fixture
def ai_settings():
    return Settings(resolution=ResolutionSettings(ai_enabled=True, element_timeout_ms=500))


class TestPatternStage:
    """Test pattern resolution through the facade."""

    @pytest.mark.asyncio
    async def test_submit_button(self, resolver):
        document = FakeDocument(counts={'button:has-text("Submit")': 1})

        handle = await resolver.resolve_by_description(document, "Submit button")

        assert handle.source == "pattern"
        assert handle.selector == 'button:has-text("Submit")'
        assert document.probes == ['button:has-text("Submit")']

    @pytest.mark.asyncio
    async def test_cache_hit(self, resolver):
        document = FakeDocument(counts={'button:has-text("Submit")': 1})

        first = await resolver.resolve_by_description(document, "Submit button")
        second = await resolver.resolve_by_description(document, "Submit button")

        assert first is second
        assert len(document.probes) == 1
        assert resolver.cache_stats() == {"size": 1, "entries": ["Submit button"]}

    @pytest.mark.asyncio
    async def test_stale_cache_entry_ignored(self, resolver):
        document = FakeDocument(counts={'button:has-text("Submit")': 1})

        first = await resolver.resolve_by_description(document, "Submit button")
        document.navigate()
        second = await resolver.resolve_by_description(document, "Submit button")

        assert second is not first
        assert second.generation == 1

    @pytest.mark.asyncio
    async def test_cache_bypassed(self, resolver):
        document = FakeDocument(counts={'button:has-text("Submit")': 1})

        await resolver.resolve_by_description(document, "Submit button", use_cache=False)

        assert len(resolver.cache) == 0

    @pytest.mark.asyncio
    async def test_clear_cache(self, resolver):
        document = FakeDocument(counts={'button:has-text("Submit")': 1})
        await resolver.resolve_by_description(document, "Submit button")

        resolver.clear_cache()

        assert resolver.cache_stats()["size"] == 0


class TestAIStage:
    """Test the visual-description stage."""

    @pytest.mark.asyncio
    async def test_visual_match(self, ai_settings):
        resolver = ElementResolver(ai_settings)
        document = FakeDocument(
            counts={"#checkout": 1},
            page_results={"scan.interactive": CHECKOUT_SCAN},
        )
        description = 'big blue "Checkout" at the bottom'

        handle = await resolver.resolve_by_description(document, description)

        assert handle.source == "ai"
        assert handle.selector == "#checkout"
        assert resolver.history.get(description) == ["#checkout"]
        assert resolver.matcher.healing_history.get(description) == ["#checkout"]

    @pytest.mark.asyncio
    async def test_unverified_match_rejected(self, ai_settings):
        resolver = ElementResolver(ai_settings)
        document = FakeDocument(page_results={"scan.interactive": CHECKOUT_SCAN})

        with pytest.raises(ElementNotFoundError) as exc_info:
            await resolver.resolve_by_description(document, 'big blue "Checkout" at the bottom')

        assert exc_info.value.attempted == ["pattern", "ai", "history"]

    @pytest.mark.asyncio
    async def test_override_disables_stage(self, ai_settings):
        resolver = ElementResolver(ai_settings)
        document = FakeDocument(counts={"#checkout": 1}, page_results={"scan.interactive": CHECKOUT_SCAN})

        with pytest.raises(ElementNotFoundError) as exc_info:
            await resolver.resolve_by_description(document, 'big blue "Checkout"', ai_enabled=False)

        assert "ai" not in exc_info.value.attempted
        assert document.evaluated == []

    @pytest.mark.asyncio
    async def test_scan_failure_falls_through(self, ai_settings):
        resolver = ElementResolver(ai_settings)
        document = FakeDocument(page_results={"scan.interactive": RuntimeError("page crashed")})
        resolver.record_alternative('big blue "Checkout"', "#checkout-v2")
        document.counts["#checkout-v2"] = 1

        handle = await resolver.resolve_by_description(document, 'big blue "Checkout"')

        assert handle.source == "history"


class TestHistoryStage:
    """Test replay of previously working selectors."""

    @pytest.mark.asyncio
    async def test_replay(self, resolver):
        assert resolver.record_alternative("Checkout", "#old-checkout")
        assert resolver.record_alternative("Checkout", "#checkout-v2")
        assert not resolver.record_alternative("Checkout", "#checkout-v2")
        document = FakeDocument(counts={"#old-checkout": 1, "#checkout-v2": 1})

        handle = await resolver.resolve_by_description(document, "Checkout")

        assert handle.source == "history"
        assert handle.selector == "#checkout-v2"

    @pytest.mark.asyncio
    async def test_failure_lists_stages(self, resolver):
        with pytest.raises(ElementNotFoundError) as exc_info:
            await resolver.resolve_by_description(FakeDocument(), "Submit button")

        assert exc_info.value.attempted == ["pattern", "history"]

    @pytest.mark.asyncio
    async def test_no_replay_without_self_heal(self, resolver):
        resolver.record_alternative("Checkout", "#checkout-v2")
        document = FakeDocument(counts={"#checkout-v2": 1})

        with pytest.raises(ElementNotFoundError) as exc_info:
            await resolver.resolve_by_description(document, "Checkout", self_heal=False)

        assert exc_info.value.attempted == ["pattern"]

    def test_export_import(self, settings):
        source = ElementResolver(settings)
        source.record_alternative("Checkout", "#a")
        source.record_alternative("Checkout", "#b")

        target = ElementResolver(settings)
        target.import_healing_history(source.export_healing_history())

        assert target.export_healing_history() == {"Checkout": ["#b", "#a"]}


class TestEvents:
    """Test emitted events."""

    @pytest.mark.asyncio
    async def test_resolved_event(self, settings):
        events = ResolutionEventLog()
        resolver = ElementResolver(settings, events=events)
        document = FakeDocument(counts={'button:has-text("Submit")': 1})

        await resolver.resolve_by_description(document, "Submit button")

        resolved = events.get_events(EventType.RESOLVED)
        assert resolved[0].strategy == "pattern"
        assert resolved[0].data == {"selector": 'button:has-text("Submit")'}


class TestFactories:
    """Test descriptor factories."""

    def test_dynamic_element(self, resolver):
        descriptor = resolver.create_dynamic_element(
            "tr[data-id='{{id}}'] td.{col}",
            {"id": 42, "col": "price"},
        )

        assert descriptor.css == "tr[data-id='42'] td.price"
        assert descriptor.description.startswith("Dynamic element: tr[data-id='{{id}}']")
        assert descriptor.options.timeout_ms == 2000

    def test_by_role(self, resolver):
        assert resolver.create_by_role("button").css == '[role="button"]'
        assert resolver.create_by_role("button", "Save").css == '[role="button"][aria-label*="Save"]'
        assert resolver.create_by_role("button", "Save", exact=True).css == '[role="button"][aria-label="Save"]'

    def test_by_test_id(self, resolver):
        descriptor = resolver.create_by_test_id("checkout")
        assert [str(s) for s in descriptor.strategies()] == ["testId:checkout"]

    def test_by_text(self, resolver):
        loose = resolver.create_by_text("Sign in")
        exact = resolver.create_by_text("Sign in", exact=True, selector="button")

        assert loose.css == '*:has-text("Sign in")'
        assert loose.text == "Sign in"
        assert exact.css == 'button:text-is("Sign in")'

    def test_by_attribute(self, resolver):
        assert resolver.create_by_attribute("href", "/cart").css == '[href*="/cart"]'
        assert resolver.create_by_attribute("name", "q", exact=True).css == '[name="q"]'

    def test_by_label(self, resolver):
        descriptor = resolver.create_by_label("Email")
        kinds = [s.kind for s in descriptor.strategies()]

        assert descriptor.self_heal
        assert descriptor.css == 'input[aria-label="Email"]'
        assert descriptor.xpath == '//label[contains(text(), "Email")]//following-sibling::input[1]'
        assert kinds[:2] == [LocatorKind.CSS, LocatorKind.XPATH]
        assert kinds[-1] == LocatorKind.XPATH

    def test_within_container_and_nth(self, resolver):
        assert resolver.create_within_container("#cart", "li.item").css == "#cart li.item"
        assert resolver.create_nth_element("li.item", 0).css == "li.item:nth-of-type(1)"
