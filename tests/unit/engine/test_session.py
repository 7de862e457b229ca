"""
Tests for resolution sessions.
"""

import json

import pytest

from adaptive_resolver.engine.session import create_session
from adaptive_resolver.locators.descriptor import ElementDescriptor
from adaptive_resolver.reporting.events import ResolutionEventLog
from tests.conftest import FakeDocument


class TestCreateSession:
    """Test session construction."""

    def test_services_share_settings(self, settings):
        session = create_session(settings)

        assert session.executor.healer is session.healer
        assert session.resolver.settings is settings
        assert session.healer.settings is settings
        assert [s.name for s in session.healer.strategies] == ["nearby", "text", "visual", "structure"]

    def test_sessions_are_isolated(self, settings):
        first = create_session(settings)
        second = create_session(settings)

        first.resolver.record_alternative("Checkout", "#checkout")

        assert second.resolver.history.get("Checkout") == []
        assert first.healer.signatures is not second.healer.signatures

    def test_suggester_enables_ai_strategy(self, settings):
        async def suggest(prompt, context):
            return None

        session = create_session(settings, suggester=suggest)

        assert session.healer.strategies[-1].name == "ai"


class TestSessionResolution:
    """Test resolution through a session."""

    @pytest.mark.asyncio
    async def test_resolve_and_describe(self, settings):
        events = ResolutionEventLog()
        session = create_session(settings, events=events)
        document = FakeDocument(counts={"#login": 1, 'button:has-text("Submit")': 1})

        handle = await session.resolve(document, ElementDescriptor(id="login"))
        described = await session.resolve_by_description(document, "Submit button", use_cache=False)

        assert handle.source == "id"
        assert described.source == "pattern"
        assert len(events) > 0

    @pytest.mark.asyncio
    async def test_resolve_with_retry(self, settings):
        session = create_session(settings)
        document = FakeDocument(counts={"#login": 1})

        handle = await session.resolve_with_retry(document, ElementDescriptor(id="login"))

        assert handle.selector == "#login"

    @pytest.mark.asyncio
    async def test_clear_caches(self, settings):
        session = create_session(settings)
        document = FakeDocument(counts={'button:has-text("Submit")': 1})
        await session.resolve_by_description(document, "Submit button")

        session.clear_caches()

        assert len(session.resolver.cache) == 0


class TestHistoryPersistence:
    """Test saving and loading histories."""

    @pytest.mark.asyncio
    async def test_round_trip(self, settings, tmp_path):
        session = create_session(settings)
        session.resolver.record_alternative("Checkout", "#checkout")
        await session.healer.heal(FakeDocument(counts={"text=submit": 1}), "#submit-btn")
        path = tmp_path / "state" / "history.json"

        session.save_history(path)
        restored = create_session(settings)
        restored.load_history(path)

        assert restored.resolver.history.get("Checkout") == ["#checkout"]
        assert restored.healer.history.latest("#submit-btn").healed_locator == "text=submit"
        assert restored.export_history() == session.export_history()

    def test_missing_file(self, settings, tmp_path):
        session = create_session(settings)
        session.load_history(tmp_path / "missing.json")

        assert session.export_history() == {"descriptions": {}, "healing": {}}

    def test_malformed_healing_records_ignored(self, settings, tmp_path):
        path = tmp_path / "history.json"
        path.write_text(json.dumps({
            "descriptions": {"Checkout": ["#checkout"]},
            "healing": {"#submit-btn": {"attempts": []}},
        }))
        session = create_session(settings)

        session.load_history(path)

        assert session.resolver.history.get("Checkout") == ["#checkout"]
        assert "#submit-btn" not in session.healer.history
