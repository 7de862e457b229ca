"""
Tests for the reporting module.
"""

import json
import logging

from adaptive_resolver.reporting.events import (
    DEFAULT_MAX_EVENTS,
    EventType,
    ResolutionEvent,
    ResolutionEventLog,
)
from adaptive_resolver.utils.logging import JsonFormatter, setup_logging


class TestResolutionEvent:
    """Test the ResolutionEvent dataclass."""

    def test_to_dict(self):
        """Test converting an event to a dictionary."""
        event = ResolutionEvent(
            type=EventType.HEALED,
            subject="#submit-btn",
            strategy="text",
            confidence=90,
            elapsed_ms=12.5,
            data={"healed_locator": "text=submit"},
        )

        data = event.to_dict()

        assert data["type"] == "healed"
        assert data["subject"] == "#submit-btn"
        assert data["confidence"] == 90
        assert "timestamp" in data

    def test_describe(self):
        event = ResolutionEvent(type=EventType.RESOLVED, subject="Submit button", strategy="pattern", elapsed_ms=3)
        assert event.describe() == "[resolved] Submit button strategy=pattern 3ms"


class TestResolutionEventLog:
    """Test the in-memory event log."""

    def test_emit_and_filter(self):
        """Test emitting events and filtering by type."""
        log = ResolutionEventLog()
        log.emit(EventType.ATTEMPT_START, "Login")
        log.emit(EventType.STRATEGY_FAILURE, "Login", strategy="id:#login")
        log.emit(EventType.FAILED, "Login")

        assert len(log) == 3
        assert [e.strategy for e in log.get_events(EventType.STRATEGY_FAILURE)] == ["id:#login"]

    def test_max_events(self):
        log = ResolutionEventLog(max_events=2)
        for subject in ("a", "b", "c"):
            log.emit(EventType.RESOLVED, subject)

        assert [e.subject for e in log.get_events()] == ["b", "c"]

    def test_bounded_by_default(self):
        log = ResolutionEventLog()
        for i in range(DEFAULT_MAX_EVENTS + 5):
            log.emit(EventType.RESOLVED, f"element-{i}")

        events = log.get_events()
        assert len(events) == DEFAULT_MAX_EVENTS
        assert events[0].subject == "element-5"
        assert events[-1].subject == f"element-{DEFAULT_MAX_EVENTS + 4}"

    def test_unbounded_when_asked(self):
        log = ResolutionEventLog(max_events=None)
        for i in range(DEFAULT_MAX_EVENTS + 1):
            log.emit(EventType.RESOLVED, f"element-{i}")

        assert len(log) == DEFAULT_MAX_EVENTS + 1

    def test_forwards_to_logger(self, caplog):
        """Test that events reach the standard logger with structured data."""
        log = ResolutionEventLog()

        with caplog.at_level(logging.INFO, logger="adaptive_resolver.reporting.events"):
            log.emit(EventType.HEALED, "#submit-btn", strategy="text", confidence=90)

        record = caplog.records[-1]
        assert record.levelno == logging.INFO
        assert record.resolution_event["strategy"] == "text"

    def test_export_json(self, tmp_path):
        log = ResolutionEventLog()
        log.emit(EventType.RESOLVED, "Submit button", strategy="pattern")
        path = tmp_path / "events.json"

        log.export_json(str(path))

        data = json.loads(path.read_text())
        assert data[0]["type"] == "resolved"

    def test_clear(self):
        log = ResolutionEventLog()
        log.emit(EventType.RESOLVED, "x")
        log.clear()
        assert len(log) == 0


class TestLogging:
    """Test logging setup."""

    def test_json_formatter_includes_event(self):
        record = logging.LogRecord("adaptive_resolver", logging.INFO, __file__, 1, "healed", None, None)
        record.resolution_event = {"type": "healed"}

        payload = json.loads(JsonFormatter().format(record))

        assert payload["message"] == "healed"
        assert payload["event"] == {"type": "healed"}

    def test_setup_logging_with_file(self, tmp_path):
        log_file = tmp_path / "resolver.log"

        setup_logging("DEBUG", str(log_file), json_format=True)
        try:
            logging.getLogger("adaptive_resolver.test").debug("probe")
            for handler in logging.getLogger().handlers:
                handler.flush()

            line = log_file.read_text().strip().splitlines()[-1]
            assert json.loads(line)["message"] == "probe"
        finally:
            root = logging.getLogger()
            for handler in list(root.handlers):
                handler.close()
                root.removeHandler(handler)
