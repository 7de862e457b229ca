"""
Resolution Events - Structured observability for resolution and healing.

Events are collected in memory and forwarded to the standard logger. The
engine only writes them; it never reads them back.
"""

from dataclasses import dataclass, field
from datetime import datetime
from enum import Enum
from typing import Any, Dict, List, Optional
import json
import logging

logger = logging.getLogger(__name__)


class EventType(Enum):
    """Kinds of resolution events."""
    ATTEMPT_START = "attempt_start"
    STRATEGY_SUCCESS = "strategy_success"
    STRATEGY_FAILURE = "strategy_failure"
    HEALED = "healed"
    RESOLVED = "resolved"
    FAILED = "failed"


_LEVELS = {
    EventType.ATTEMPT_START: logging.DEBUG,
    EventType.STRATEGY_SUCCESS: logging.DEBUG,
    EventType.STRATEGY_FAILURE: logging.DEBUG,
    EventType.HEALED: logging.INFO,
    EventType.RESOLVED: logging.DEBUG,
    EventType.FAILED: logging.WARNING,
}


@dataclass
class ResolutionEvent:
    """
    One structured event.

    Attributes:
        type: What happened
        subject: Description or original locator the event is about
        strategy: Strategy or stage involved
        confidence: Final confidence, for healing events
        elapsed_ms: Time since the attempt started
        data: Additional data
        timestamp: When the event was recorded
    """
    type: EventType
    subject: str
    strategy: Optional[str] = None
    confidence: Optional[int] = None
    elapsed_ms: Optional[float] = None
    data: Optional[Dict[str, Any]] = None
    timestamp: datetime = field(default_factory=datetime.now)

    def to_dict(self) -> Dict[str, Any]:
        """Convert to dictionary."""
        return {
            "timestamp": self.timestamp.isoformat(),
            "type": self.type.value,
            "subject": self.subject,
            "strategy": self.strategy,
            "confidence": self.confidence,
            "elapsed_ms": self.elapsed_ms,
            "data": self.data,
        }

    def describe(self) -> str:
        parts = [f"[{self.type.value}] {self.subject}"]
        if self.strategy:
            parts.append(f"strategy={self.strategy}")
        if self.confidence is not None:
            parts.append(f"confidence={self.confidence}")
        if self.elapsed_ms is not None:
            parts.append(f"{self.elapsed_ms:.0f}ms")
        return " ".join(parts)


# Events kept by a log created without an explicit bound
DEFAULT_MAX_EVENTS = 1000


class ResolutionEventLog:
    """
    In-memory collector for resolution events.

    Example:
        >>> events = ResolutionEventLog()
        >>> executor = ResolutionExecutor(healer, settings, events=events)
        >>> await executor.resolve(document, descriptor)
        >>> [e.type.value for e in events.get_events()]
        ['attempt_start', 'strategy_success', 'resolved']
    """

    def __init__(self, max_events: Optional[int] = DEFAULT_MAX_EVENTS):
        """
        Initialize the event log.

        Args:
            max_events: Keep only the newest N events (None keeps all)
        """
        self.max_events = max_events
        self._events: List[ResolutionEvent] = []

    def emit(
        self,
        type: EventType,
        subject: str,
        strategy: Optional[str] = None,
        confidence: Optional[int] = None,
        elapsed_ms: Optional[float] = None,
        data: Optional[Dict[str, Any]] = None,
    ) -> ResolutionEvent:
        """Record an event and forward it to the standard logger."""
        event = ResolutionEvent(
            type=type,
            subject=subject,
            strategy=strategy,
            confidence=confidence,
            elapsed_ms=elapsed_ms,
            data=data,
        )
        self._events.append(event)
        if self.max_events is not None and len(self._events) > self.max_events:
            del self._events[: len(self._events) - self.max_events]

        logger.log(_LEVELS[type], event.describe(), extra={"resolution_event": event.to_dict()})
        return event

    def get_events(self, type: Optional[EventType] = None) -> List[ResolutionEvent]:
        """Get recorded events, optionally filtered by type."""
        if type is None:
            return self._events.copy()
        return [e for e in self._events if e.type == type]

    def clear(self) -> None:
        self._events.clear()

    def export_json(self, path: str) -> None:
        """Export events to a JSON file."""
        with open(path, "w") as f:
            json.dump([e.to_dict() for e in self._events], f, indent=2)

    def __len__(self) -> int:
        return len(self._events)
