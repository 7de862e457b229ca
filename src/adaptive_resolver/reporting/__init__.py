"""
Reporting module - Structured resolution events.
"""

from adaptive_resolver.reporting.events import EventType, ResolutionEvent, ResolutionEventLog

__all__ = [
    "EventType",
    "ResolutionEvent",
    "ResolutionEventLog",
]
