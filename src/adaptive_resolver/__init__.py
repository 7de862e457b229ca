"""
Adaptive Resolver - Self-healing element resolution for browser automation.

Finds UI elements from declarative descriptors or natural-language
descriptions, and recovers automatically when a locator stops matching.

Example:
    >>> from adaptive_resolver import ElementDescriptor, create_session
    >>> session = create_session()
    >>> handle = await session.resolve(document, ElementDescriptor(css="#submit-btn", self_heal=True))
"""

__version__ = "0.1.0"

# Public API exports
from adaptive_resolver.config.settings import Settings
from adaptive_resolver.engine.executor import ResolutionExecutor, resolve_with_retry
from adaptive_resolver.engine.healing import SelfHealingEngine
from adaptive_resolver.engine.resolver import ElementResolver
from adaptive_resolver.engine.results import HealingResult
from adaptive_resolver.engine.session import ResolutionSession, create_session
from adaptive_resolver.exceptions import ElementNotFoundError
from adaptive_resolver.locators.descriptor import (
    ElementDescriptor,
    ResolutionOptions,
    ResolvedHandle,
)

__all__ = [
    "Settings",
    "ElementDescriptor",
    "ResolutionOptions",
    "ResolvedHandle",
    "ResolutionExecutor",
    "resolve_with_retry",
    "SelfHealingEngine",
    "HealingResult",
    "ElementResolver",
    "ResolutionSession",
    "create_session",
    "ElementNotFoundError",
    "__version__",
]
