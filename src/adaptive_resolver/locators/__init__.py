"""
Locators module - Strategy and descriptor value types.
"""

from adaptive_resolver.locators.strategy import (
    LocatorKind,
    LocatorStrategy,
    build_query,
    parse_alternative_locator,
)
from adaptive_resolver.locators.descriptor import (
    ElementDescriptor,
    ResolutionOptions,
    ResolvedHandle,
    WILDCARD_SELECTOR,
)

__all__ = [
    "LocatorKind",
    "LocatorStrategy",
    "parse_alternative_locator",
    "build_query",
    "ElementDescriptor",
    "ResolutionOptions",
    "ResolvedHandle",
    "WILDCARD_SELECTOR",
]
