"""
Exceptions module - Custom exception hierarchy.

This module defines all custom exceptions used throughout Adaptive Resolver,
providing clear error types for different failure scenarios.
"""

from adaptive_resolver.exceptions.base import (
    ResolverError,
    ConfigurationError,
)
from adaptive_resolver.exceptions.resolution import (
    ResolutionError,
    StrategyProbeError,
    HealingStrategyError,
    ExternalServiceError,
    ElementNotFoundError,
    ExtractionError,
)
from adaptive_resolver.exceptions.browser import (
    BrowserError,
    BrowserLaunchError,
    BrowserConnectionError,
    NavigationError,
)

__all__ = [
    # Base exceptions
    "ResolverError",
    "ConfigurationError",
    # Resolution exceptions
    "ResolutionError",
    "StrategyProbeError",
    "HealingStrategyError",
    "ExternalServiceError",
    "ElementNotFoundError",
    "ExtractionError",
    # Browser exceptions
    "BrowserError",
    "BrowserLaunchError",
    "BrowserConnectionError",
    "NavigationError",
]
