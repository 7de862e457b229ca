"""
Resolution-related exceptions.

Only ElementNotFoundError ever reaches callers. The others are raised
inside a single probe or healing strategy and recovered where they occur.
"""

from typing import List, Optional

from adaptive_resolver.exceptions.base import ResolverError


class ResolutionError(ResolverError):
    """Base exception for element resolution errors."""
    pass


class StrategyProbeError(ResolutionError):
    """
    A single locating strategy threw or timed out while probing.

    Recovered locally: the next strategy is tried.
    """

    def __init__(self, message: str, kind: str, value: str):
        super().__init__(message, {"kind": kind, "value": value})
        self.kind = kind
        self.value = value


class HealingStrategyError(ResolutionError):
    """
    One healing strategy failed.

    Recovered locally: the healing chain continues with the next strategy.
    """

    def __init__(self, message: str, strategy: str):
        super().__init__(message, {"strategy": strategy})
        self.strategy = strategy


class ExternalServiceError(HealingStrategyError):
    """
    The AI suggestion service failed or returned an unverifiable selector.

    Treated exactly like a failed healing strategy.
    """

    def __init__(self, message: str, service: str = "ai"):
        super().__init__(message, strategy=service)
        self.service = service


class ElementNotFoundError(ResolutionError):
    """
    Every direct strategy and every healing path was exhausted.

    Attributes:
        description: Human-readable description of the element
        attempted: Strategies or stages that were tried, in order
    """

    def __init__(self, description: str, attempted: Optional[List[str]] = None):
        attempted = list(attempted or [])
        super().__init__(
            f"Unable to locate element: {description}",
            {"attempted": attempted} if attempted else None,
        )
        self.description = description
        self.attempted = attempted


class ExtractionError(ResolutionError):
    """
    A feature group could not be extracted from an element.

    A failure in any group fails the whole extraction call.
    """

    def __init__(self, message: str, group: str):
        super().__init__(message, {"group": group})
        self.group = group
