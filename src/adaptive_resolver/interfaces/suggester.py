"""
Locator Suggester Interface - Contract for the AI healing collaborator.

The healing engine treats the suggestion service as an opaque function:
given a prompt and a context it returns a selector string, or None.
Anything it returns is verified against the live document before use.
"""

from abc import ABC, abstractmethod
from typing import Any, Awaitable, Callable, Dict, Optional, Union


class ILocatorSuggester(ABC):
    """Abstract AI locator suggestion service."""

    @abstractmethod
    async def suggest_locator(self, prompt: str, context: Dict[str, Any]) -> Optional[str]:
        """
        Suggest a selector for an element that could not be found.

        Args:
            prompt: Natural-language request, including the failed locator
            context: Structured context (markup, screenshot, url, locator)

        Returns:
            A selector string, or None if nothing suitable was found

        Raises:
            ExternalServiceError: If the service is unreachable or errors
        """
        ...


SuggestLocatorFn = Callable[[str, Dict[str, Any]], Awaitable[Optional[str]]]

# Anything the healing engine accepts as its AI collaborator
LocatorSuggester = Union[ILocatorSuggester, SuggestLocatorFn]
