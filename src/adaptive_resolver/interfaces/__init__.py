"""
Interfaces module - Abstract contracts for external collaborators.
"""

from adaptive_resolver.interfaces.document import IDocument, IElementSet
from adaptive_resolver.interfaces.suggester import (
    ILocatorSuggester,
    LocatorSuggester,
    SuggestLocatorFn,
)

__all__ = [
    "IDocument",
    "IElementSet",
    "ILocatorSuggester",
    "LocatorSuggester",
    "SuggestLocatorFn",
]
