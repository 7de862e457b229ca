"""
Locator strategies - one way of finding an element.

A strategy is a (kind, value) pair. The kind decides which document query
primitive is used; the value is what that primitive receives.
"""

from dataclasses import dataclass
from enum import Enum
from typing import Optional, TYPE_CHECKING

if TYPE_CHECKING:
    from adaptive_resolver.interfaces.document import IDocument, IElementSet


class LocatorKind(str, Enum):
    """How a strategy value is turned into a document query."""
    ID = "id"
    CSS = "css"
    XPATH = "xpath"
    TEXT = "text"
    TEST_ID = "testId"
    ROLE = "role"
    NAME = "name"
    PLACEHOLDER = "placeholder"


# Prefixes accepted on alternative locators ("xpath://div", "text:Sign in").
# Anything without a known prefix is CSS.
ALTERNATIVE_PREFIXES = {
    "xpath": LocatorKind.XPATH,
    "css": LocatorKind.CSS,
    "text": LocatorKind.TEXT,
    "testId": LocatorKind.TEST_ID,
    "role": LocatorKind.ROLE,
    "placeholder": LocatorKind.PLACEHOLDER,
}


@dataclass(frozen=True)
class LocatorStrategy:
    """
    A single, immutable locating strategy.

    Attributes:
        kind: Query primitive to use
        value: Selector, text or role passed to that primitive (never empty)
        priority: Optional ordering hint, informational only
    """
    kind: LocatorKind
    value: str
    priority: Optional[int] = None

    def __post_init__(self):
        if not self.value or not self.value.strip():
            raise ValueError(f"LocatorStrategy value must not be empty (kind={self.kind.value})")

    def __str__(self) -> str:
        return f"{self.kind.value}:{self.value}"


def parse_alternative_locator(locator: str) -> LocatorStrategy:
    """
    Turn an alternative-locator string into a strategy.

    Args:
        locator: String such as ``"xpath://button"`` or ``".submit"``

    Returns:
        Strategy tagged with the prefixed kind, or CSS when unprefixed

    Example:
        >>> parse_alternative_locator("text:Sign in")
        LocatorStrategy(kind=<LocatorKind.TEXT: 'text'>, value='Sign in', priority=None)
    """
    prefix, sep, rest = locator.partition(":")
    if sep and prefix in ALTERNATIVE_PREFIXES and rest:
        return LocatorStrategy(ALTERNATIVE_PREFIXES[prefix], rest)
    return LocatorStrategy(LocatorKind.CSS, locator)


def build_query(document: "IDocument", strategy: LocatorStrategy) -> "IElementSet":
    """
    Build the kind-specific document query for a strategy.

    id, css and name values are CSS selectors; xpath is wrapped as an XPath
    query; text, testId, role and placeholder use the semantic finders.
    """
    kind = strategy.kind
    if kind == LocatorKind.XPATH:
        return document.query_xpath(strategy.value)
    if kind == LocatorKind.TEXT:
        return document.query_by_text(strategy.value)
    if kind == LocatorKind.TEST_ID:
        return document.query_by_test_id(strategy.value)
    if kind == LocatorKind.ROLE:
        return document.query_by_role(strategy.value)
    if kind == LocatorKind.PLACEHOLDER:
        return document.query_by_placeholder(strategy.value)
    return document.query(strategy.value)
