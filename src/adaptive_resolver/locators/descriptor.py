"""
Element descriptors and resolved handles.

An ElementDescriptor is the declarative bundle of strategies for one logical
UI element. Resolving it produces a ResolvedHandle, which is only good for
the document generation it was bound in.
"""

from dataclasses import dataclass, field
from typing import List, Optional, TYPE_CHECKING

from adaptive_resolver.locators.strategy import (
    LocatorKind,
    LocatorStrategy,
    parse_alternative_locator,
)

if TYPE_CHECKING:
    from adaptive_resolver.interfaces.document import IDocument, IElementSet
    from adaptive_resolver.engine.results import HealingResult

WILDCARD_SELECTOR = "*"


@dataclass(frozen=True)
class ResolutionOptions:
    """
    Per-descriptor resolution options.

    Attributes:
        timeout_ms: Probe timeout (None uses ELEMENT_TIMEOUT)
        retry_count: Attempts for resolve_with_retry (None uses ELEMENT_RETRY_COUNT)
        cache_enabled: Memoize the resolved handle on the descriptor
    """
    timeout_ms: Optional[int] = None
    retry_count: Optional[int] = None
    cache_enabled: bool = True


@dataclass
class ResolvedHandle:
    """
    A reference bound to the live element found by a resolution.

    Attributes:
        element_set: Query that matched at resolution time
        selector: Selector (or finder description) that matched
        source: What produced it (a strategy kind, "healing", "pattern", "ai", "history")
        generation: Document generation the handle was bound in
        healing_result: Set when the handle came out of the healing chain
    """
    element_set: "IElementSet"
    selector: str
    source: str
    generation: int
    healing_result: Optional["HealingResult"] = None

    @property
    def healed(self) -> bool:
        return self.healing_result is not None

    def is_valid(self, document: "IDocument") -> bool:
        """A handle is stale once the document has navigated or reloaded."""
        return document.generation == self.generation


@dataclass(eq=False)
class ElementDescriptor:
    """
    Declarative description of one logical UI element.

    Strategies are tried in a fixed order: id, testId, css, xpath, text,
    name, role, then each alternative locator. Alternatives may carry a
    ``kind:`` prefix and default to CSS.

    Example:
        >>> descriptor = ElementDescriptor(
        ...     css="#submit-btn",
        ...     description="Submit button",
        ...     self_heal=True,
        ...     alternative_locators=["text:Submit", "xpath://button[@type='submit']"],
        ... )
        >>> [str(s) for s in descriptor.strategies()]
        ['css:#submit-btn', 'text:Submit', "xpath://button[@type='submit']"]
    """
    id: Optional[str] = None
    test_id: Optional[str] = None
    css: Optional[str] = None
    xpath: Optional[str] = None
    text: Optional[str] = None
    name: Optional[str] = None
    role: Optional[str] = None
    description: str = "Element"
    self_heal: bool = False
    alternative_locators: List[str] = field(default_factory=list)
    options: ResolutionOptions = field(default_factory=ResolutionOptions)

    # Lazily memoized; owned by this instance only
    _handle: Optional[ResolvedHandle] = field(default=None, init=False, repr=False)

    def __post_init__(self):
        self.alternative_locators = list(self.alternative_locators)

    def strategies(self) -> List[LocatorStrategy]:
        """
        Build the ordered candidate strategy list.

        Returns:
            At least one strategy; a wildcard CSS strategy when nothing was given
        """
        strategies: List[LocatorStrategy] = []

        if self.id:
            strategies.append(LocatorStrategy(LocatorKind.ID, f"#{self.id}"))
        if self.test_id:
            strategies.append(LocatorStrategy(LocatorKind.TEST_ID, self.test_id))
        if self.css:
            strategies.append(LocatorStrategy(LocatorKind.CSS, self.css))
        if self.xpath:
            strategies.append(LocatorStrategy(LocatorKind.XPATH, self.xpath))
        if self.text:
            strategies.append(LocatorStrategy(LocatorKind.TEXT, self.text))
        if self.name:
            strategies.append(LocatorStrategy(LocatorKind.NAME, f'[name="{self.name}"]'))
        if self.role:
            strategies.append(LocatorStrategy(LocatorKind.ROLE, self.role))

        for locator in self.alternative_locators:
            if locator:
                strategies.append(parse_alternative_locator(locator))

        if not strategies:
            strategies.append(LocatorStrategy(LocatorKind.CSS, WILDCARD_SELECTOR))

        return strategies

    @property
    def primary(self) -> LocatorStrategy:
        """The first strategy; its value is the healing chain's original locator."""
        return self.strategies()[0]

    @property
    def handle(self) -> Optional[ResolvedHandle]:
        return self._handle

    def remember(self, handle: ResolvedHandle) -> None:
        """Memoize a resolved handle (no-op when caching is disabled)."""
        if self.options.cache_enabled:
            self._handle = handle

    def cached_handle(self, document: "IDocument") -> Optional[ResolvedHandle]:
        """
        Get the memoized handle if it is still bound to the current document.

        A stale handle is discarded, never reused.
        """
        if self._handle is None:
            return None
        if not self._handle.is_valid(document):
            self._handle = None
            return None
        return self._handle

    def forget(self) -> None:
        """Drop the memoized handle."""
        self._handle = None
