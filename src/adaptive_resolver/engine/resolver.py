"""
Resolver Facade - Whole-query resolution from natural-language descriptions.

Resolution order for ``resolve_by_description``:
1. Per-description cache (a live hit bypasses everything else)
2. Pattern resolver (button/input/link/dropdown phrase patterns)
3. AI heuristic resolver (visual-description matcher)
4. Replay of selectors that resolved this description before

The first stage to succeed wins and is cached.

Example:
    >>> resolver = ElementResolver(settings)
    >>> handle = await resolver.resolve_by_description(document, "Submit button")
    >>> handle.selector
    'button:has-text("Submit")'
"""

import json
import logging
import time
from typing import Any, Dict, List, Optional, TYPE_CHECKING

from adaptive_resolver.config.settings import Settings
from adaptive_resolver.engine.cache import DescriptionHistory, ResolutionCache
from adaptive_resolver.engine.patterns import PatternResolver
from adaptive_resolver.engine.visual import VisualDescriptionMatcher
from adaptive_resolver.exceptions import ElementNotFoundError
from adaptive_resolver.locators.descriptor import (
    ElementDescriptor,
    ResolutionOptions,
    ResolvedHandle,
    WILDCARD_SELECTOR,
)
from adaptive_resolver.reporting.events import EventType, ResolutionEventLog
from adaptive_resolver.utils.retry import with_timeout

if TYPE_CHECKING:
    from adaptive_resolver.interfaces.document import IDocument, IElementSet

logger = logging.getLogger(__name__)


class ElementResolver:
    """
    Orchestrates pattern, AI heuristic and history-replay resolution.

    Also builds ElementDescriptors for common lookups (role, test id,
    text, attribute, label, ...).
    """

    def __init__(
        self,
        settings: Optional[Settings] = None,
        patterns: Optional[PatternResolver] = None,
        matcher: Optional[VisualDescriptionMatcher] = None,
        cache: Optional[ResolutionCache] = None,
        history: Optional[DescriptionHistory] = None,
        events: Optional[ResolutionEventLog] = None,
    ):
        """
        Initialize the resolver.

        Args:
            settings: Settings (defaults to Settings())
            patterns: Pattern catalog (defaults to the built-in patterns)
            matcher: Visual-description matcher for the AI heuristic stage
            cache: Resolved-handle cache keyed by description
            history: Per-description selector history replayed last
            events: Optional structured event sink
        """
        self.settings = settings or Settings()
        self.patterns = patterns or PatternResolver(
            probe_timeout_ms=self.settings.resolution.element_timeout_ms
        )
        self.matcher = matcher or VisualDescriptionMatcher(
            self.settings,
            history_size=self.settings.resolution.healing_attempt_history_size,
        )
        self.cache = cache if cache is not None else ResolutionCache()
        if history is None:
            history = DescriptionHistory(self.settings.resolution.description_history_size)
        self.history = history
        self.events = events

    def _emit(self, type: EventType, subject: str, **kwargs: Any) -> None:
        if self.events is not None:
            self.events.emit(type, subject, **kwargs)

    async def _exists(self, document: "IDocument", element_set: "IElementSet") -> bool:
        try:
            count = await with_timeout(
                document.count(element_set),
                self.settings.resolution.element_timeout_ms,
                f"Probe timed out: {element_set.selector}",
            )
        except Exception as e:
            logger.debug(f"Probe failed for {element_set.selector}: {e}")
            return False
        return count > 0

    # =========================================================================
    # WHOLE-QUERY RESOLUTION
    # =========================================================================

    async def resolve_by_description(
        self,
        document: "IDocument",
        description: str,
        use_cache: bool = True,
        ai_enabled: Optional[bool] = None,
        self_heal: bool = True,
    ) -> ResolvedHandle:
        """
        Resolve an element from a natural-language description.

        Args:
            document: Live document
            description: e.g. "Submit button", "big blue button near 'Email'"
            use_cache: Read and write the per-description cache
            ai_enabled: Override the AI heuristic stage (None uses AI_ENABLED)
            self_heal: Allow replay of previously working selectors

        Returns:
            ResolvedHandle for the first stage that found the element

        Raises:
            ElementNotFoundError: Every stage was exhausted
        """
        start = time.monotonic()
        logger.info(f'Resolving element by description: "{description}"')

        if use_cache:
            cached = self.cache.get(description, document)
            if cached is not None:
                logger.debug("Element found in cache")
                return cached

        self._emit(EventType.ATTEMPT_START, description)
        attempted: List[str] = ["pattern"]

        handle = await self._resolve_by_patterns(document, description)

        ai_stage = self.matcher.enabled if ai_enabled is None else ai_enabled
        if handle is None and ai_stage:
            attempted.append("ai")
            handle = await self._resolve_by_ai(document, description)

        if handle is None and self_heal:
            attempted.append("history")
            handle = await self._resolve_by_history(document, description)

        elapsed_ms = (time.monotonic() - start) * 1000
        if handle is None:
            logger.warning(f"Could not resolve element: {description}")
            self._emit(EventType.FAILED, description, elapsed_ms=elapsed_ms,
                       data={"attempted": attempted})
            raise ElementNotFoundError(description, attempted)

        if use_cache:
            self.cache.put(description, handle)

        logger.info(f"Element resolved in {elapsed_ms:.0f}ms")
        self._emit(EventType.RESOLVED, description, strategy=handle.source,
                   elapsed_ms=elapsed_ms, data={"selector": handle.selector})
        return handle

    async def _resolve_by_patterns(self, document: "IDocument", description: str) -> Optional[ResolvedHandle]:
        match = await self.patterns.resolve_by_patterns(document, description)
        if match is None:
            self._emit(EventType.STRATEGY_FAILURE, description, strategy="pattern")
            return None

        self._emit(EventType.STRATEGY_SUCCESS, description, strategy="pattern",
                   data={"category": match.category, "selector": match.selector})
        return ResolvedHandle(
            element_set=match.element_set,
            selector=match.selector,
            source="pattern",
            generation=document.generation,
        )

    async def _resolve_by_ai(self, document: "IDocument", description: str) -> Optional[ResolvedHandle]:
        logger.debug("Attempting AI-based element resolution")
        try:
            match = await self.matcher.find_by_visual_description(document, description, enabled=True)
        except Exception as e:
            logger.warning(f"AI resolution failed: {e}")
            self._emit(EventType.STRATEGY_FAILURE, description, strategy="ai", data={"error": str(e)})
            return None

        if match is None:
            self._emit(EventType.STRATEGY_FAILURE, description, strategy="ai")
            return None

        try:
            element_set = document.query(match.selector)
        except Exception as e:
            logger.debug(f"AI selector rejected: {match.selector}: {e}")
            return None
        if not await self._exists(document, element_set):
            self._emit(EventType.STRATEGY_FAILURE, description, strategy="ai",
                       data={"candidate": match.selector})
            return None

        logger.debug("Element resolved by AI")
        self.history.add(description, match.selector)
        self.matcher.record_healing(description, match.selector)
        self._emit(EventType.STRATEGY_SUCCESS, description, strategy="ai",
                   confidence=match.confidence, data={"selector": match.selector})
        return ResolvedHandle(
            element_set=element_set,
            selector=match.selector,
            source="ai",
            generation=document.generation,
        )

    async def _resolve_by_history(self, document: "IDocument", description: str) -> Optional[ResolvedHandle]:
        logger.debug("Attempting self-healing resolution")
        for selector in self.history.get(description):
            try:
                element_set = document.query(selector)
            except Exception as e:
                logger.debug(f"History selector failed: {selector}: {e}")
                continue
            if await self._exists(document, element_set):
                logger.debug("Element resolved by self-healing")
                self._emit(EventType.STRATEGY_SUCCESS, description, strategy="history",
                           data={"selector": selector})
                return ResolvedHandle(
                    element_set=element_set,
                    selector=selector,
                    source="history",
                    generation=document.generation,
                )

        self._emit(EventType.STRATEGY_FAILURE, description, strategy="history")
        return None

    def record_alternative(self, description: str, selector: str) -> bool:
        """
        Remember a selector that resolved a description.

        Returns:
            False if the selector was already recorded
        """
        return self.history.add(description, selector)

    # =========================================================================
    # DESCRIPTOR FACTORIES
    # =========================================================================

    def _options(self) -> ResolutionOptions:
        return ResolutionOptions(timeout_ms=self.settings.resolution.default_timeout_ms)

    def create_dynamic_element(self, template: str, params: Dict[str, Any]) -> ElementDescriptor:
        """
        Build a CSS descriptor from a template with ``{{key}}`` or ``{key}`` slots.

        Example:
            >>> resolver.create_dynamic_element("tr[data-id='{{id}}'] td", {"id": 42}).css
            "tr[data-id='42'] td"
        """
        logger.debug(f"Creating dynamic element with template: {template}")
        selector = template
        for key, value in params.items():
            selector = selector.replace(f"{{{{{key}}}}}", str(value))
            selector = selector.replace(f"{{{key}}}", str(value))

        return ElementDescriptor(
            css=selector,
            description=f"Dynamic element: {template} with params: {json.dumps(params, default=str)}",
            options=self._options(),
        )

    def create_by_role(self, role: str, name: Optional[str] = None, exact: bool = False) -> ElementDescriptor:
        selector = f'[role="{role}"]'
        if name:
            operator = "=" if exact else "*="
            selector += f'[aria-label{operator}"{name}"]'

        description = f"Element with role: {role}"
        if name:
            description += f" and name: {name}"
        return ElementDescriptor(css=selector, description=description, options=self._options())

    def create_by_test_id(self, test_id: str) -> ElementDescriptor:
        return ElementDescriptor(
            test_id=test_id,
            description=f"Element with test ID: {test_id}",
            options=self._options(),
        )

    def create_by_text(
        self,
        text: str,
        exact: bool = False,
        selector: Optional[str] = None,
    ) -> ElementDescriptor:
        """Match by text, with the css strategy scoped to ``selector`` (default any element)."""
        base = selector or WILDCARD_SELECTOR
        pseudo = "text-is" if exact else "has-text"
        return ElementDescriptor(
            css=f'{base}:{pseudo}("{text}")',
            text=text,
            description=f"Element with text: {text}",
            options=self._options(),
        )

    def create_by_attribute(self, attribute: str, value: str, exact: bool = False) -> ElementDescriptor:
        operator = "=" if exact else "*="
        return ElementDescriptor(
            css=f'[{attribute}{operator}"{value}"]',
            description=f'Element with {attribute}="{value}"',
            options=self._options(),
        )

    def create_by_label(self, label: str) -> ElementDescriptor:
        """
        Form field by label: aria-label first, then the input following a <label>.

        Self-healing is on, with the select/textarea variants as alternatives.
        """
        return ElementDescriptor(
            css=f'input[aria-label="{label}"]',
            xpath=f'//label[contains(text(), "{label}")]//following-sibling::input[1]',
            description=f"Form element with label: {label}",
            self_heal=True,
            alternative_locators=[
                f'select[aria-label="{label}"]',
                f'textarea[aria-label="{label}"]',
                f'xpath://label[contains(text(), "{label}")]//following-sibling::select[1]',
                f'xpath://label[contains(text(), "{label}")]//following-sibling::textarea[1]',
            ],
            options=self._options(),
        )

    def create_within_container(self, container_selector: str, element_selector: str) -> ElementDescriptor:
        return ElementDescriptor(
            css=f"{container_selector} {element_selector}",
            description=f"Element {element_selector} within {container_selector}",
            options=self._options(),
        )

    def create_nth_element(self, selector: str, index: int) -> ElementDescriptor:
        """Zero-based index into same-type siblings (``:nth-of-type`` is one-based)."""
        return ElementDescriptor(
            css=f"{selector}:nth-of-type({index + 1})",
            description=f"Element {index} of {selector}",
            options=self._options(),
        )

    # =========================================================================
    # CACHE & HISTORY
    # =========================================================================

    def clear_cache(self) -> None:
        self.cache.clear()
        logger.debug("Element cache cleared")

    def cache_stats(self) -> Dict[str, Any]:
        return self.cache.stats()

    def export_healing_history(self) -> Dict[str, List[str]]:
        return self.history.export()

    def import_healing_history(self, history: Dict[str, List[str]]) -> None:
        count = self.history.import_(history)
        logger.debug(f"Imported {count} healing history entries")
