"""
Pattern Resolver - Natural-language phrases to selector templates.

Patterns are grouped by category (button, input, link, dropdown, ...).
Within a category they are sorted by priority; categories are tried in
registration order. The first pattern whose selector exists wins.

Example:
    >>> resolver = PatternResolver()
    >>> resolver.candidates("Submit button")[0]
    ('button', 'button:has-text("Submit")')
"""

import logging
import re
from dataclasses import dataclass
from typing import Dict, Iterator, List, Optional, Pattern, Tuple, Union, TYPE_CHECKING

from adaptive_resolver.utils.retry import with_timeout

if TYPE_CHECKING:
    from adaptive_resolver.interfaces.document import IDocument, IElementSet

logger = logging.getLogger(__name__)

DEFAULT_PRIORITY = 999
PLACEHOLDER_RE = re.compile(r"\{(\d+)\}")


@dataclass
class ElementPattern:
    """
    One phrase pattern and the selector it produces.

    ``{0}`` in the template is the first capture group, ``{1}`` the second,
    and so on.
    """
    pattern: Pattern[str]
    selector_template: str
    priority: Optional[int] = None

    @classmethod
    def create(
        cls,
        pattern: Union[str, Pattern[str]],
        selector_template: str,
        priority: Optional[int] = None,
    ) -> "ElementPattern":
        """Build a pattern, compiling strings case-insensitively."""
        if isinstance(pattern, str):
            pattern = re.compile(pattern, re.IGNORECASE)
        return cls(pattern=pattern, selector_template=selector_template, priority=priority)

    @property
    def sort_key(self) -> int:
        return self.priority if self.priority is not None else DEFAULT_PRIORITY


@dataclass
class PatternMatch:
    """A selector produced by a pattern that exists in the document."""
    category: str
    selector: str
    element_set: "IElementSet"


DEFAULT_PATTERNS: List[Tuple[str, List[Tuple[str, str, int]]]] = [
    ("button", [
        (r"^(.*)\s+button$", 'button:has-text("{0}")', 1),
        (r"^click\s+(.*)$", '[role="button"]:has-text("{0}")', 2),
        (r"^press\s+(.*)$", 'button:has-text("{0}")', 3),
    ]),
    ("input", [
        (r"^(.*)\s+field$", 'input[placeholder*="{0}"]', 1),
        (r"^(.*)\s+input$", 'input[name*="{0}"]', 2),
        (r"^enter\s+(.*)$", 'input[aria-label*="{0}"]', 3),
    ]),
    ("link", [
        (r"^(.*)\s+link$", 'a:has-text("{0}")', 1),
        (r"^go\s+to\s+(.*)$", 'a[href*="{0}"]', 2),
    ]),
    ("dropdown", [
        (r"^(.*)\s+dropdown$", 'select[name*="{0}"]', 1),
        (r"^select\s+(.*)$", 'select:has(option:has-text("{0}"))', 2),
    ]),
]


def build_selector(template: str, match: "re.Match[str]") -> str:
    """
    Substitute capture groups into a selector template.

    Every ``{n}`` is replaced by capture group ``n + 1``; missing or
    unmatched groups become empty strings.
    """
    groups = match.groups()

    def substitute(m: "re.Match[str]") -> str:
        index = int(m.group(1))
        if index < len(groups) and groups[index] is not None:
            return groups[index]
        return ""

    return PLACEHOLDER_RE.sub(substitute, template)


class PatternResolver:
    """Priority-ordered catalog of phrase patterns."""

    def __init__(self, include_defaults: bool = True, probe_timeout_ms: int = 5000):
        """
        Initialize the resolver.

        Args:
            include_defaults: Register the built-in button/input/link/dropdown patterns
            probe_timeout_ms: Timeout for each existence probe
        """
        self._categories: Dict[str, List[ElementPattern]] = {}
        self._probe_timeout_ms = probe_timeout_ms

        if include_defaults:
            for category, entries in DEFAULT_PATTERNS:
                self.register_pattern(
                    category,
                    [ElementPattern.create(p, s, prio) for p, s, prio in entries],
                )
            logger.debug("Element resolver patterns initialized")

    @property
    def categories(self) -> List[str]:
        return list(self._categories)

    def patterns(self, category: str) -> List[ElementPattern]:
        return list(self._categories.get(category, []))

    def register_pattern(self, category: str, patterns: List[ElementPattern]) -> None:
        """
        Add patterns to a category (created on first use).

        The category keeps its registration position; its patterns are
        re-sorted by priority.
        """
        existing = self._categories.setdefault(category, [])
        existing.extend(patterns)
        existing.sort(key=lambda p: p.sort_key)
        logger.debug(f"Registered {len(patterns)} patterns for category: {category}")

    def iter_candidates(self, description: str) -> Iterator[Tuple[str, str]]:
        """Yield (category, selector) for every matching pattern, in try order."""
        for category, patterns in self._categories.items():
            for entry in patterns:
                match = entry.pattern.search(description)
                if match:
                    yield category, build_selector(entry.selector_template, match)

    def candidates(self, description: str) -> List[Tuple[str, str]]:
        """All (category, selector) candidates for a description, in try order."""
        return list(self.iter_candidates(description))

    async def resolve_by_patterns(
        self,
        document: "IDocument",
        description: str,
    ) -> Optional[PatternMatch]:
        """
        Try every matching pattern and return the first selector that exists.

        Args:
            document: Live document to probe
            description: Natural-language description

        Returns:
            PatternMatch, or None if no pattern produced an existing selector
        """
        for category, selector in self.iter_candidates(description):
            try:
                element_set = document.query(selector)
                count = await with_timeout(
                    document.count(element_set),
                    self._probe_timeout_ms,
                    f"Pattern probe timed out: {selector}",
                )
            except Exception as e:
                logger.debug(f"Pattern selector failed: {selector}: {e}")
                continue

            if count > 0:
                logger.debug(f"Resolved by pattern in category: {category}")
                return PatternMatch(category=category, selector=selector, element_set=element_set)

        return None
