"""
Healing Strategies - Ways of producing a substitute for a failed locator.

Each strategy proposes at most one selector. The healing engine verifies
every proposal against the live document before accepting it.

Strategies (default priority order):
1. nearby    - score all elements against fragments of the failed locator
2. text      - try text selectors built from the locator's text or name
3. visual    - match a cached geometry/style signature
4. structure - match a cached tree-position signature among same-tag elements
5. ai        - ask an external suggestion service
"""

import inspect
import logging
import re
from abc import ABC, abstractmethod
from dataclasses import dataclass, field
from typing import Any, Dict, List, Optional, TYPE_CHECKING

from pydantic import TypeAdapter

from adaptive_resolver.ai.suggester import build_healing_prompt, encode_screenshot
from adaptive_resolver.engine.cache import SignatureCache
from adaptive_resolver.engine.schemas import (
    ElementSummary,
    StructureCandidate,
    StructureSignature,
    VisualCandidate,
    VisualSignature,
)
from adaptive_resolver.engine.scripts import SCAN_NEARBY, SCAN_STRUCTURE, SCAN_VISUAL
from adaptive_resolver.exceptions import ExternalServiceError

if TYPE_CHECKING:
    from adaptive_resolver.interfaces.document import IDocument
    from adaptive_resolver.interfaces.suggester import LocatorSuggester

logger = logging.getLogger(__name__)


@dataclass
class HealingContext:
    """What a strategy may use besides the document and the failed locator."""
    alternative_locators: List[str] = field(default_factory=list)
    signatures: SignatureCache = field(default_factory=SignatureCache)


class HealingStrategy(ABC):
    """A named, prioritized way of proposing a substitute locator."""

    name: str = ""
    priority: int = 100

    @abstractmethod
    async def heal(
        self,
        document: "IDocument",
        original_locator: str,
        context: HealingContext,
    ) -> Optional[str]:
        """
        Propose a substitute selector.

        Returns:
            Selector to verify, or None when the strategy has no candidate
        """
        ...

    def __repr__(self) -> str:
        return f"{type(self).__name__}(name={self.name!r}, priority={self.priority})"


# =============================================================================
# LOCATOR PARSING
# =============================================================================

@dataclass
class LocatorHints:
    """Coarse attributes recovered from a locator string."""
    id_fragment: Optional[str] = None
    classes: List[str] = field(default_factory=list)
    text: Optional[str] = None
    tag: Optional[str] = None


_ID_RE = re.compile(r"#([\w-]+)")
_ID_ATTR_RE = re.compile(r"""\[id[*^$~|]?=["']?([^"'\]]+)["']?\]""")
_CLASS_RE = re.compile(r"\.([A-Za-z_][\w-]*)")
_TAG_RE = re.compile(r"^([a-zA-Z][a-zA-Z0-9]*)(?=$|[#.\[:\s>+~])")
_QUOTED_RE = re.compile(r"""["']([^"']+)["']""")
_TEXT_SELECTOR_RE = re.compile(r"""(?:text[=:]|:has-text\(|:text\(|:text-is\()\s*["']?([^"')]+)["']?""", re.IGNORECASE)
_ATTR_TEXT_RE = re.compile(
    r"""\[(?:aria-label|placeholder|title|name|value|alt)[*^$~|]?=["']([^"']+)["']\]""",
    re.IGNORECASE,
)
_TEST_ID_RE = re.compile(r"""\[data-(?:testid|test-id|test|cy)[*^$~|]?=["']([^"']+)["']\]""", re.IGNORECASE)
_WORD_SPLIT_RE = re.compile(r"[-_\s]+|(?<=[a-z])(?=[A-Z])")

# Tokens that describe the widget rather than its text
NOISE_WORDS = {
    "btn", "button", "input", "field", "link", "lnk", "txt",
    "icon", "container", "wrapper",
}

MIN_TOKEN_LENGTH = 3


def _is_xpath(locator: str) -> bool:
    return locator.startswith("/") or locator.startswith("(") or locator.startswith("xpath=")


def parse_locator_hints(locator: str) -> LocatorHints:
    """
    Recover id fragment, classes, inline text and tag from a locator.

    Example:
        >>> parse_locator_hints('button.primary.large:has-text("Save")')
        LocatorHints(id_fragment=None, classes=['primary', 'large'], text='Save', tag='button')
    """
    hints = LocatorHints()

    text_match = _TEXT_SELECTOR_RE.search(locator)
    if text_match:
        hints.text = text_match.group(1).strip()
    elif _is_xpath(locator):
        quoted = _QUOTED_RE.search(locator)
        if quoted:
            hints.text = quoted.group(1).strip()

    if _is_xpath(locator):
        id_attr = re.search(r"""@id\s*=\s*["']([^"']+)["']""", locator)
        if id_attr:
            hints.id_fragment = id_attr.group(1)
        class_attr = re.search(r"""@class\s*,?\s*=?\s*["']([^"']+)["']""", locator)
        if class_attr:
            hints.classes = class_attr.group(1).split()
        tag_match = re.search(r"//([a-zA-Z][a-zA-Z0-9]*)", locator)
        if tag_match:
            hints.tag = tag_match.group(1).lower()
        return hints

    # Strip quoted parts so text inside :has-text("a.b") is not read as classes
    bare = _QUOTED_RE.sub('""', locator)
    id_match = _ID_RE.search(bare) or _ID_ATTR_RE.search(locator)
    if id_match:
        hints.id_fragment = id_match.group(1)
    hints.classes = _CLASS_RE.findall(bare)
    tag_match = _TAG_RE.match(bare.strip())
    if tag_match:
        hints.tag = tag_match.group(1).lower()
    return hints


def _words(identifier: str) -> str:
    return " ".join(w for w in _WORD_SPLIT_RE.split(identifier) if w).lower()


def extract_text_hint(locator: str) -> Optional[str]:
    """
    Find the text a locator was most likely aiming at.

    Quoted text wins; otherwise words are derived from an attribute value,
    test id, id or class (``#submit-btn`` gives ``"submit btn"``).
    """
    match = _TEXT_SELECTOR_RE.search(locator)
    if match:
        return match.group(1).strip()

    match = _ATTR_TEXT_RE.search(locator)
    if match:
        return match.group(1).strip()

    match = _TEST_ID_RE.search(locator)
    if match:
        return _words(match.group(1))

    if _is_xpath(locator):
        quoted = _QUOTED_RE.search(locator)
        return quoted.group(1).strip() if quoted else None

    hints = parse_locator_hints(locator)
    if hints.id_fragment:
        return _words(hints.id_fragment)
    if hints.classes:
        return _words(hints.classes[-1])

    quoted = _QUOTED_RE.search(locator)
    if quoted:
        return quoted.group(1).strip()
    return None


def text_candidates(hint: str) -> List[str]:
    """The full phrase, then each meaningful token of it."""
    candidates = [hint]
    for token in hint.split():
        if len(token) >= MIN_TOKEN_LENGTH and token.lower() not in NOISE_WORDS and token not in candidates:
            candidates.append(token)
    return candidates


def text_selector_forms(text: str) -> List[str]:
    """Text selector forms, tried in order."""
    escaped = text.replace('"', '\\"')
    xpath_text = text.replace("'", "")
    return [
        f'text="{escaped}"',
        f"text={text}",
        f'*:has-text("{escaped}")',
        f"xpath=//*[contains(text(), '{xpath_text}')]",
        f"xpath=//*[contains(., '{xpath_text}')]",
    ]


async def _probe(document: "IDocument", selector: str) -> bool:
    try:
        return await document.count(document.query(selector)) > 0
    except Exception as e:
        logger.debug(f"Probe failed for {selector}: {e}")
        return False


# =============================================================================
# STRATEGIES
# =============================================================================

NEARBY_CLASS_POINTS = 10
NEARBY_ID_POINTS = 20
NEARBY_TEXT_POINTS = 15
NEARBY_TAG_POINTS = 5


def score_nearby(hints: LocatorHints, candidate: ElementSummary) -> int:
    """Score one element against the hints of a failed locator."""
    score = 0
    if hints.classes:
        shared = set(hints.classes) & set(candidate.classes)
        score += NEARBY_CLASS_POINTS * len(shared)
    if hints.id_fragment and candidate.id:
        fragment, element_id = hints.id_fragment.lower(), candidate.id.lower()
        if fragment in element_id or element_id in fragment:
            score += NEARBY_ID_POINTS
    if hints.text and candidate.text and hints.text.lower() in candidate.text.lower():
        score += NEARBY_TEXT_POINTS
    if hints.tag and candidate.tag == hints.tag:
        score += NEARBY_TAG_POINTS
    return score


class NearbyElementStrategy(HealingStrategy):
    """Pick the element sharing the most fragments with the failed locator."""

    name = "nearby"
    priority = 1

    _adapter = TypeAdapter(List[ElementSummary])

    async def heal(self, document, original_locator, context):
        hints = parse_locator_hints(original_locator)
        if not (hints.id_fragment or hints.classes or hints.text or hints.tag):
            return None

        payload = await document.evaluate(SCAN_NEARBY.source)
        candidates = self._adapter.validate_python(payload or [])

        best: Optional[ElementSummary] = None
        best_score = 0
        for candidate in candidates:
            score = score_nearby(hints, candidate)
            if score > best_score:
                best, best_score = candidate, score

        if best is None:
            return None
        logger.debug(f"Nearby candidate {best.best_selector()} scored {best_score}")
        return best.best_selector()


class TextStrategy(HealingStrategy):
    """Find the element by the text its locator was aiming at."""

    name = "text"
    priority = 2

    async def heal(self, document, original_locator, context):
        hint = extract_text_hint(original_locator)
        if not hint:
            return None

        for text in text_candidates(hint):
            for selector in text_selector_forms(text):
                if await _probe(document, selector):
                    return selector
        return None


VISUAL_SIZE_TOLERANCE_PX = 10
VISUAL_POSITION_TOLERANCE_PX = 50
VISUAL_SCORE_FLOOR = 50


def score_visual(signature: VisualSignature, candidate: VisualCandidate) -> int:
    """Visual similarity of a candidate to a cached signature (max 100)."""
    score = 0
    if abs(candidate.width - signature.width) < VISUAL_SIZE_TOLERANCE_PX:
        score += 20
    if abs(candidate.height - signature.height) < VISUAL_SIZE_TOLERANCE_PX:
        score += 20
    if abs(candidate.top - signature.top) < VISUAL_POSITION_TOLERANCE_PX:
        score += 10
    if abs(candidate.left - signature.left) < VISUAL_POSITION_TOLERANCE_PX:
        score += 10
    if candidate.background_color == signature.background_color:
        score += 15
    if candidate.color == signature.color:
        score += 15
    if candidate.font_size == signature.font_size:
        score += 10
    return score


class VisualSimilarityStrategy(HealingStrategy):
    """Find the element that looks like the one that used to match."""

    name = "visual"
    priority = 3

    _adapter = TypeAdapter(List[VisualCandidate])

    async def heal(self, document, original_locator, context):
        signature = context.signatures.visual(original_locator)
        if signature is None:
            return None

        payload = await document.evaluate(SCAN_VISUAL.source)
        candidates = self._adapter.validate_python(payload or [])

        best = _best_above(
            ((score_visual(signature, c), c) for c in candidates),
            VISUAL_SCORE_FLOOR,
        )
        return best.best_selector() if best else None


STRUCTURE_SCORE_FLOOR = 20


def score_structure(signature: StructureSignature, candidate: StructureCandidate) -> int:
    """Structural similarity of a same-tag candidate to a cached signature."""
    score = 0
    if signature.parent and candidate.parent:
        if candidate.parent.tag == signature.parent.tag:
            score += 20
        if candidate.parent.class_name == signature.parent.class_name:
            score += 15
    if candidate.sibling_index == signature.sibling_index:
        score += 10
    if candidate.child_count == signature.child_count:
        score += 10
    for name, value in signature.attributes.items():
        if candidate.attributes.get(name) == value:
            score += 5
    return score


class StructureStrategy(HealingStrategy):
    """Find the same-tag element sitting where the old one sat."""

    name = "structure"
    priority = 4

    _adapter = TypeAdapter(List[StructureCandidate])

    async def heal(self, document, original_locator, context):
        signature = context.signatures.structure(original_locator)
        if signature is None:
            return None

        payload = await document.evaluate(SCAN_STRUCTURE.source, signature.tag)
        candidates = self._adapter.validate_python(payload or [])

        best = _best_above(
            ((score_structure(signature, c), c) for c in candidates),
            STRUCTURE_SCORE_FLOOR,
        )
        return best.best_selector() if best else None


class AIStrategy(HealingStrategy):
    """Ask the external suggestion service for a selector."""

    name = "ai"
    priority = 5

    def __init__(
        self,
        suggester: "LocatorSuggester",
        max_markup_chars: int = 20000,
        include_screenshot: bool = True,
    ):
        self._suggester = suggester
        self._max_markup_chars = max_markup_chars
        self._include_screenshot = include_screenshot

    async def _build_context(self, document: "IDocument", original_locator: str) -> Dict[str, Any]:
        markup = await document.content()
        context: Dict[str, Any] = {
            "locator": original_locator,
            "url": document.url,
            "markup": markup[:self._max_markup_chars],
        }
        if self._include_screenshot:
            context["screenshot"] = encode_screenshot(await document.screenshot())
        return context

    async def heal(self, document, original_locator, context):
        request_context = await self._build_context(document, original_locator)
        prompt = build_healing_prompt(
            original_locator,
            request_context["markup"],
            url=request_context["url"],
            max_markup_chars=self._max_markup_chars,
        )

        suggest = getattr(self._suggester, "suggest_locator", self._suggester)
        try:
            result = suggest(prompt, request_context)
            if inspect.isawaitable(result):
                result = await result
        except ExternalServiceError:
            raise
        except Exception as e:
            raise ExternalServiceError(f"Locator suggestion failed: {e}")

        if result is not None and not isinstance(result, str):
            raise ExternalServiceError(f"Suggestion service returned {type(result).__name__}, expected str")
        return result.strip() if result and result.strip() else None


def _best_above(scored, floor: int) -> Optional[Any]:
    """Highest-scoring candidate strictly above floor; earliest wins ties."""
    best = None
    best_score = floor
    for score, candidate in scored:
        if score > best_score:
            best, best_score = candidate, score
    return best


def default_strategies(
    suggester: Optional["LocatorSuggester"] = None,
    max_markup_chars: int = 20000,
    include_screenshot: bool = True,
) -> List[HealingStrategy]:
    """The built-in chain; the ai strategy is included only with a suggester."""
    strategies: List[HealingStrategy] = [
        NearbyElementStrategy(),
        TextStrategy(),
        VisualSimilarityStrategy(),
        StructureStrategy(),
    ]
    if suggester is not None:
        strategies.append(AIStrategy(suggester, max_markup_chars, include_screenshot))
    return strategies
