"""
Visual-description matcher - Find elements from phrases like
"large red button at the top".

The phrase is parsed into typed criteria (pure function); interactive
elements are scanned once and scored against them.
"""

import logging
import re
from dataclasses import dataclass
from enum import Enum
from typing import Dict, List, Optional, Tuple, TYPE_CHECKING

from adaptive_resolver.config.settings import Settings
from adaptive_resolver.engine.cache import BoundedHistory, HEALING_ATTEMPT_HISTORY_SIZE
from adaptive_resolver.engine.schemas import InteractiveElement, InteractiveScan, Viewport
from adaptive_resolver.engine.scripts import SCAN_INTERACTIVE

if TYPE_CHECKING:
    from adaptive_resolver.interfaces.document import IDocument

logger = logging.getLogger(__name__)


class Position(str, Enum):
    TOP = "top"
    BOTTOM = "bottom"
    LEFT = "left"
    RIGHT = "right"
    CENTER = "center"


class Size(str, Enum):
    SMALL = "small"
    MEDIUM = "medium"
    LARGE = "large"


class Shape(str, Enum):
    RECTANGLE = "rectangle"
    CIRCLE = "circle"
    SQUARE = "square"


@dataclass(frozen=True)
class VisualCriteria:
    """Structured reading of a visual description."""
    color: Optional[str] = None
    position: Optional[Position] = None
    size: Optional[Size] = None
    shape: Optional[Shape] = None
    text: Optional[str] = None
    near_text: Optional[str] = None

    @property
    def total(self) -> int:
        """Number of criteria present."""
        return sum(
            1 for value in (self.color, self.position, self.size, self.shape, self.text, self.near_text)
            if value is not None
        )


_COLOR_RE = re.compile(r"\b(red|blue|green|yellow|black|white|gray|orange|purple|brown)\b", re.IGNORECASE)
_POSITION_RE = re.compile(r"\b(top|bottom|left|right|center)\b", re.IGNORECASE)
_SIZE_RE = re.compile(r"\b(small|medium|large|big|tiny)\b", re.IGNORECASE)
_SHAPE_RE = re.compile(r"\b(button|circle|square|rectangle|round)\b", re.IGNORECASE)
_QUOTED_RE = re.compile(r"""["']([^"']+)["']""")
_COMMON_TEXT_RE = re.compile(
    r"\b(submit|login|save|cancel|close|next|previous|back|continue)\b", re.IGNORECASE
)
_NEAR_RE = re.compile(r"""near\s+["']?([^"']+)["']?""", re.IGNORECASE)

_SIZE_ALIASES = {"big": "large", "tiny": "small"}
_SHAPE_ALIASES = {"button": "rectangle", "round": "circle"}


def parse_visual_description(description: str) -> VisualCriteria:
    """
    Parse a visual description into criteria.

    Example:
        >>> parse_visual_description('big blue button near "Email"')
        VisualCriteria(color='blue', position=None, size=<Size.LARGE: 'large'>, shape=<Shape.RECTANGLE: 'rectangle'>, text='Email', near_text='Email')
    """
    color = position = size = shape = text = near_text = None

    match = _COLOR_RE.search(description)
    if match:
        color = match.group(1).lower()

    match = _POSITION_RE.search(description)
    if match:
        position = Position(match.group(1).lower())

    match = _SIZE_RE.search(description)
    if match:
        value = match.group(1).lower()
        size = Size(_SIZE_ALIASES.get(value, value))

    match = _SHAPE_RE.search(description)
    if match:
        value = match.group(1).lower()
        shape = Shape(_SHAPE_ALIASES.get(value, value))

    match = _QUOTED_RE.search(description)
    if match:
        text = match.group(1)
    else:
        match = _COMMON_TEXT_RE.search(description)
        if match:
            text = match.group(1)

    match = _NEAR_RE.search(description)
    if match:
        near_text = match.group(1).strip()

    return VisualCriteria(
        color=color,
        position=position,
        size=size,
        shape=shape,
        text=text,
        near_text=near_text,
    )


# =============================================================================
# CRITERION MATCHERS
# =============================================================================

COLOR_VARIANTS: Dict[str, List[str]] = {
    "red": ["rgb(255, 0, 0)", "#ff0000", "#f00"],
    "blue": ["rgb(0, 0, 255)", "#0000ff", "#00f"],
    "green": ["rgb(0, 128, 0)", "#008000"],
    "black": ["rgb(0, 0, 0)", "#000000", "#000"],
    "white": ["rgb(255, 255, 255)", "#ffffff", "#fff"],
}

SMALL_AREA = 5000
LARGE_AREA = 20000


def matches_color(element: InteractiveElement, color: str) -> bool:
    element_color = (element.style.background_color or element.style.color or "").lower()
    if not element_color:
        return False
    return any(v in element_color for v in COLOR_VARIANTS.get(color, [])) or color in element_color


def matches_position(element: InteractiveElement, position: Position, viewport: Viewport) -> bool:
    x, y = element.position.x, element.position.y
    width = viewport.width or 1920
    height = viewport.height or 1080
    if position == Position.TOP:
        return y < height * 0.3
    if position == Position.BOTTOM:
        return y > height * 0.7
    if position == Position.LEFT:
        return x < width * 0.3
    if position == Position.RIGHT:
        return x > width * 0.7
    return width * 0.3 < x < width * 0.7 and height * 0.3 < y < height * 0.7


def matches_size(element: InteractiveElement, size: Size) -> bool:
    area = element.position.width * element.position.height
    if size == Size.SMALL:
        return area < SMALL_AREA
    if size == Size.MEDIUM:
        return SMALL_AREA <= area < LARGE_AREA
    return area >= LARGE_AREA


def matches_shape(element: InteractiveElement, shape: Shape) -> bool:
    width, height = element.position.width, element.position.height
    if height <= 0:
        return False
    aspect_ratio = width / height
    if shape == Shape.SQUARE:
        return abs(aspect_ratio - 1) < 0.2
    if shape == Shape.RECTANGLE:
        return aspect_ratio > 1.2 or aspect_ratio < 0.8
    try:
        border_radius = float(re.match(r"[\d.]+", element.style.border_radius or "").group(0))
    except (AttributeError, ValueError):
        border_radius = 0.0
    return border_radius >= min(width, height) / 2


# Per-criterion weights
TEXT_WEIGHT = 0.4
COLOR_WEIGHT = 0.2
POSITION_WEIGHT = 0.2
SIZE_WEIGHT = 0.1
SHAPE_WEIGHT = 0.1


def score_element(element: InteractiveElement, criteria: VisualCriteria, viewport: Viewport) -> float:
    """
    Confidence that an element fits the criteria.

    The summed weights of matched criteria are scaled by the fraction of
    criteria matched. Proximity is part of the criteria count but is never
    matched, so a proximity phrase only dilutes the other matches.
    """
    confidence = 0.0
    matched = 0

    if criteria.text and criteria.text.lower() in element.text.lower():
        confidence += TEXT_WEIGHT
        matched += 1
    if criteria.color and matches_color(element, criteria.color):
        confidence += COLOR_WEIGHT
        matched += 1
    if criteria.position and matches_position(element, criteria.position, viewport):
        confidence += POSITION_WEIGHT
        matched += 1
    if criteria.size and matches_size(element, criteria.size):
        confidence += SIZE_WEIGHT
        matched += 1
    if criteria.shape and matches_shape(element, criteria.shape):
        confidence += SHAPE_WEIGHT
        matched += 1

    total = criteria.total
    if total > 0:
        confidence *= matched / total
    return confidence


@dataclass
class VisualMatch:
    """Best element for a description."""
    selector: str
    confidence: float
    element: InteractiveElement


class VisualDescriptionMatcher:
    """
    Scores interactive elements against a visual description.

    Gated by ``ai_enabled``; only matches at or above
    ``ai_confidence_threshold`` are returned.
    """

    def __init__(self, settings: Optional[Settings] = None, history_size: int = HEALING_ATTEMPT_HISTORY_SIZE):
        self.settings = settings or Settings()
        self.healing_history: BoundedHistory[str] = BoundedHistory(history_size)

    @property
    def enabled(self) -> bool:
        return self.settings.resolution.ai_enabled

    @property
    def threshold(self) -> float:
        return self.settings.resolution.ai_confidence_threshold

    def find_matching_elements(
        self,
        scan: InteractiveScan,
        criteria: VisualCriteria,
    ) -> List[Tuple[float, InteractiveElement]]:
        """Visible elements at or above the threshold, best first."""
        matches = []
        for element in scan.elements:
            if not element.visible:
                continue
            confidence = score_element(element, criteria, scan.viewport)
            if confidence >= self.threshold:
                matches.append((confidence, element))
        matches.sort(key=lambda m: m[0], reverse=True)
        return matches

    async def find_by_visual_description(
        self,
        document: "IDocument",
        description: str,
        enabled: Optional[bool] = None,
    ) -> Optional[VisualMatch]:
        """
        Find the element best fitting a visual description.

        Args:
            document: Live document
            description: Visual description
            enabled: Override the ai_enabled setting

        Returns:
            VisualMatch, or None when disabled or nothing clears the threshold
        """
        if not (self.enabled if enabled is None else enabled):
            return None

        logger.info(f'Finding element by visual description: "{description}"')
        criteria = parse_visual_description(description)
        if criteria.total == 0:
            logger.debug("No visual criteria in description")
            return None

        payload = await document.evaluate(SCAN_INTERACTIVE.source)
        scan = InteractiveScan.model_validate(payload or {})

        matches = self.find_matching_elements(scan, criteria)
        if not matches:
            logger.debug("No elements matched the visual description")
            return None

        confidence, element = matches[0]
        logger.info(f"Visual match {element.selector} with {confidence * 100:.1f}% confidence")
        return VisualMatch(selector=element.selector, confidence=confidence, element=element)

    def record_healing(self, original: str, healed_selector: str) -> None:
        """Remember a selector found for a description (bounded, oldest evicted)."""
        self.healing_history.add(original, healed_selector)

    def clear_cache(self) -> None:
        self.healing_history.clear()
