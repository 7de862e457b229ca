"""
Feature Extractor - Multi-dimensional element snapshots and similarity.

A FeatureVector holds five groups (text, visual, structural, semantic,
context), each extracted by its own in-page script. Two vectors are compared
with a fixed weighted sum of per-group scores.

Example:
    >>> extractor = FeatureExtractor()
    >>> vector = await extractor.extract(document.query("#login"))
    >>> similarity(vector, vector)
    1.0
"""

import asyncio
import logging
from typing import Any, Dict, List, Optional, Tuple, Type, TYPE_CHECKING

from pydantic import BaseModel, Field, ValidationError

from adaptive_resolver.engine.schemas import (
    TextFeatures,
    VisualFeatures,
    StructuralFeatures,
    SemanticFeatures,
    ContextFeatures,
)
from adaptive_resolver.engine.scripts import FEATURE_SCRIPTS
from adaptive_resolver.exceptions import ExtractionError

if TYPE_CHECKING:
    from adaptive_resolver.interfaces.document import IElementSet

logger = logging.getLogger(__name__)


# Group weights (sum to 1.0)
GROUP_WEIGHTS: Dict[str, float] = {
    "text": 0.30,
    "visual": 0.20,
    "structural": 0.25,
    "semantic": 0.15,
    "context": 0.10,
}

GROUP_MODELS: Dict[str, Type[BaseModel]] = {
    "text": TextFeatures,
    "visual": VisualFeatures,
    "structural": StructuralFeatures,
    "semantic": SemanticFeatures,
    "context": ContextFeatures,
}

# Width/height tolerance for the visual group
BOX_TOLERANCE_PX = 50


class FeatureVector(BaseModel):
    """Snapshot of one element across all five feature groups."""
    text: TextFeatures = Field(default_factory=TextFeatures)
    visual: VisualFeatures = Field(default_factory=VisualFeatures)
    structural: StructuralFeatures = Field(default_factory=StructuralFeatures)
    semantic: SemanticFeatures = Field(default_factory=SemanticFeatures)
    context: ContextFeatures = Field(default_factory=ContextFeatures)


# =============================================================================
# STRING SIMILARITY
# =============================================================================

def levenshtein(a: str, b: str) -> int:
    """Edit distance between two strings (case-sensitive)."""
    if len(a) < len(b):
        a, b = b, a
    previous = list(range(len(b) + 1))
    for i, ca in enumerate(a, 1):
        current = [i]
        for j, cb in enumerate(b, 1):
            current.append(min(
                previous[j] + 1,
                current[j - 1] + 1,
                previous[j - 1] + (ca != cb),
            ))
        previous = current
    return previous[-1]


def string_similarity(a: Optional[str], b: Optional[str]) -> float:
    """
    Normalized, case-insensitive edit-distance similarity.

    Returns:
        1.0 for identical strings, 0.0 if either is empty,
        else ``1 - levenshtein / max(len)``
    """
    if a == b:
        return 1.0
    if not a or not b:
        return 0.0
    a, b = a.lower(), b.lower()
    return 1.0 - levenshtein(a, b) / max(len(a), len(b))


# =============================================================================
# PER-GROUP SCORING
# =============================================================================
#
# Each group is a list of weighted rules. A rule whose field neither side
# carries is left out, and the group score is earned weight over the weight
# of the rules that could be compared.

Rule = Tuple[float, Optional[float]]


def _score(rules: List[Rule]) -> float:
    possible = sum(weight for weight, earned in rules if earned is not None)
    if possible <= 0:
        return 0.0
    earned = sum(weight * earned for weight, earned in rules if earned is not None)
    return min(earned / possible, 1.0)


def _equal(a: Any, b: Any) -> Optional[float]:
    """1.0/0.0 when either side has a value, None when both are empty."""
    if not a and not b:
        return None
    return 1.0 if a == b else 0.0


def compare_text(f1: TextFeatures, f2: TextFeatures) -> float:
    pairs = ((f1.content, f2.content), (f1.aria_label, f2.aria_label))
    return _score([
        (1.0, string_similarity(a, b) if a and b else None)
        for a, b in pairs
    ])


def compare_visual(f1: VisualFeatures, f2: VisualFeatures) -> float:
    colors = _equal(
        (f1.color, f1.background_color) if f1.color or f1.background_color else None,
        (f2.color, f2.background_color) if f2.color or f2.background_color else None,
    )
    box: Optional[float] = None
    if f1.bounding_box and f2.bounding_box:
        width_diff = abs(f1.bounding_box.width - f2.bounding_box.width)
        height_diff = abs(f1.bounding_box.height - f2.bounding_box.height)
        box = 1.0 if width_diff < BOX_TOLERANCE_PX and height_diff < BOX_TOLERANCE_PX else 0.0
    elif f1.bounding_box or f2.bounding_box:
        box = 0.0
    return _score([
        (0.2, 1.0 if f1.is_visible == f2.is_visible else 0.0),
        (0.2, _equal(f1.font_size, f2.font_size)),
        (0.2, _equal(f1.position, f2.position)),
        (0.2, colors),
        (0.2, box),
    ])


def compare_structural(f1: StructuralFeatures, f2: StructuralFeatures) -> float:
    classes: Optional[float] = None
    if f1.class_list or f2.class_list:
        overlap = len(set(f1.class_list) & set(f2.class_list))
        classes = overlap / max(len(f1.class_list), len(f2.class_list))
    return _score([
        (0.3, _equal(f1.tag_name, f2.tag_name)),
        (0.2, _equal(f1.role, f2.role)),
        (0.2, 1.0 if f1.depth == f2.depth else 0.0),
        (0.3, classes),
    ])


def compare_semantic(f1: SemanticFeatures, f2: SemanticFeatures) -> float:
    return _score([
        (0.4, 1.0 if f1.role == f2.role else 0.0),
        (0.3, 1.0 if f1.semantic_type == f2.semantic_type else 0.0),
        (0.3, 1.0 if f1.heading_level == f2.heading_level else 0.0),
    ])


def compare_context(f1: ContextFeatures, f2: ContextFeatures) -> float:
    heading: Optional[float] = None
    if f1.nearby_heading or f2.nearby_heading:
        heading = string_similarity(f1.nearby_heading, f2.nearby_heading)
    return _score([
        (0.3, _equal(f1.parent_tag, f2.parent_tag)),
        (0.3, _equal(f1.form_id, f2.form_id)),
        (0.4, heading),
    ])


GROUP_COMPARATORS = {
    "text": compare_text,
    "visual": compare_visual,
    "structural": compare_structural,
    "semantic": compare_semantic,
    "context": compare_context,
}


def similarity(v1: FeatureVector, v2: FeatureVector) -> float:
    """
    Weighted similarity of two feature vectors.

    Each group scores only the rules both snapshots can be compared on.
    A group with nothing comparable contributes 0; the result is not
    renormalized.

    Returns:
        Score in [0, 1]
    """
    total = 0.0
    for group, weight in GROUP_WEIGHTS.items():
        comparator = GROUP_COMPARATORS[group]
        total += weight * comparator(getattr(v1, group), getattr(v2, group))
    return min(max(total, 0.0), 1.0)


# =============================================================================
# EXTRACTION
# =============================================================================

class FeatureExtractor:
    """
    Extracts feature vectors from live elements.

    The five groups are extracted concurrently. A failure in any group fails
    the whole call with ExtractionError.
    """

    def __init__(self, cache: Optional[Dict[str, FeatureVector]] = None):
        """
        Initialize the extractor.

        Args:
            cache: Optional caller-owned cache, keyed by the caller's choice
        """
        self._cache = cache

    async def extract(self, element: "IElementSet", cache_key: Optional[str] = None) -> FeatureVector:
        """
        Extract all feature groups from the first element of a set.

        Args:
            element: Element set that currently matches the element
            cache_key: Store/lookup key in the caller-supplied cache

        Returns:
            Fresh FeatureVector (or the cached one for cache_key)
        """
        if self._cache is not None and cache_key and cache_key in self._cache:
            return self._cache[cache_key]

        groups = list(FEATURE_SCRIPTS)
        results = await asyncio.gather(
            *(self._extract_group(element, group) for group in groups),
            return_exceptions=True,
        )

        values: Dict[str, Any] = {}
        for group, result in zip(groups, results):
            if isinstance(result, BaseException):
                raise result
            values[group] = result

        vector = FeatureVector(**values)
        if self._cache is not None and cache_key:
            self._cache[cache_key] = vector
        return vector

    async def _extract_group(self, element: "IElementSet", group: str) -> BaseModel:
        script = FEATURE_SCRIPTS[group]
        try:
            payload = await element.evaluate(script.source)
        except Exception as e:
            logger.debug(f"Feature script {script.key} failed on {element.selector}: {e}")
            raise ExtractionError(f"Failed to extract {group} features: {e}", group=group)

        try:
            return GROUP_MODELS[group].model_validate(payload or {})
        except ValidationError as e:
            raise ExtractionError(f"Invalid {group} feature payload: {e}", group=group)

    def clear_cache(self) -> None:
        if self._cache is not None:
            self._cache.clear()
