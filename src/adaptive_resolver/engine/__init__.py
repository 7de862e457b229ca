"""
Engine Module - Element resolution, self-healing and similarity scoring.

This is the heart of the resolver, handling:
- Multi-strategy descriptor resolution (executor)
- Self-healing with a prioritized strategy chain
- Feature extraction and similarity scoring
- Phrase patterns and visual-description matching
- Whole-query resolution (resolver facade)
"""

from adaptive_resolver.engine.results import HealingResult, CONFIDENCE
from adaptive_resolver.engine.cache import (
    BoundedHistory,
    DescriptionHistory,
    HealingHistory,
    HistoryFile,
    ResolutionCache,
    SignatureCache,
)
from adaptive_resolver.engine.features import FeatureExtractor, FeatureVector, similarity
from adaptive_resolver.engine.patterns import ElementPattern, PatternMatch, PatternResolver
from adaptive_resolver.engine.strategies import (
    AIStrategy,
    HealingContext,
    HealingStrategy,
    NearbyElementStrategy,
    StructureStrategy,
    TextStrategy,
    VisualSimilarityStrategy,
    default_strategies,
)
from adaptive_resolver.engine.healing import SelfHealingEngine
from adaptive_resolver.engine.visual import (
    VisualCriteria,
    VisualDescriptionMatcher,
    VisualMatch,
    parse_visual_description,
)
from adaptive_resolver.engine.executor import ResolutionExecutor, resolve_with_retry
from adaptive_resolver.engine.resolver import ElementResolver
from adaptive_resolver.engine.session import ResolutionSession, create_session

__all__ = [
    # Results
    "HealingResult",
    "CONFIDENCE",
    # Caches
    "BoundedHistory",
    "DescriptionHistory",
    "HealingHistory",
    "HistoryFile",
    "ResolutionCache",
    "SignatureCache",
    # Features
    "FeatureExtractor",
    "FeatureVector",
    "similarity",
    # Patterns
    "ElementPattern",
    "PatternMatch",
    "PatternResolver",
    # Healing
    "HealingContext",
    "HealingStrategy",
    "NearbyElementStrategy",
    "TextStrategy",
    "VisualSimilarityStrategy",
    "StructureStrategy",
    "AIStrategy",
    "default_strategies",
    "SelfHealingEngine",
    # Visual description
    "VisualCriteria",
    "VisualDescriptionMatcher",
    "VisualMatch",
    "parse_visual_description",
    # Resolution
    "ResolutionExecutor",
    "resolve_with_retry",
    "ElementResolver",
    "ResolutionSession",
    "create_session",
]
