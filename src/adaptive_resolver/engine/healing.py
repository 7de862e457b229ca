"""
Self-Healing Engine - Recover elements whose locators stopped matching.

Healing sequence:
1. Retry the original locator (covers transient detachment)
2. Try each supplied alternative locator, in order (confidence 100)
3. Stop here if self-healing is disabled
4. Run the strategy chain in priority order: nearby, text, visual,
   structure, ai

Every proposed selector is verified against the live document before it is
accepted. Only verified successes are written to the healing history.
"""

import asyncio
import logging
import time
from typing import Any, Dict, List, Optional, TYPE_CHECKING

from adaptive_resolver.config.settings import Settings
from adaptive_resolver.engine.cache import HealingHistory, SignatureCache
from adaptive_resolver.engine.results import CONFIDENCE, HealingResult
from adaptive_resolver.engine.schemas import StructureSignature, VisualSignature
from adaptive_resolver.engine.scripts import SIGNATURE_STRUCTURE, SIGNATURE_VISUAL
from adaptive_resolver.engine.strategies import (
    HealingContext,
    HealingStrategy,
    default_strategies,
)
from adaptive_resolver.exceptions import (
    ExtractionError,
    HealingStrategyError,
)
from adaptive_resolver.locators.strategy import (
    LocatorStrategy,
    build_query,
    parse_alternative_locator,
)
from adaptive_resolver.reporting.events import EventType, ResolutionEventLog
from adaptive_resolver.utils.retry import with_timeout

if TYPE_CHECKING:
    from adaptive_resolver.interfaces.document import IDocument, IElementSet
    from adaptive_resolver.interfaces.suggester import LocatorSuggester

logger = logging.getLogger(__name__)

# Confidence for strategies registered without an entry in CONFIDENCE
DEFAULT_CONFIDENCE = 50


class SelfHealingEngine:
    """
    Ordered chain of healing strategies with fixed per-strategy confidence.

    One engine per worker/session; it owns the healing history and the
    signature cache.

    Example:
        >>> healer = SelfHealingEngine(settings)
        >>> result = await healer.heal(document, "#submit-btn")
        >>> result.strategy, result.confidence
        ('text', 90)
    """

    def __init__(
        self,
        settings: Optional[Settings] = None,
        suggester: Optional["LocatorSuggester"] = None,
        strategies: Optional[List[HealingStrategy]] = None,
        history: Optional[HealingHistory] = None,
        signatures: Optional[SignatureCache] = None,
        events: Optional[ResolutionEventLog] = None,
    ):
        """
        Initialize the engine.

        Args:
            settings: Settings (defaults to Settings())
            suggester: AI suggestion collaborator; enables the ai strategy
            strategies: Replace the built-in chain entirely
            history: Healing history to record into
            signatures: Signature cache read by the visual/structure strategies
            events: Optional structured event sink
        """
        self.settings = settings or Settings()
        if history is None:
            history = HealingHistory(self.settings.resolution.healing_attempt_history_size)
        self.history = history
        self.signatures = signatures if signatures is not None else SignatureCache()
        self.events = events

        if strategies is None:
            strategies = default_strategies(
                suggester,
                max_markup_chars=self.settings.ai.max_markup_chars,
                include_screenshot=self.settings.ai.include_screenshot,
            )
        self._strategies: List[HealingStrategy] = sorted(strategies, key=lambda s: s.priority)

        self._attempts = 0
        self._successes = 0
        self._strategy_invocations = 0

    @property
    def strategies(self) -> List[HealingStrategy]:
        return list(self._strategies)

    @property
    def strategy_invocations(self) -> int:
        """How many times any chain strategy has been run."""
        return self._strategy_invocations

    def register_strategy(self, strategy: HealingStrategy) -> None:
        """Add a strategy to the chain, keeping priority order."""
        self._strategies = [s for s in self._strategies if s.name != strategy.name]
        self._strategies.append(strategy)
        self._strategies.sort(key=lambda s: s.priority)

    def _emit(self, type: EventType, subject: str, **kwargs: Any) -> None:
        if self.events is not None:
            self.events.emit(type, subject, **kwargs)

    async def _verify(self, document: "IDocument", element_set: "IElementSet") -> bool:
        try:
            count = await with_timeout(
                document.count(element_set),
                self.settings.resolution.element_timeout_ms,
                f"Verification timed out: {element_set.selector}",
            )
        except Exception as e:
            logger.debug(f"Verification failed for {element_set.selector}: {e}")
            return False
        return count > 0

    async def _verify_selector(self, document: "IDocument", selector: str) -> bool:
        try:
            element_set = document.query(selector)
        except Exception as e:
            logger.debug(f"Invalid selector {selector}: {e}")
            return False
        return await self._verify(document, element_set)

    async def _verify_original(
        self,
        document: "IDocument",
        original_locator: str,
        original_strategy: Optional[LocatorStrategy],
    ) -> bool:
        strategy = original_strategy
        if strategy is None:
            strategy = parse_alternative_locator(original_locator)
        try:
            element_set = build_query(document, strategy)
        except Exception as e:
            logger.debug(f"Invalid locator {strategy}: {e}")
            return False
        return await self._verify(document, element_set)

    async def heal(
        self,
        document: "IDocument",
        original_locator: str,
        alternative_locators: Optional[List[str]] = None,
        original_strategy: Optional[LocatorStrategy] = None,
    ) -> HealingResult:
        """
        Find a substitute for a locator that no longer matches.

        Args:
            document: Live document
            original_locator: The locator that failed
            alternative_locators: Caller-supplied substitutes, tried first
            original_strategy: How to query the original locator; when omitted
                it is read like an alternative (kind prefix, else CSS)

        Returns:
            HealingResult (success False when everything was exhausted)
        """
        start = time.monotonic()
        self._attempts += 1

        def elapsed() -> float:
            return (time.monotonic() - start) * 1000

        self._emit(EventType.ATTEMPT_START, original_locator, strategy="healing")

        # 1. Original locator, queried by its own kind
        if await self._verify_original(document, original_locator, original_strategy):
            logger.debug(f"Original locator matches again: {original_locator}")
            return HealingResult(success=True, original_locator=original_locator, duration_ms=elapsed())
        logger.debug(f"Original locator failed: {original_locator}")

        # 2. Alternatives, in order
        for alternative in alternative_locators or []:
            try:
                element_set = build_query(document, parse_alternative_locator(alternative))
            except Exception as e:
                logger.debug(f"Alternative locator failed: {alternative}: {e}")
                continue
            if await self._verify(document, element_set):
                logger.info(f"Healed using alternative locator: {alternative}")
                return self._succeed(original_locator, alternative, "alternative", elapsed())
            logger.debug(f"Alternative locator failed: {alternative}")

        # 3. Global gate
        if not self.settings.resolution.self_healing_enabled:
            logger.debug("Self-healing disabled; skipping healing strategies")
            return HealingResult(success=False, original_locator=original_locator, duration_ms=elapsed())

        # 4. Strategy chain
        context = HealingContext(
            alternative_locators=list(alternative_locators or []),
            signatures=self.signatures,
        )
        for strategy in self._strategies:
            self._strategy_invocations += 1
            logger.debug(f"Attempting {strategy.name} healing strategy")
            try:
                candidate = await strategy.heal(document, original_locator, context)
            except HealingStrategyError as e:
                logger.debug(f"{strategy.name} strategy failed: {e}")
                self._emit(EventType.STRATEGY_FAILURE, original_locator, strategy=strategy.name,
                           data={"error": str(e)})
                continue
            except Exception as e:
                error = HealingStrategyError(str(e), strategy=strategy.name)
                logger.debug(f"{strategy.name} strategy failed: {error}")
                self._emit(EventType.STRATEGY_FAILURE, original_locator, strategy=strategy.name,
                           data={"error": str(error)})
                continue

            if not candidate:
                self._emit(EventType.STRATEGY_FAILURE, original_locator, strategy=strategy.name)
                continue

            if await self._verify_selector(document, candidate):
                logger.info(f"Element healed using {strategy.name} strategy: {candidate}")
                return self._succeed(original_locator, candidate, strategy.name, elapsed())

            logger.debug(f"{strategy.name} candidate did not verify: {candidate}")
            self._emit(EventType.STRATEGY_FAILURE, original_locator, strategy=strategy.name,
                       data={"candidate": candidate})

        logger.warning(f"Self-healing exhausted for locator: {original_locator}")
        self._emit(EventType.STRATEGY_FAILURE, original_locator, strategy="healing", elapsed_ms=elapsed())
        return HealingResult(success=False, original_locator=original_locator, duration_ms=elapsed())

    def _succeed(self, original_locator: str, healed_locator: str, strategy: str, duration_ms: float) -> HealingResult:
        result = HealingResult(
            success=True,
            original_locator=original_locator,
            healed_locator=healed_locator,
            strategy=strategy,
            confidence=self.calculate_confidence(strategy),
            duration_ms=duration_ms,
        )
        self.history.record(result)
        self._successes += 1
        self._emit(
            EventType.HEALED,
            original_locator,
            strategy=strategy,
            confidence=result.confidence,
            elapsed_ms=duration_ms,
            data={"healed_locator": healed_locator},
        )
        return result

    @staticmethod
    def calculate_confidence(strategy: str) -> int:
        return CONFIDENCE.get(strategy, DEFAULT_CONFIDENCE)

    async def cache_element_signature(self, locator: str, element: "IElementSet") -> None:
        """
        Record visual and structural signatures for a locator that resolved.

        Later visual/structure healing of the same locator compares against
        these.

        Raises:
            ExtractionError: If either signature could not be captured
        """
        visual, structure = await asyncio.gather(
            element.evaluate(SIGNATURE_VISUAL.source),
            element.evaluate(SIGNATURE_STRUCTURE.source),
            return_exceptions=True,
        )
        if isinstance(visual, BaseException):
            raise ExtractionError(f"Failed to capture visual signature: {visual}", group="visual")
        if isinstance(structure, BaseException):
            raise ExtractionError(f"Failed to capture structure signature: {structure}", group="structural")

        try:
            self.signatures.set_visual(locator, VisualSignature.model_validate(visual))
            self.signatures.set_structure(locator, StructureSignature.model_validate(structure))
        except ValueError as e:
            raise ExtractionError(f"Invalid signature payload: {e}", group="signature")
        logger.debug(f"Cached element signature for {locator}")

    def get_healing_history(self) -> HealingHistory:
        return self.history

    def clear_cache(self) -> None:
        """Forget all cached signatures."""
        self.signatures.clear()
        logger.debug("Self-healing cache cleared")

    def generate_report(self) -> Dict[str, Any]:
        """
        Summarize healing activity.

        Returns:
            Dict with total_attempts, successful_heals, success_rate (percent),
            strategy_usage, average_healing_time (ms) and per-locator history
        """
        results = self.history.results()
        successful = self._successes

        strategy_usage: Dict[str, int] = {}
        for result in results:
            if result.strategy:
                strategy_usage[result.strategy] = strategy_usage.get(result.strategy, 0) + 1

        durations = [r.duration_ms for r in results]
        return {
            "total_attempts": self._attempts,
            "successful_heals": successful,
            "success_rate": (successful / self._attempts) * 100 if self._attempts else 0.0,
            "strategy_usage": strategy_usage,
            "average_healing_time": sum(durations) / len(durations) if durations else 0.0,
            "history": [
                {"locator": locator, **result.to_dict()}
                for locator, result in self.history.items()
            ],
        }
