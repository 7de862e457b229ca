"""
Resolution Executor - Turn an ElementDescriptor into a live element.

Strategies are probed in descriptor order; the first that matches at least
one element wins and is memoized on the descriptor. When every strategy
fails and the descriptor allows self-healing, the healing engine is asked
for a substitute using the primary strategy's value as the original locator.
"""

import logging
import time
from typing import List, Optional, TYPE_CHECKING

from adaptive_resolver.config.settings import Settings
from adaptive_resolver.engine.healing import SelfHealingEngine
from adaptive_resolver.exceptions import ElementNotFoundError, StrategyProbeError
from adaptive_resolver.locators.descriptor import ElementDescriptor, ResolvedHandle
from adaptive_resolver.locators.strategy import (
    LocatorStrategy,
    build_query,
    parse_alternative_locator,
)
from adaptive_resolver.reporting.events import EventType, ResolutionEventLog
from adaptive_resolver.utils.retry import RetryConfig, retry_async, with_timeout

if TYPE_CHECKING:
    from adaptive_resolver.interfaces.document import IDocument, IElementSet

logger = logging.getLogger(__name__)


class ResolutionExecutor:
    """
    Multi-strategy element resolution with healing fallback.

    Example:
        >>> executor = ResolutionExecutor(healer, settings)
        >>> handle = await executor.resolve(document, ElementDescriptor(id="login"))
        >>> handle.source
        'id'
    """

    def __init__(
        self,
        healer: Optional[SelfHealingEngine] = None,
        settings: Optional[Settings] = None,
        events: Optional[ResolutionEventLog] = None,
    ):
        """
        Initialize the executor.

        Args:
            healer: Healing engine used when all strategies fail
            settings: Settings (defaults to the healer's, or Settings())
            events: Optional structured event sink
        """
        self.settings = settings or (healer.settings if healer else Settings())
        self.healer = healer or SelfHealingEngine(self.settings, events=events)
        self.events = events

    def _emit(self, type: EventType, subject: str, **kwargs) -> None:
        if self.events is not None:
            self.events.emit(type, subject, **kwargs)

    def _timeout_ms(self, descriptor: ElementDescriptor) -> int:
        return descriptor.options.timeout_ms or self.settings.resolution.element_timeout_ms

    async def probe(
        self,
        document: "IDocument",
        strategy: LocatorStrategy,
        timeout_ms: int,
    ) -> Optional["IElementSet"]:
        """
        Probe one strategy.

        Returns:
            The element set if it matches at least one element

        Raises:
            StrategyProbeError: If the query is malformed, errors or times out
        """
        try:
            element_set = build_query(document, strategy)
            count = await with_timeout(
                document.count(element_set),
                timeout_ms,
                f"Probe timed out after {timeout_ms}ms",
            )
        except Exception as e:
            raise StrategyProbeError(str(e), kind=strategy.kind.value, value=strategy.value)
        return element_set if count > 0 else None

    async def resolve(self, document: "IDocument", descriptor: ElementDescriptor) -> ResolvedHandle:
        """
        Resolve a descriptor to a bound handle.

        Args:
            document: Live document
            descriptor: Element to find

        Returns:
            ResolvedHandle bound to the current document generation

        Raises:
            ElementNotFoundError: No strategy matched and healing did not help
        """
        cached = descriptor.cached_handle(document)
        if cached is not None:
            return cached

        start = time.monotonic()
        strategies = descriptor.strategies()
        timeout_ms = self._timeout_ms(descriptor)
        attempted: List[str] = []

        logger.debug(f"Getting locator for {descriptor.description}")
        self._emit(EventType.ATTEMPT_START, descriptor.description)

        for strategy in strategies:
            attempted.append(str(strategy))
            try:
                element_set = await self.probe(document, strategy, timeout_ms)
            except StrategyProbeError as e:
                logger.debug(f"Failed with {e.kind}: {e.value}: {e.message}")
                self._emit(EventType.STRATEGY_FAILURE, descriptor.description,
                           strategy=str(strategy), data={"error": e.message})
                continue

            if element_set is None:
                self._emit(EventType.STRATEGY_FAILURE, descriptor.description, strategy=str(strategy))
                continue

            logger.debug(f"Found element with {strategy.kind.value}: {strategy.value}")
            self._emit(EventType.STRATEGY_SUCCESS, descriptor.description, strategy=str(strategy))
            handle = ResolvedHandle(
                element_set=element_set,
                selector=strategy.value,
                source=strategy.kind.value,
                generation=document.generation,
            )
            await self._capture_signature(descriptor, strategies[0], element_set)
            return self._finish(descriptor, handle, start)

        if descriptor.self_heal:
            logger.info(f"Attempting self-healing for {descriptor.description}")
            attempted.append("healing")
            primary = strategies[0]
            result = await self.healer.heal(
                document, primary.value, descriptor.alternative_locators, original_strategy=primary,
            )

            if result.success:
                if result.healed_locator:
                    element_set = self._healed_query(document, result.healed_locator, descriptor)
                    selector = result.healed_locator
                else:
                    element_set = build_query(document, primary)
                    selector = primary.value
                logger.info(f"Self-healed element: {descriptor.description}")
                handle = ResolvedHandle(
                    element_set=element_set,
                    selector=selector,
                    source="healing",
                    generation=document.generation,
                    healing_result=result,
                )
                return self._finish(descriptor, handle, start)

        elapsed_ms = (time.monotonic() - start) * 1000
        logger.warning(f"Unable to locate element: {descriptor.description}")
        self._emit(EventType.FAILED, descriptor.description, elapsed_ms=elapsed_ms,
                   data={"attempted": attempted})
        raise ElementNotFoundError(descriptor.description, attempted)

    def _healed_query(
        self,
        document: "IDocument",
        healed_locator: str,
        descriptor: ElementDescriptor,
    ) -> "IElementSet":
        # Alternatives may carry a kind prefix; other healed selectors are plain
        if healed_locator in descriptor.alternative_locators:
            return build_query(document, parse_alternative_locator(healed_locator))
        return document.query(healed_locator)

    async def _capture_signature(
        self,
        descriptor: ElementDescriptor,
        primary: LocatorStrategy,
        element_set: "IElementSet",
    ) -> None:
        if not (descriptor.self_heal and self.settings.resolution.capture_signatures):
            return
        try:
            await self.healer.cache_element_signature(primary.value, element_set)
        except Exception as e:
            logger.debug(f"Could not cache signature for {primary.value}: {e}")

    def _finish(self, descriptor: ElementDescriptor, handle: ResolvedHandle, start: float) -> ResolvedHandle:
        descriptor.remember(handle)
        confidence = handle.healing_result.confidence if handle.healing_result else None
        self._emit(
            EventType.RESOLVED,
            descriptor.description,
            strategy=handle.source,
            confidence=confidence,
            elapsed_ms=(time.monotonic() - start) * 1000,
            data={"selector": handle.selector},
        )
        return handle


async def resolve_with_retry(
    executor: ResolutionExecutor,
    document: "IDocument",
    descriptor: ElementDescriptor,
    initial_delay_ms: int = 500,
) -> ResolvedHandle:
    """
    Resolve with exponential backoff, retrying only ElementNotFoundError.

    The attempt count comes from the descriptor's retry_count, falling back
    to ELEMENT_RETRY_COUNT.
    """
    attempts = descriptor.options.retry_count or executor.settings.resolution.element_retry_count
    config = RetryConfig(
        max_attempts=attempts,
        initial_delay_ms=initial_delay_ms,
        retry_on=(ElementNotFoundError,),
    )
    return await retry_async(executor.resolve, config, document, descriptor)
