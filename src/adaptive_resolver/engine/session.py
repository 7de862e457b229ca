"""
Resolution Session - One explicitly constructed set of engine services.

A worker that owns a document builds one session and passes it to its
call sites. Sessions share nothing with each other: each has its own
caches, histories and signature store.

Example:
    >>> session = create_session(settings)
    >>> handle = await session.resolve(document, ElementDescriptor(css="#login"))
    >>> handle = await session.resolve_by_description(document, "Submit button")
    >>> session.save_history(".resolver/history.json")
"""

import logging
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any, Dict, Optional, Union, TYPE_CHECKING

from adaptive_resolver.config.settings import Settings
from adaptive_resolver.engine.cache import (
    DescriptionHistory,
    HealingHistory,
    HistoryFile,
    ResolutionCache,
    SignatureCache,
)
from adaptive_resolver.engine.executor import ResolutionExecutor, resolve_with_retry
from adaptive_resolver.engine.features import FeatureExtractor
from adaptive_resolver.engine.healing import SelfHealingEngine
from adaptive_resolver.engine.resolver import ElementResolver
from adaptive_resolver.locators.descriptor import ElementDescriptor, ResolvedHandle
from adaptive_resolver.reporting.events import ResolutionEventLog

if TYPE_CHECKING:
    from adaptive_resolver.interfaces.document import IDocument
    from adaptive_resolver.interfaces.suggester import LocatorSuggester

logger = logging.getLogger(__name__)


@dataclass
class ResolutionSession:
    """Engine services for one worker/document."""
    settings: Settings
    healer: SelfHealingEngine
    executor: ResolutionExecutor
    resolver: ElementResolver
    extractor: FeatureExtractor
    events: Optional[ResolutionEventLog] = None
    metadata: Dict[str, Any] = field(default_factory=dict)

    async def resolve(self, document: "IDocument", descriptor: ElementDescriptor) -> ResolvedHandle:
        return await self.executor.resolve(document, descriptor)

    async def resolve_with_retry(self, document: "IDocument", descriptor: ElementDescriptor) -> ResolvedHandle:
        return await resolve_with_retry(self.executor, document, descriptor)

    async def resolve_by_description(self, document: "IDocument", description: str, **options: Any) -> ResolvedHandle:
        return await self.resolver.resolve_by_description(document, description, **options)

    def clear_caches(self) -> None:
        """Drop resolved handles, signatures and extracted features."""
        self.resolver.clear_cache()
        self.healer.clear_cache()
        self.extractor.clear_cache()

    def export_history(self) -> Dict[str, Any]:
        return {
            "descriptions": self.resolver.export_healing_history(),
            "healing": self.healer.history.export(),
        }

    def import_history(self, data: Dict[str, Any]) -> None:
        descriptions = data.get("descriptions")
        if isinstance(descriptions, dict):
            self.resolver.import_healing_history(descriptions)
        healing = data.get("healing")
        if isinstance(healing, dict):
            try:
                count = self.healer.history.import_(healing)
                logger.debug(f"Imported {count} healing records")
            except (KeyError, TypeError, ValueError) as e:
                logger.warning(f"Ignoring malformed healing records: {e}")

    def save_history(self, path: Union[str, Path]) -> None:
        HistoryFile(Path(path)).save(self.export_history())

    def load_history(self, path: Union[str, Path]) -> None:
        self.import_history(HistoryFile(Path(path)).load())


def create_session(
    settings: Optional[Settings] = None,
    suggester: Optional["LocatorSuggester"] = None,
    events: Optional[ResolutionEventLog] = None,
) -> ResolutionSession:
    """
    Build a fresh session.

    Args:
        settings: Settings (defaults to Settings())
        suggester: AI locator suggester; enables the ai healing strategy
        events: Optional structured event sink shared by all services

    Returns:
        ResolutionSession with its own caches
    """
    settings = settings or Settings()
    resolution = settings.resolution

    healer = SelfHealingEngine(
        settings,
        suggester=suggester,
        history=HealingHistory(resolution.healing_attempt_history_size),
        signatures=SignatureCache(),
        events=events,
    )
    resolver = ElementResolver(
        settings,
        cache=ResolutionCache(),
        history=DescriptionHistory(resolution.description_history_size),
        events=events,
    )
    return ResolutionSession(
        settings=settings,
        healer=healer,
        executor=ResolutionExecutor(healer, settings, events=events),
        resolver=resolver,
        extractor=FeatureExtractor(cache={}),
        events=events,
    )
