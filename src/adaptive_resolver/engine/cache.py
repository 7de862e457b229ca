"""
Resolution and healing caches.

- ResolutionCache: description -> resolved handle (facade scope)
- DescriptionHistory: description -> up to 5 selectors that worked before,
  most recent first
- HealingHistory: original locator -> latest HealingResult, plus a bounded
  list of attempts per locator
- SignatureCache: locator -> visual/structural signature captured after a
  successful resolution

All of these are owned by one session and mutated only from the event loop
that owns its document.
"""

import json
import logging
from collections import OrderedDict
from pathlib import Path
from typing import Any, Dict, Generic, Iterator, List, Optional, TypeVar, TYPE_CHECKING

from adaptive_resolver.engine.results import HealingResult
from adaptive_resolver.engine.schemas import StructureSignature, VisualSignature

if TYPE_CHECKING:
    from adaptive_resolver.interfaces.document import IDocument
    from adaptive_resolver.locators.descriptor import ResolvedHandle

logger = logging.getLogger(__name__)

T = TypeVar("T")

DESCRIPTION_HISTORY_SIZE = 5
HEALING_ATTEMPT_HISTORY_SIZE = 10


class BoundedHistory(Generic[T]):
    """
    Keyed lists that never grow past ``max_size``.

    With ``newest_first`` entries are inserted at the front and the tail is
    dropped; otherwise they are appended and the head is dropped. Either way
    the oldest entry is the one evicted.
    """

    def __init__(self, max_size: int, newest_first: bool = False, unique: bool = False):
        if max_size < 1:
            raise ValueError("max_size must be at least 1")
        self.max_size = max_size
        self.newest_first = newest_first
        self.unique = unique
        self._entries: Dict[str, List[T]] = {}

    def add(self, key: str, value: T) -> bool:
        """
        Record a value under key.

        Returns:
            False if the value was skipped as a duplicate
        """
        entries = self._entries.setdefault(key, [])
        if self.unique and value in entries:
            return False

        if self.newest_first:
            entries.insert(0, value)
            while len(entries) > self.max_size:
                entries.pop()
        else:
            entries.append(value)
            while len(entries) > self.max_size:
                entries.pop(0)
        return True

    def get(self, key: str) -> List[T]:
        return list(self._entries.get(key, []))

    def set(self, key: str, values: List[T]) -> None:
        """Replace the list for key, trimmed to the bound (oldest dropped)."""
        values = list(values)
        if self.newest_first:
            values = values[:self.max_size]
        else:
            values = values[-self.max_size:]
        self._entries[key] = values

    def keys(self) -> List[str]:
        return list(self._entries)

    def clear(self) -> None:
        self._entries.clear()

    def __contains__(self, key: object) -> bool:
        return key in self._entries

    def __len__(self) -> int:
        return len(self._entries)

    def __iter__(self) -> Iterator[str]:
        return iter(list(self._entries))


class DescriptionHistory(BoundedHistory[str]):
    """Selectors that previously resolved a description, most recent first."""

    def __init__(self, max_size: int = DESCRIPTION_HISTORY_SIZE):
        super().__init__(max_size, newest_first=True, unique=True)

    def export(self) -> Dict[str, List[str]]:
        return {key: self.get(key) for key in self._entries}

    def import_(self, history: Dict[str, List[str]]) -> int:
        """Merge exported history in; returns the number of entries imported."""
        for key, selectors in history.items():
            self.set(key, [s for s in selectors if isinstance(s, str) and s])
        return len(history)


class HealingHistory:
    """
    Healing results keyed by the original locator.

    Keeps the most recent result per locator and a bounded list of every
    attempt for that locator.
    """

    def __init__(self, max_attempts: int = HEALING_ATTEMPT_HISTORY_SIZE):
        self._latest: "OrderedDict[str, HealingResult]" = OrderedDict()
        self._attempts: BoundedHistory[HealingResult] = BoundedHistory(max_attempts)

    def record(self, result: HealingResult) -> None:
        self._latest[result.original_locator] = result
        self._latest.move_to_end(result.original_locator)
        self._attempts.add(result.original_locator, result)

    def latest(self, locator: str) -> Optional[HealingResult]:
        return self._latest.get(locator)

    def attempts(self, locator: str) -> List[HealingResult]:
        return self._attempts.get(locator)

    def results(self) -> List[HealingResult]:
        """Most recent result per locator, in recording order."""
        return list(self._latest.values())

    def items(self) -> List[tuple]:
        return list(self._latest.items())

    def clear(self) -> None:
        self._latest.clear()
        self._attempts.clear()

    def export(self) -> Dict[str, Any]:
        return {
            locator: {
                "latest": result.to_dict(),
                "attempts": [a.to_dict() for a in self._attempts.get(locator)],
            }
            for locator, result in self._latest.items()
        }

    def import_(self, data: Dict[str, Any]) -> int:
        for locator, entry in data.items():
            self._latest[locator] = HealingResult.from_dict(entry["latest"])
            attempts = [HealingResult.from_dict(a) for a in entry.get("attempts", [])]
            self._attempts.set(locator, attempts)
        return len(data)

    def __len__(self) -> int:
        return len(self._latest)

    def __contains__(self, locator: object) -> bool:
        return locator in self._latest


class SignatureCache:
    """Visual and structural signatures keyed by the locator that resolved."""

    def __init__(self):
        self._visual: Dict[str, VisualSignature] = {}
        self._structure: Dict[str, StructureSignature] = {}

    def set_visual(self, locator: str, signature: VisualSignature) -> None:
        self._visual[locator] = signature

    def set_structure(self, locator: str, signature: StructureSignature) -> None:
        self._structure[locator] = signature

    def visual(self, locator: str) -> Optional[VisualSignature]:
        return self._visual.get(locator)

    def structure(self, locator: str) -> Optional[StructureSignature]:
        return self._structure.get(locator)

    def clear(self) -> None:
        self._visual.clear()
        self._structure.clear()

    def __len__(self) -> int:
        return len(set(self._visual) | set(self._structure))


class ResolutionCache:
    """Resolved handles keyed by description."""

    def __init__(self):
        self._handles: Dict[str, "ResolvedHandle"] = {}

    def get(self, description: str, document: "IDocument") -> Optional["ResolvedHandle"]:
        """
        Get a cached handle that is still bound to the current document.

        Stale handles are evicted on lookup.
        """
        handle = self._handles.get(description)
        if handle is None:
            return None
        if not handle.is_valid(document):
            logger.debug(f"Discarding stale cached handle for: {description}")
            del self._handles[description]
            return None
        return handle

    def put(self, description: str, handle: "ResolvedHandle") -> None:
        self._handles[description] = handle

    def clear(self) -> None:
        self._handles.clear()

    def stats(self) -> Dict[str, Any]:
        return {"size": len(self._handles), "entries": list(self._handles)}

    def __len__(self) -> int:
        return len(self._handles)


class HistoryFile:
    """
    JSON persistence for exported histories.

    Example:
        >>> store = HistoryFile(Path(".resolver/history.json"))
        >>> store.save({"descriptions": resolver.export_healing_history()})
        >>> data = store.load()
    """

    def __init__(self, path: Path):
        self.path = Path(path)

    def load(self) -> Dict[str, Any]:
        """Load saved data; a missing or unreadable file yields an empty dict."""
        if not self.path.exists():
            return {}
        try:
            data = json.loads(self.path.read_text())
        except (OSError, ValueError) as e:
            logger.warning(f"Failed to load healing history from {self.path}: {e}")
            return {}
        if not isinstance(data, dict):
            logger.warning(f"Ignoring malformed healing history in {self.path}")
            return {}
        logger.debug(f"Loaded healing history from {self.path}")
        return data

    def save(self, data: Dict[str, Any]) -> None:
        try:
            self.path.parent.mkdir(parents=True, exist_ok=True)
            self.path.write_text(json.dumps(data, indent=2))
            logger.debug(f"Saved healing history to {self.path}")
        except OSError as e:
            logger.warning(f"Failed to save healing history: {e}")
