"""
Healing results - The record produced by one healing attempt.
"""

from dataclasses import dataclass, asdict
from typing import Any, Dict, Optional


# Fixed trust score per healing strategy
CONFIDENCE: Dict[str, int] = {
    "alternative": 100,
    "text": 90,
    "nearby": 85,
    "structure": 80,
    "visual": 75,
    "ai": 70,
}


@dataclass
class HealingResult:
    """
    Outcome of one ``heal`` call.

    Attributes:
        success: Whether a live element was found
        original_locator: The locator that stopped matching
        healed_locator: Substitute that matched (None when the original matched again)
        strategy: Name of the strategy that produced the substitute
        confidence: Fixed confidence for that strategy (0-100)
        duration_ms: Wall time of the attempt
    """
    success: bool
    original_locator: str
    healed_locator: Optional[str] = None
    strategy: Optional[str] = None
    confidence: Optional[int] = None
    duration_ms: float = 0.0

    def to_dict(self) -> Dict[str, Any]:
        return asdict(self)

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "HealingResult":
        return cls(
            success=bool(data.get("success", False)),
            original_locator=data["original_locator"],
            healed_locator=data.get("healed_locator"),
            strategy=data.get("strategy"),
            confidence=data.get("confidence"),
            duration_ms=float(data.get("duration_ms", 0.0)),
        )
