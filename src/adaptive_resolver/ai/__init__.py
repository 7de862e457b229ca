"""
AI module - Locator suggestion client used by AI-assisted healing.
"""

from adaptive_resolver.ai.suggester import (
    LLMLocatorSuggester,
    build_healing_prompt,
    encode_screenshot,
    parse_selector_reply,
)

__all__ = [
    "LLMLocatorSuggester",
    "build_healing_prompt",
    "encode_screenshot",
    "parse_selector_reply",
]
