"""
LLM Locator Suggester - OpenAI-compatible client for AI-assisted healing.

Supports any OpenAI-compatible chat completions endpoint (OpenAI, Azure
OpenAI, LM Studio, Ollama, gateways).
"""

import base64
import logging
import os
import re
from typing import Any, Dict, List, Optional

import httpx

from adaptive_resolver.config.settings import AISettings
from adaptive_resolver.exceptions import ExternalServiceError
from adaptive_resolver.interfaces.suggester import ILocatorSuggester

logger = logging.getLogger(__name__)


SYSTEM_PROMPT = (
    "You repair broken element locators for browser automation. "
    "Reply with exactly one Playwright selector (CSS, text=..., or xpath=...) "
    "that matches the intended element in the given page, or the word NONE."
)

HEALING_PROMPT = '''An element locator stopped matching the page.

Original locator: {locator}
Page URL: {url}

Page markup (may be truncated):
{markup}

Return a single selector that finds the same element now.'''

_NO_ANSWER = {"", "none", "null", "n/a", "no match"}
_FENCE_RE = re.compile(r"^```[a-zA-Z]*\s*|\s*```$")


def build_healing_prompt(locator: str, markup: str, url: str = "", max_markup_chars: int = 20000) -> str:
    """
    Build the prompt sent to the suggestion service.

    Args:
        locator: The locator that failed
        markup: Full page markup
        url: Page URL
        max_markup_chars: Markup is truncated to this length
    """
    if len(markup) > max_markup_chars:
        markup = markup[:max_markup_chars] + "\n<!-- truncated -->"
    return HEALING_PROMPT.format(locator=locator, url=url or "(unknown)", markup=markup)


def encode_screenshot(data: bytes) -> str:
    return base64.b64encode(data).decode("ascii")


def parse_selector_reply(content: Optional[str]) -> Optional[str]:
    """
    Pull a selector out of a model reply.

    Strips code fences, surrounding quotes and backticks; NONE-style
    answers become None.
    """
    if not content:
        return None
    text = _FENCE_RE.sub("", content.strip()).strip()
    for line in text.splitlines():
        line = line.strip().strip("`").strip()
        if len(line) >= 2 and line[0] == line[-1] and line[0] in "\"'":
            line = line[1:-1].strip()
        if line:
            return None if line.lower() in _NO_ANSWER else line
    return None


class LLMLocatorSuggester(ILocatorSuggester):
    """
    Locator suggester backed by an OpenAI-compatible chat completions API.

    Example:
        >>> suggester = LLMLocatorSuggester(
        ...     base_url="https://api.openai.com",
        ...     model="gpt-4o-mini",
        ... )
        >>> await suggester.suggest_locator(prompt, {"screenshot": b64_png})
        '#submit-button'
    """

    def __init__(
        self,
        base_url: str,
        model: str,
        api_key: Optional[str] = None,
        timeout: float = 30.0,
        client: Optional[httpx.AsyncClient] = None,
    ):
        """
        Initialize the suggester.

        Args:
            base_url: Base URL for the API (no /v1 suffix needed)
            model: Model to use
            api_key: Optional API key (reads OPENAI_API_KEY if not set)
            timeout: Request timeout in seconds
            client: Pre-built client (tests pass one with a mock transport)
        """
        self._model = model
        api_key = api_key or os.environ.get("OPENAI_API_KEY", "not-needed")
        self._client = client or httpx.AsyncClient(
            base_url=base_url.rstrip("/"),
            headers={
                "Authorization": f"Bearer {api_key}",
                "Content-Type": "application/json",
            },
            timeout=timeout,
        )

    @classmethod
    def from_settings(cls, settings: AISettings) -> Optional["LLMLocatorSuggester"]:
        """Build a suggester from settings; None when no endpoint is configured."""
        if not settings.base_url:
            return None
        api_key = settings.api_key.get_secret_value() if settings.api_key else None
        return cls(
            base_url=settings.base_url,
            model=settings.model,
            api_key=api_key,
            timeout=settings.timeout,
        )

    def _build_messages(self, prompt: str, context: Dict[str, Any]) -> List[Dict[str, Any]]:
        screenshot = context.get("screenshot")
        if screenshot:
            user_content: Any = [
                {"type": "text", "text": prompt},
                {"type": "image_url", "image_url": {"url": f"data:image/png;base64,{screenshot}"}},
            ]
        else:
            user_content = prompt
        return [
            {"role": "system", "content": SYSTEM_PROMPT},
            {"role": "user", "content": user_content},
        ]

    async def suggest_locator(self, prompt: str, context: Dict[str, Any]) -> Optional[str]:
        body = {
            "model": self._model,
            "messages": self._build_messages(prompt, context),
            "temperature": 0,
        }

        logger.debug(f"Requesting locator suggestion from {self._model}")

        try:
            response = await self._client.post("/v1/chat/completions", json=body)
            response.raise_for_status()
            data = response.json()
            content = data["choices"][0]["message"].get("content", "")
        except httpx.HTTPStatusError as e:
            raise ExternalServiceError(
                f"Suggestion service returned {e.response.status_code}: {e.response.text[:200]}"
            )
        except httpx.HTTPError as e:
            raise ExternalServiceError(f"Suggestion service unavailable: {e}")
        except (KeyError, IndexError, ValueError) as e:
            raise ExternalServiceError(f"Malformed suggestion response: {e}")

        selector = parse_selector_reply(content)
        logger.debug(f"Suggestion service proposed: {selector}")
        return selector

    async def close(self) -> None:
        """Close the HTTP client."""
        await self._client.aclose()
