"""
Settings - Pydantic models for type-safe configuration.

This module defines all configuration settings as Pydantic models,
providing validation, type hints, and automatic environment variable loading.

Example:
    >>> from adaptive_resolver.config import Settings, load_config
    >>> settings = load_config()  # Loads from env, yaml, and defaults
    >>> print(settings.resolution.self_healing_enabled)
    True
"""

from typing import Literal, Optional
from pydantic import BaseModel, Field, SecretStr
from pydantic_settings import BaseSettings, SettingsConfigDict


class ResolutionSettings(BaseModel):
    """
    Element resolution and self-healing settings.

    Attributes:
        self_healing_enabled: Gates the whole heuristic healing chain
        ai_enabled: Gates the visual-description (AI heuristic) resolver
        ai_confidence_threshold: Minimum confidence for a visual-description match
        element_retry_count: Attempts used by resolve_with_retry
        element_timeout_ms: Timeout for a single strategy probe
        default_timeout_ms: Timeout for elements built by resolver factories
        capture_signatures: Record visual/structural signatures after a direct hit
        description_history_size: Bound of the per-description alternative list
        healing_attempt_history_size: Bound of the per-locator attempt list
    """
    self_healing_enabled: bool = True
    ai_enabled: bool = False
    ai_confidence_threshold: float = Field(default=0.7, ge=0.0, le=1.0)
    element_retry_count: int = Field(default=3, ge=1, le=10)
    element_timeout_ms: int = Field(default=10000, ge=100, le=300000)
    default_timeout_ms: int = Field(default=10000, ge=100, le=300000)
    capture_signatures: bool = True
    description_history_size: int = Field(default=5, ge=1, le=100)
    healing_attempt_history_size: int = Field(default=10, ge=1, le=100)


class AISettings(BaseModel):
    """
    Settings for the bundled locator-suggestion client.

    Attributes:
        base_url: OpenAI-compatible API endpoint (None disables the client)
        model: Model name/identifier
        api_key: API key (loaded from environment if not set)
        timeout: Request timeout in seconds
        max_markup_chars: Page markup is truncated to this many characters
        include_screenshot: Attach a base64 screenshot to the prompt context
    """
    base_url: Optional[str] = None
    model: str = "gpt-4o-mini"
    api_key: Optional[SecretStr] = None
    timeout: int = Field(default=30, ge=5, le=300)
    max_markup_chars: int = Field(default=20000, ge=1000, le=500000)
    include_screenshot: bool = True


class BrowserSettings(BaseModel):
    """
    Browser settings used by the CLI.

    Attributes:
        headless: Run browser in headless mode
        browser_type: Playwright browser type
        timeout_ms: Default navigation timeout
        viewport_width: Browser viewport width in pixels
        viewport_height: Browser viewport height in pixels
    """
    headless: bool = True
    browser_type: Literal["chromium", "firefox", "webkit"] = "chromium"
    timeout_ms: int = Field(default=30000, ge=1000, le=300000)
    viewport_width: int = Field(default=1280, ge=320, le=3840)
    viewport_height: int = Field(default=720, ge=240, le=2160)


class LoggingSettings(BaseModel):
    """
    Logging configuration.

    Attributes:
        level: Log level
        file: Log file path (None for console only)
        json_format: Use JSON format for logs
    """
    level: Literal["DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"] = "INFO"
    file: Optional[str] = None
    json_format: bool = False


class Settings(BaseSettings):
    """
    Root settings container - single source of truth for all configuration.

    Settings are loaded in this priority order (highest to lowest):
    1. Explicit values passed to constructor
    2. Config file (YAML), when loaded through ConfigLoader
    3. Environment variables (prefixed with ADAPTIVE_RESOLVER__)
    4. Default values

    Example:
        >>> settings = Settings()
        >>> settings = Settings(resolution=ResolutionSettings(ai_enabled=True))
    """

    model_config = SettingsConfigDict(
        env_prefix="ADAPTIVE_RESOLVER__",
        env_nested_delimiter="__",
        case_sensitive=False,
        extra="ignore",
    )

    resolution: ResolutionSettings = Field(default_factory=ResolutionSettings)
    ai: AISettings = Field(default_factory=AISettings)
    browser: BrowserSettings = Field(default_factory=BrowserSettings)
    logging: LoggingSettings = Field(default_factory=LoggingSettings)

    debug: bool = False

    def merge_with(self, overrides: dict) -> "Settings":
        """
        Create a new Settings instance with overrides applied.

        Args:
            overrides: Dictionary of values to override

        Returns:
            New Settings instance with overrides applied
        """
        current = self.model_dump()

        def deep_merge(base: dict, updates: dict) -> dict:
            for key, value in updates.items():
                if key in base and isinstance(base[key], dict) and isinstance(value, dict):
                    deep_merge(base[key], value)
                else:
                    base[key] = value
            return base

        merged = deep_merge(current, overrides)
        # SecretStr dumps masked; carry the real value across
        if self.ai.api_key is not None and "api_key" not in overrides.get("ai", {}):
            merged["ai"]["api_key"] = self.ai.api_key.get_secret_value()
        return Settings(**merged)
