"""
Configuration module - Centralized settings management.

This module provides type-safe configuration management using Pydantic,
supporting environment variables, YAML files, and explicit overrides.

Usage:
    from adaptive_resolver.config import get_settings, load_config

    # Get process-wide default settings (loaded once)
    settings = get_settings()

    # Or load fresh settings with overrides
    settings = load_config(resolution={"self_healing_enabled": False})

Environment Variables:
    ADAPTIVE_RESOLVER__RESOLUTION__AI_ENABLED=true
    ADAPTIVE_RESOLVER__AI__BASE_URL=https://api.openai.com
    SELF_HEALING_ENABLED=false
    ELEMENT_TIMEOUT=5000
"""

from adaptive_resolver.config.settings import (
    Settings,
    ResolutionSettings,
    AISettings,
    BrowserSettings,
    LoggingSettings,
)
from adaptive_resolver.config.loader import ConfigLoader, load_config, FLAT_RESOLUTION_KEYS

# Process-wide default; services still take Settings explicitly
_settings: Settings | None = None


def get_settings() -> Settings:
    """
    Get the process-wide default settings instance.

    Settings are loaded once from environment variables and config files.
    Call reset_settings() to reload.

    Returns:
        Default Settings instance
    """
    global _settings
    if _settings is None:
        _settings = load_config()
    return _settings


def reset_settings() -> None:
    """Reset the default settings (forces reload on next get_settings())."""
    global _settings
    _settings = None


__all__ = [
    "Settings",
    "ResolutionSettings",
    "AISettings",
    "BrowserSettings",
    "LoggingSettings",
    "ConfigLoader",
    "load_config",
    "get_settings",
    "reset_settings",
    "FLAT_RESOLUTION_KEYS",
]
