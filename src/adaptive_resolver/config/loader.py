"""
Config Loader - Load and merge configuration from multiple sources.

This module provides utilities for loading configuration from YAML files,
environment variables, and explicit overrides, with proper precedence.
"""

import os
from pathlib import Path
from typing import Any, Dict, Mapping, Optional, Union

import yaml
from dotenv import load_dotenv

from adaptive_resolver.config.settings import Settings
from adaptive_resolver.exceptions import ConfigurationError


# Flat keys understood by the resolution engine, mapped onto ResolutionSettings
FLAT_RESOLUTION_KEYS: Dict[str, str] = {
    "SELF_HEALING_ENABLED": "self_healing_enabled",
    "AI_ENABLED": "ai_enabled",
    "AI_CONFIDENCE_THRESHOLD": "ai_confidence_threshold",
    "ELEMENT_RETRY_COUNT": "element_retry_count",
    "ELEMENT_TIMEOUT": "element_timeout_ms",
    "DEFAULT_TIMEOUT": "default_timeout_ms",
}


def extract_flat_keys(source: Mapping[str, Any]) -> Dict[str, Any]:
    """
    Pick the flat resolution keys out of a mapping.

    Args:
        source: Environment or top-level YAML mapping

    Returns:
        Values keyed by their ResolutionSettings field name
    """
    values: Dict[str, Any] = {}
    for flat_key, field_name in FLAT_RESOLUTION_KEYS.items():
        if flat_key in source and source[flat_key] not in (None, ""):
            values[field_name] = source[flat_key]
    return values


def _deep_merge(base: Dict[str, Any], updates: Dict[str, Any]) -> Dict[str, Any]:
    for key, value in updates.items():
        if key in base and isinstance(base[key], dict) and isinstance(value, dict):
            _deep_merge(base[key], value)
        else:
            base[key] = value
    return base


class ConfigLoader:
    """
    Configuration loader that merges settings from multiple sources.

    Priority order (highest to lowest):
    1. Explicit overrides passed to load()
    2. Config file (nested sections or flat keys such as SELF_HEALING_ENABLED)
    3. Environment variables (ADAPTIVE_RESOLVER__* and the flat keys)
    4. Default values
    """

    DEFAULT_CONFIG_PATHS = [
        Path("resolver.yaml"),
        Path("resolver.yml"),
        Path("config/resolver.yaml"),
        Path.home() / ".config" / "adaptive-resolver" / "config.yaml",
    ]

    def __init__(self, config_path: Optional[Union[str, Path]] = None):
        """
        Initialize the config loader.

        Args:
            config_path: Optional explicit path to config file
        """
        self.config_path = Path(config_path) if config_path else None
        self._file_config: Dict[str, Any] = {}

    def find_config_file(self) -> Optional[Path]:
        """
        Find the configuration file to load.

        Returns:
            Path to config file, or None if not found

        Raises:
            ConfigurationError: If an explicit path was given but does not exist
        """
        if self.config_path:
            if self.config_path.exists():
                return self.config_path
            raise ConfigurationError(
                f"Config file not found: {self.config_path}",
                {"path": str(self.config_path)},
            )

        for path in self.DEFAULT_CONFIG_PATHS:
            if path.exists():
                return path

        return None

    def load_yaml_config(self, path: Path) -> Dict[str, Any]:
        """
        Load configuration from a YAML file.

        Flat resolution keys at the top level are folded into the
        ``resolution`` section.

        Args:
            path: Path to the YAML file

        Returns:
            Configuration dictionary
        """
        try:
            with open(path, "r") as f:
                config = yaml.safe_load(f) or {}
        except yaml.YAMLError as e:
            raise ConfigurationError(f"Invalid YAML in {path}: {e}", {"path": str(path)}) from e

        if not isinstance(config, dict):
            raise ConfigurationError(f"Config file must contain a mapping: {path}", {"path": str(path)})

        flat = extract_flat_keys(config)
        for flat_key in FLAT_RESOLUTION_KEYS:
            config.pop(flat_key, None)
        if flat:
            config.setdefault("resolution", {})
            config["resolution"] = {**flat, **config["resolution"]}
        return config

    def load(
        self,
        env_file: Optional[Union[str, Path]] = None,
        overrides: Optional[Dict[str, Any]] = None,
    ) -> Settings:
        """
        Load settings from all sources.

        Args:
            env_file: Optional path to .env file
            overrides: Optional dictionary of values to override

        Returns:
            Complete Settings instance
        """
        # Load .env file
        if env_file:
            load_dotenv(env_file)
        else:
            for env_path in [Path(".env"), Path(".env.local")]:
                if env_path.exists():
                    load_dotenv(env_path)
                    break

        config_file = self.find_config_file()
        if config_file:
            self._file_config = self.load_yaml_config(config_file)

        # Flat env keys sit below the file in precedence
        merged: Dict[str, Any] = {}
        env_flat = extract_flat_keys(os.environ)
        if env_flat:
            merged["resolution"] = env_flat
        _deep_merge(merged, self._file_config)

        # Pydantic loads ADAPTIVE_RESOLVER__* variables for anything not given here
        settings = Settings(**merged)

        if overrides:
            settings = settings.merge_with(overrides)

        return settings


def load_config(
    config_path: Optional[Union[str, Path]] = None,
    env_file: Optional[Union[str, Path]] = None,
    **overrides: Any,
) -> Settings:
    """
    Convenience function to load configuration.

    Args:
        config_path: Optional path to config file
        env_file: Optional path to .env file
        **overrides: Keyword arguments to override settings

    Returns:
        Complete Settings instance

    Example:
        >>> settings = load_config()
        >>> settings = load_config(config_path="resolver.yaml")
        >>> settings = load_config(resolution={"ai_enabled": True})
    """
    loader = ConfigLoader(config_path)
    return loader.load(env_file=env_file, overrides=overrides if overrides else None)
