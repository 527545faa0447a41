"""
Configuration management for the band power analyzer.

Loads YAML configuration files, interpolates ${ENV_VAR} references and
validates the analysis parameters against a small schema.
"""

import os
import re
from pathlib import Path
from typing import Any, Dict, Optional

import yaml

from bandstat.utils.errors import InvalidConfigurationError


# Schema for ConfigManager.validate(): dotted key -> rules.
CONFIG_SCHEMA: Dict[str, Dict[str, Any]] = {
    "analysis.frame_size": {"type": int, "min": 256},
    "analysis.hop_size": {"type": int, "min": 1},
    "analysis.window": {"type": str},
    "dynamics.threshold_pct": {"type": (int, float), "min": 0},
    "dynamics.floor_db": {"type": (int, float), "min": 0},
    "timeline.interval_seconds": {"type": (int, float), "exclusive_min": 0},
    "audio.max_file_size": {"type": int, "min": 1},
    "logging.level": {"type": str},
    "logging.format": {"type": str, "choices": ("json", "text")},
    "performance.max_workers": {"type": int, "min": 1},
}


class ConfigManager:
    """
    Holds configuration loaded from YAML.

    Keys are addressed with dot notation ("analysis.frame_size"); string
    values may reference environment variables as ${VAR_NAME}.
    """

    def __init__(self, config_dict: Optional[Dict[str, Any]] = None):
        self._config: Dict[str, Any] = config_dict or {}
        self._env_pattern = re.compile(r'\$\{([^}]+)\}')

    @classmethod
    def from_file(cls, file_path: Path) -> "ConfigManager":
        """
        Create a ConfigManager from a YAML file.

        Args:
            file_path: Path to YAML configuration file

        Returns:
            ConfigManager: Initialized with file contents

        Raises:
            InvalidConfigurationError: If the file is missing or not valid YAML
        """
        file_path = Path(file_path)
        if not file_path.exists():
            raise InvalidConfigurationError(
                f"Configuration file not found: {file_path}",
                config_key=str(file_path)
            )

        try:
            with open(file_path, 'r', encoding='utf-8') as f:
                config_dict = yaml.safe_load(f) or {}
        except yaml.YAMLError as e:
            raise InvalidConfigurationError(
                f"Failed to parse YAML configuration: {e}",
                config_key=str(file_path)
            ) from e

        if not isinstance(config_dict, dict):
            raise InvalidConfigurationError(
                "Configuration root must be a mapping",
                config_key=str(file_path)
            )

        manager = cls(config_dict)
        manager._config = manager._interpolate(manager._config)
        return manager

    def _interpolate(self, value: Any) -> Any:
        """Recursively replace ${ENV_VAR} references in strings."""
        if isinstance(value, dict):
            return {key: self._interpolate(item) for key, item in value.items()}
        if isinstance(value, list):
            return [self._interpolate(item) for item in value]
        if isinstance(value, str):
            return self._env_pattern.sub(self._replace_env, value)
        return value

    @staticmethod
    def _replace_env(match: "re.Match[str]") -> str:
        value = os.environ.get(match.group(1))
        if value is None:
            return match.group(0)  # Leave unresolved references as written
        return value

    def get(self, key: str, default: Any = None, required: bool = False) -> Any:
        """
        Get a configuration value using dot notation.

        Args:
            key: Configuration key, e.g. "timeline.interval_seconds"
            default: Value returned when the key is absent
            required: If True, raise when the key is absent

        Returns:
            Configuration value or default

        Raises:
            InvalidConfigurationError: If a required key is not found
        """
        value: Any = self._config
        for part in key.split('.'):
            if isinstance(value, dict) and part in value:
                value = value[part]
            else:
                if required:
                    raise InvalidConfigurationError(
                        f"Required configuration key not found: {key}",
                        config_key=key
                    )
                return default
        return value

    def get_section(self, key: str) -> Dict[str, Any]:
        """Return a whole section as a dict (empty if missing)."""
        value = self.get(key, default={})
        if not isinstance(value, dict):
            return {}
        return value

    def set(self, key: str, value: Any) -> None:
        """Set a configuration value using dot notation."""
        parts = key.split('.')
        current = self._config
        for part in parts[:-1]:
            current = current.setdefault(part, {})
        current[parts[-1]] = value

    def to_dict(self) -> Dict[str, Any]:
        """Return configuration as dictionary."""
        return self._config.copy()

    def validate(self, schema: Optional[Dict[str, Dict[str, Any]]] = None) -> None:
        """
        Validate configuration against a schema.

        Args:
            schema: Mapping of dotted keys to rules. Supported rules are
                "type", "required", "min", "exclusive_min" and "choices".
                Defaults to CONFIG_SCHEMA.

        Raises:
            InvalidConfigurationError: If validation fails
        """
        for key, rules in (schema or CONFIG_SCHEMA).items():
            value = self.get(key)

            if value is None:
                if rules.get("required", False):
                    raise InvalidConfigurationError(
                        f"Required configuration missing: {key}",
                        config_key=key
                    )
                continue

            expected_type = rules.get("type")
            # bool is an int subclass but never a valid numeric setting
            if expected_type and (
                isinstance(value, bool) or not isinstance(value, expected_type)
            ):
                raise InvalidConfigurationError(
                    f"Invalid type for {key}: got {type(value).__name__}",
                    config_key=key
                )

            if "min" in rules and value < rules["min"]:
                raise InvalidConfigurationError(
                    f"{key} must be >= {rules['min']}, got {value}",
                    config_key=key
                )
            if "exclusive_min" in rules and value <= rules["exclusive_min"]:
                raise InvalidConfigurationError(
                    f"{key} must be > {rules['exclusive_min']}, got {value}",
                    config_key=key
                )
            if "choices" in rules and value not in rules["choices"]:
                raise InvalidConfigurationError(
                    f"{key} must be one of {rules['choices']}, got {value!r}",
                    config_key=key
                )


def load_config(config_path: Optional[str] = None) -> Dict[str, Any]:
    """
    Load configuration from file, merged over the defaults.

    Args:
        config_path: Optional path to a config file. If None, tries
            "config/config.yaml" and "config.yaml" in the working directory.

    Returns:
        Dict[str, Any]: Validated configuration dictionary

    Raises:
        InvalidConfigurationError: If an explicit path is missing or the
            file fails validation
    """
    if config_path is None:
        for path in (Path("config/config.yaml"), Path("config.yaml")):
            if path.exists():
                config_path = str(path)
                break

    config = get_default_config()
    if config_path:
        loaded = ConfigManager.from_file(Path(config_path)).to_dict()
        config = _merge(config, loaded)

    ConfigManager(config).validate()
    return config


def _merge(base: Dict[str, Any], override: Dict[str, Any]) -> Dict[str, Any]:
    """Deep-merge two configuration dicts; values in override win."""
    merged = dict(base)
    for key, value in override.items():
        if isinstance(value, dict) and isinstance(merged.get(key), dict):
            merged[key] = _merge(merged[key], value)
        else:
            merged[key] = value
    return merged


def get_default_config() -> Dict[str, Any]:
    """Return default configuration values."""
    return {
        "analysis": {
            "frame_size": 8192,
            "hop_size": 4096,
            "window": "hann",
        },
        "dynamics": {
            "threshold_pct": 0.5,
            "floor_db": 60.0,
        },
        "timeline": {
            "interval_seconds": 20.0,
        },
        "audio": {
            "max_file_size": 1073741824,  # 1 GB
        },
        "logging": {
            "level": "WARNING",
            "format": "text",
        },
        "performance": {
            "max_workers": 4,
        },
    }
