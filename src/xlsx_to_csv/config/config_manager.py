"""Configuration management for the xlsx-to-csv option exporter.

This module provides centralized configuration loading and management
with support for YAML files, environment variable overrides, and validation.
"""

import copy
import logging
import os
from pathlib import Path
from typing import Any, Dict, List, Optional, Union

import yaml

from xlsx_to_csv.models.data_models import (
    DEFAULT_DELIMITER,
    DEFAULT_SHEET_NAME,
    Config,
    ConversionConfig,
    LoggingConfig,
)


logger = logging.getLogger(__name__)


class ConfigurationError(Exception):
    """Raised when configuration loading or validation fails."""
    pass


class ConfigManager:
    """Manages application configuration loading and validation.

    Configuration Loading Order:
    1. If config_path is provided, load that file
    2. If config_path is None, try to load config/default.yaml
    3. If config/default.yaml doesn't exist, use built-in defaults

    Values from a file are deep-merged over the built-in defaults, then
    ``XLSX_TO_CSV_*`` environment variables are applied on top.

    Example:
        >>> config = ConfigManager().load_config()
        >>> config.conversion.sheet_name
        'Tabelle1'
    """

    # Environment variable prefix
    ENV_PREFIX = "XLSX_TO_CSV_"

    DEFAULT_CONFIG_PATH = Path("config/default.yaml")

    # Default configuration values
    DEFAULT_CONFIG = {
        "conversion": {
            "sheet_name": DEFAULT_SHEET_NAME,
            "delimiter": DEFAULT_DELIMITER,
            "encoding": "utf-8",
            "line_terminator": "\n",
            "strip_trailing_terminator": True,
        },
        "logging": {
            "level": "INFO",
            "format": "%(asctime)s - %(name)s - %(levelname)s - %(message)s",
            "file": {
                "enabled": False,
                "path": "./logs/xlsx_to_csv.log",
            },
            "console": {
                "enabled": True,
            },
            "structured": {
                "enabled": False,
            },
        },
    }

    # Values that must stay strings even when they look numeric or boolean
    STRING_PATHS = (
        ["conversion", "sheet_name"],
        ["conversion", "delimiter"],
        ["conversion", "encoding"],
        ["logging", "file", "path"],
    )

    def __init__(self) -> None:
        self._config_cache: Dict[str, Config] = {}

    def load_config(
        self,
        config_path: Optional[Union[str, Path]] = None,
        use_env_overrides: bool = True
    ) -> Config:
        """Load configuration from file with optional environment overrides.

        Args:
            config_path: Path to configuration file. If None, will try to load
                        config/default.yaml, falling back to built-in defaults
            use_env_overrides: Whether to apply environment variable overrides

        Returns:
            Loaded and validated configuration

        Raises:
            ConfigurationError: If configuration loading or validation fails
        """
        cache_key = f"{config_path}:{use_env_overrides}"
        if cache_key in self._config_cache:
            logger.debug(f"Using cached configuration for {cache_key}")
            return self._config_cache[cache_key]

        try:
            config_dict = self._load_config_dict(config_path)

            if use_env_overrides:
                config_dict = self._apply_env_overrides(config_dict)

            config = self._dict_to_config(config_dict)
        except ConfigurationError:
            raise
        except (ValueError, TypeError, AttributeError) as e:
            raise ConfigurationError(f"Invalid configuration: {e}") from e

        self._config_cache[cache_key] = config
        logger.debug(f"Configuration loaded from {config_path or 'defaults'}")
        return config

    def _load_config_dict(self, config_path: Optional[Union[str, Path]]) -> Dict[str, Any]:
        """Load configuration dictionary from file or defaults.

        Args:
            config_path: Path to configuration file

        Returns:
            Configuration dictionary
        """
        defaults = copy.deepcopy(self.DEFAULT_CONFIG)

        if config_path is None:
            if not self.DEFAULT_CONFIG_PATH.exists():
                return defaults
            logger.debug(f"No config path provided, loading {self.DEFAULT_CONFIG_PATH}")
            config_path = self.DEFAULT_CONFIG_PATH

        config_file = Path(config_path)
        if not config_file.exists():
            logger.warning(f"Configuration file not found: {config_file}, using defaults")
            return defaults

        try:
            with open(config_file, 'r', encoding='utf-8') as f:
                file_config = yaml.safe_load(f) or {}
        except yaml.YAMLError as e:
            raise ConfigurationError(f"Invalid YAML in {config_file}: {e}") from e
        except OSError as e:
            raise ConfigurationError(f"Cannot read {config_file}: {e}") from e

        if not isinstance(file_config, dict):
            raise ConfigurationError(f"Top level of {config_file} must be a mapping")

        return self._deep_merge(defaults, file_config)

    def _apply_env_overrides(self, config_dict: Dict[str, Any]) -> Dict[str, Any]:
        """Apply environment variable overrides to configuration.

        Args:
            config_dict: Base configuration dictionary

        Returns:
            Configuration dictionary with environment overrides applied
        """
        env_mappings = {
            f"{self.ENV_PREFIX}SHEET_NAME": ["conversion", "sheet_name"],
            f"{self.ENV_PREFIX}DELIMITER": ["conversion", "delimiter"],
            f"{self.ENV_PREFIX}ENCODING": ["conversion", "encoding"],
            f"{self.ENV_PREFIX}LOG_LEVEL": ["logging", "level"],
            f"{self.ENV_PREFIX}LOG_FILE_ENABLED": ["logging", "file", "enabled"],
            f"{self.ENV_PREFIX}LOG_FILE": ["logging", "file", "path"],
        }

        for env_var, config_path in env_mappings.items():
            env_value = os.getenv(env_var)
            if env_value is not None:
                converted_value = self._convert_env_value(env_value, config_path)
                self._set_nested_value(config_dict, config_path, converted_value)
                logger.debug(f"Applied environment override: {env_var}={converted_value!r}")

        return config_dict

    def _convert_env_value(self, value: str, config_path: List[str]) -> Any:
        """Convert environment variable string to appropriate type.

        Args:
            value: Environment variable string value
            config_path: Configuration path for type inference

        Returns:
            Converted value
        """
        if config_path in self.STRING_PATHS:
            return value

        if value.lower() in ("true", "false"):
            return value.lower() == "true"

        return value

    def _set_nested_value(
        self,
        dictionary: Dict[str, Any],
        path: List[str],
        value: Any
    ) -> None:
        for key in path[:-1]:
            dictionary = dictionary.setdefault(key, {})
        dictionary[path[-1]] = value

    def _deep_merge(self, base: Dict[str, Any], override: Dict[str, Any]) -> Dict[str, Any]:
        """Deep merge two dictionaries, with override taking precedence.

        Args:
            base: Base dictionary
            override: Override dictionary

        Returns:
            Merged dictionary
        """
        result = base.copy()

        for key, value in override.items():
            if key in result and isinstance(result[key], dict) and isinstance(value, dict):
                result[key] = self._deep_merge(result[key], value)
            else:
                result[key] = value

        return result

    def _dict_to_config(self, config_dict: Dict[str, Any]) -> Config:
        """Convert configuration dictionary to Config object.

        Args:
            config_dict: Configuration dictionary

        Returns:
            Config object
        """
        conversion = config_dict.get("conversion") or {}
        logging_section = config_dict.get("logging") or {}

        conversion_config = ConversionConfig(
            sheet_name=str(conversion.get("sheet_name", DEFAULT_SHEET_NAME)),
            delimiter=str(conversion.get("delimiter", DEFAULT_DELIMITER)),
            encoding=conversion.get("encoding", "utf-8"),
            line_terminator=conversion.get("line_terminator", "\n"),
            strip_trailing_terminator=bool(conversion.get("strip_trailing_terminator", True)),
        )

        logging_config = LoggingConfig(
            level=logging_section.get("level", "INFO"),
            format=logging_section.get("format", "%(asctime)s - %(name)s - %(levelname)s - %(message)s"),
            file_enabled=logging_section.get("file", {}).get("enabled", False),
            file_path=Path(logging_section.get("file", {}).get("path", "./logs/xlsx_to_csv.log")),
            console_enabled=logging_section.get("console", {}).get("enabled", True),
            structured_enabled=logging_section.get("structured", {}).get("enabled", False),
        )

        return Config(conversion=conversion_config, logging=logging_config)

    def save_config(self, config: Config, config_path: Union[str, Path]) -> None:
        """Save configuration to YAML file.

        Args:
            config: Configuration to save
            config_path: Path to save configuration file

        Raises:
            ConfigurationError: If saving fails
        """
        config_file = Path(config_path)
        try:
            config_file.parent.mkdir(parents=True, exist_ok=True)
            with open(config_file, 'w', encoding='utf-8') as f:
                yaml.safe_dump(self._config_to_dict(config), f,
                               default_flow_style=False, sort_keys=False)
        except (OSError, yaml.YAMLError) as e:
            raise ConfigurationError(f"Failed to save configuration: {e}") from e

        logger.info(f"Configuration saved to {config_file}")

    def _config_to_dict(self, config: Config) -> Dict[str, Any]:
        return {
            "conversion": {
                "sheet_name": config.conversion.sheet_name,
                "delimiter": config.conversion.delimiter,
                "encoding": config.conversion.encoding,
                "line_terminator": config.conversion.line_terminator,
                "strip_trailing_terminator": config.conversion.strip_trailing_terminator,
            },
            "logging": {
                "level": config.logging.level,
                "format": config.logging.format,
                "file": {
                    "enabled": config.logging.file_enabled,
                    "path": str(config.logging.file_path),
                },
                "console": {
                    "enabled": config.logging.console_enabled,
                },
                "structured": {
                    "enabled": config.logging.structured_enabled,
                },
            },
        }

    def clear_cache(self) -> None:
        self._config_cache.clear()


# Global configuration manager instance
config_manager = ConfigManager()
