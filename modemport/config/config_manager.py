"""Configuration manager for modemport.

Provides singleton access to library configuration with support for
defaults, file loading, and environment variable overrides.
"""

from pathlib import Path
from typing import Optional, Dict, Any
from copy import deepcopy
import logging
import os

import yaml

from modemport.config.config_models import (
    Config,
    SerialConfig,
    LoggingConfig,
    FlushFailurePolicy,
    LogLevel
)
from modemport.config.defaults import get_default_config
from modemport.config.config_schema import ConfigSchema

logger = logging.getLogger(__name__)

ENV_PREFIX = "MODEMPORT_"


class ConfigManager:
    """Singleton configuration manager.

    Layered loading:
    1. Load defaults
    2. Load from YAML file (if one exists)
    3. Apply environment variable overrides
    4. Validate configuration against JSON schema
    5. Return validated Config object
    """

    _instance: Optional['ConfigManager'] = None

    def __init__(self):
        """Private constructor. Use instance() or initialize() class methods."""
        if ConfigManager._instance is not None:
            raise RuntimeError("Use ConfigManager.instance() instead of constructor")
        self._config: Optional[Config] = None
        self._config_source: Dict[str, str] = {}
        self._config_path: Optional[Path] = None

    @classmethod
    def instance(cls) -> 'ConfigManager':
        """Get singleton instance of ConfigManager.

        Raises:
            RuntimeError: If not yet initialized.
        """
        if cls._instance is None:
            raise RuntimeError("ConfigManager not initialized. Call initialize() first.")
        return cls._instance

    @classmethod
    def is_initialized(cls) -> bool:
        return cls._instance is not None

    @classmethod
    def initialize(cls,
                   config_path: Optional[Path] = None,
                   skip_validation: bool = False) -> 'ConfigManager':
        """Initialize ConfigManager with configuration.

        Args:
            config_path: Optional path to a YAML file. If None, searches default paths.
            skip_validation: Skip schema validation.

        Returns:
            ConfigManager: Initialized singleton instance.

        Raises:
            ValueError: Merged configuration fails schema validation.
            yaml.YAMLError: An explicitly given file is not valid YAML.
        """
        manager = cls._instance or cls()
        manager._config_source = {}
        manager._config_path = None

        config_dict = get_default_config().to_dict()
        manager._mark_source(config_dict, "default")

        explicit_path = config_path is not None
        if config_path is None:
            config_path = cls._search_config_paths()

        if config_path is not None and Path(config_path).exists():
            config_path = Path(config_path)
            try:
                file_config = cls._load_from_file(config_path)
            except (OSError, yaml.YAMLError) as e:
                if explicit_path:
                    raise
                logger.warning("Failed to load config from %s: %s; using defaults", config_path, e)
            else:
                config_dict = cls._merge_configs(config_dict, file_config)
                manager._mark_source(file_config, "file")
                manager._config_path = config_path

        env_overrides = cls._apply_env_overrides()
        if env_overrides:
            config_dict = cls._merge_configs(config_dict, env_overrides)
            manager._mark_source(env_overrides, "env")

        cls._normalize_values(config_dict)

        if not skip_validation:
            is_valid, validation_errors = ConfigSchema.validate_config(config_dict, strict=False)
            if not is_valid:
                raise ValueError("Configuration validation failed:\n" + "\n".join(
                    f"  - {error}" for error in validation_errors
                ))

        manager._config = cls._dict_to_config(config_dict)
        cls._instance = manager
        return manager

    @staticmethod
    def _search_config_paths() -> Optional[Path]:
        """Search for a configuration file in standard locations.

        Search order:
            1. ./modemport.yaml
            2. ~/.modemport/config.yaml
        """
        search_paths = [
            Path("./modemport.yaml"),
            Path.home() / ".modemport" / "config.yaml"
        ]

        for path in search_paths:
            if path.is_file():
                return path

        return None

    @staticmethod
    def _load_from_file(path: Path) -> Dict[str, Any]:
        with open(path, 'r', encoding='utf-8') as f:
            config_dict = yaml.safe_load(f)
        return config_dict or {}

    @staticmethod
    def _apply_env_overrides() -> Dict[str, Any]:
        """Collect environment variable overrides.

        Environment variables use format: MODEMPORT_SECTION_KEY
        Examples:
            MODEMPORT_SERIAL_DEFAULT_BAUD=115200
            MODEMPORT_SERIAL_AUTO_FLUSH=false
            MODEMPORT_LOGGING_LEVEL=DEBUG
        """
        overrides: Dict[str, Dict[str, Any]] = {}

        for env_name, env_value in os.environ.items():
            if not env_name.startswith(ENV_PREFIX):
                continue

            # MODEMPORT_SERIAL_DEFAULT_BAUD -> ["serial", "default_baud"]
            parts = env_name[len(ENV_PREFIX):].lower().split('_', 1)
            if len(parts) != 2:
                continue

            section, key = parts
            overrides.setdefault(section, {})[key] = ConfigManager._parse_env_value(env_value)

        return overrides

    @staticmethod
    def _parse_env_value(value: str) -> Any:
        """Parse environment variable value to bool, int, float or str."""
        if value.lower() in ('true', 'yes', 'on'):
            return True
        if value.lower() in ('false', 'no', 'off'):
            return False

        for convert in (int, float):
            try:
                return convert(value)
            except ValueError:
                pass

        return value

    @staticmethod
    def _normalize_values(config_dict: Dict[str, Any]) -> None:
        """Upper-case the log level so "debug" from a file or env is accepted."""
        log_dict = config_dict.get('logging')
        if isinstance(log_dict, dict) and isinstance(log_dict.get('level'), str):
            log_dict['level'] = log_dict['level'].upper()

    @staticmethod
    def _merge_configs(base: Dict[str, Any], override: Dict[str, Any]) -> Dict[str, Any]:
        merged = deepcopy(base)

        for section, section_values in override.items():
            if isinstance(section_values, dict) and isinstance(merged.get(section), dict):
                merged[section].update(section_values)
            else:
                merged[section] = section_values

        return merged

    def _mark_source(self, config: Dict[str, Any], source: str):
        for section, section_values in config.items():
            if isinstance(section_values, dict):
                for key in section_values.keys():
                    self._config_source[f"{section}.{key}"] = source

    @staticmethod
    def _dict_to_config(config_dict: Dict[str, Any]) -> Config:
        """Convert a validated configuration dictionary to a Config object."""
        defaults = get_default_config()

        serial_dict = config_dict.get('serial', {})
        policy = serial_dict.get('flush_failure_policy', defaults.serial.flush_failure_policy)
        serial = SerialConfig(
            default_baud=serial_dict.get('default_baud', defaults.serial.default_baud),
            default_mode=serial_dict.get('default_mode', defaults.serial.default_mode),
            send_wait=float(serial_dict.get('send_wait', defaults.serial.send_wait)),
            auto_flush=serial_dict.get('auto_flush', defaults.serial.auto_flush),
            read_chunk_size=serial_dict.get('read_chunk_size', defaults.serial.read_chunk_size),
            flush_failure_policy=FlushFailurePolicy(policy),
            max_pending_bytes=serial_dict.get('max_pending_bytes', defaults.serial.max_pending_bytes),
            command_timeout=serial_dict.get('command_timeout', defaults.serial.command_timeout),
            exclusive=serial_dict.get('exclusive', defaults.serial.exclusive),
            encoding=serial_dict.get('encoding', defaults.serial.encoding)
        )

        log_dict = config_dict.get('logging', {})
        level = log_dict.get('level', defaults.logging.level)
        logging_config = LoggingConfig(
            enabled=log_dict.get('enabled', defaults.logging.enabled),
            level=LogLevel(level),
            log_to_file=log_dict.get('log_to_file', defaults.logging.log_to_file),
            log_to_console=log_dict.get('log_to_console', defaults.logging.log_to_console),
            log_file_path=log_dict.get('log_file_path', defaults.logging.log_file_path),
            max_file_size_mb=log_dict.get('max_file_size_mb', defaults.logging.max_file_size_mb),
            backup_count=log_dict.get('backup_count', defaults.logging.backup_count)
        )

        return Config(serial=serial, logging=logging_config)

    def get_config(self) -> Config:
        """Get current configuration object.

        Raises:
            RuntimeError: If configuration not loaded.
        """
        if self._config is None:
            raise RuntimeError("Configuration not loaded. Call initialize() first.")
        return self._config

    def get_source(self, key: str) -> Optional[str]:
        """Where a value came from ("default", "file" or "env").

        Args:
            key: Dotted key, e.g. "serial.default_baud"
        """
        return self._config_source.get(key)

    @property
    def config_path(self) -> Optional[Path]:
        return self._config_path

    @classmethod
    def reset(cls):
        """Reset singleton instance (for testing)."""
        cls._instance = None
