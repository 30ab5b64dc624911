"""Configuration management package.

Provides centralized configuration access with defaults, file loading,
and environment variable overrides.
"""

from modemport.config.config_manager import ConfigManager
from modemport.config.config_models import (
    Config,
    SerialConfig,
    LoggingConfig,
    FlushFailurePolicy,
    LogLevel
)
from modemport.config.defaults import get_default_config

__all__ = [
    'ConfigManager',
    'Config',
    'SerialConfig',
    'LoggingConfig',
    'FlushFailurePolicy',
    'LogLevel',
    'get_default_config',
]
