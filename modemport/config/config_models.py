"""Configuration data models for modemport.

This module defines immutable configuration dataclasses with sensible defaults
for zero-config operation. All dataclasses are frozen for immutability.
"""

from dataclasses import dataclass, field, asdict
from enum import Enum
from typing import Optional, Dict, Any


class FlushFailurePolicy(Enum):
    """What happens to buffered data when a flush fails."""
    DROP = "drop"  # clear the buffer, data is lost
    RETAIN = "retain"  # keep the unsent tail for the next flush


class LogLevel(Enum):
    """Logging level."""
    DEBUG = "DEBUG"
    INFO = "INFO"
    WARNING = "WARNING"
    ERROR = "ERROR"


@dataclass(frozen=True)
class SerialConfig:
    """Serial port controller configuration."""
    default_baud: int = 9600
    default_mode: str = "r+b"
    send_wait: float = 0.1  # seconds
    auto_flush: bool = True
    read_chunk_size: int = 128
    flush_failure_policy: FlushFailurePolicy = FlushFailurePolicy.DROP
    max_pending_bytes: int = 65536
    command_timeout: int = 10  # seconds
    exclusive: bool = True
    encoding: str = "utf-8"


@dataclass(frozen=True)
class LoggingConfig:
    """Communication logging configuration."""
    enabled: bool = False
    level: LogLevel = LogLevel.INFO
    log_to_file: bool = False
    log_to_console: bool = True
    log_file_path: Optional[str] = None
    max_file_size_mb: int = 10
    backup_count: int = 5


@dataclass(frozen=True)
class Config:
    """Complete configuration object with all sections."""
    serial: SerialConfig = field(default_factory=SerialConfig)
    logging: LoggingConfig = field(default_factory=LoggingConfig)

    def to_dict(self) -> Dict[str, Any]:
        """Convert configuration to dictionary.

        Returns:
            Dictionary representation with nested sections.
        """
        def convert_value(obj: Any) -> Any:
            if isinstance(obj, Enum):
                return obj.value
            elif isinstance(obj, dict):
                return {k: convert_value(v) for k, v in obj.items()}
            elif isinstance(obj, list):
                return [convert_value(item) for item in obj]
            return obj

        return convert_value(asdict(self))
