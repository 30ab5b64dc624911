"""Default configuration values for zero-config operation.

This module provides sensible defaults for all configuration sections,
allowing the library to run without a configuration file.
"""

from modemport.config.config_models import (
    Config,
    SerialConfig,
    LoggingConfig,
    FlushFailurePolicy,
    LogLevel
)


def get_default_config() -> Config:
    """Get default configuration with sensible values for zero-config operation.

    Returns:
        Config: Complete configuration with all defaults populated.

    Default Values:
        - Serial: 9600 baud, "r+b" mode, 0.1s post-send wait, auto-flush on,
          failed flushes drop the buffer
        - Logging: Disabled, INFO level, console output when enabled
    """
    return Config(
        serial=SerialConfig(
            default_baud=9600,  # Safe default for AT modems
            default_mode="r+b",
            send_wait=0.1,  # Modem response latency
            auto_flush=True,
            read_chunk_size=128,
            flush_failure_policy=FlushFailurePolicy.DROP,
            max_pending_bytes=65536,  # Write buffer cap; send() fails beyond it
            command_timeout=10,  # stty / mode normally return instantly
            exclusive=True,  # Lock the device against other processes (POSIX)
            encoding="utf-8"
        ),
        logging=LoggingConfig(
            enabled=False,  # Opt-in
            level=LogLevel.INFO,
            log_to_file=False,
            log_to_console=True,
            log_file_path=None,  # Auto-generated: ~/.modemport/logs/comm_{timestamp}.log
            max_file_size_mb=10,
            backup_count=5
        )
    )
