"""Communication logger for serial port traffic.

This module provides the CommunicationLogger class, a central coordinator
for logging serial port communications. Manages multiple output destinations
(file, console, in-memory buffer) with log level filtering and convenience
methods for common logging operations.
"""

from datetime import datetime
from collections import deque
from pathlib import Path
from threading import Lock
from typing import Optional, List, Dict, Any
import logging
import sys

from modemport.logging.log_models import LogEntry
from modemport.logging.file_handler import FileHandler
from modemport.config.config_models import LogLevel, LoggingConfig

logger = logging.getLogger(__name__)


class CommunicationLogger:
    """Central coordinator for communication logging.

    Attributes:
        log_level: Current log level (DEBUG, INFO, WARNING, ERROR)
        enable_file: Whether file logging is enabled
        enable_console: Whether console logging is enabled
        log_file_path: Path to log file (if file logging enabled)

    Example:
        >>> comm_logger = CommunicationLogger(log_level=LogLevel.DEBUG)
        >>> comm_logger.log_transmit(port="/dev/ttyUSB0", data=b"AT\\r\\n")
        >>> comm_logger.log_receive(port="/dev/ttyUSB0", data=b"OK\\r\\n")
        >>> comm_logger.close()
    """

    _LEVEL_PRIORITY = {
        "DEBUG": 0,
        "INFO": 1,
        "WARNING": 2,
        "ERROR": 3
    }

    SOURCE = "SerialPort"

    def __init__(
        self,
        log_level: LogLevel = LogLevel.INFO,
        enable_file: bool = False,
        enable_console: bool = True,
        log_file_path: Optional[str] = None,
        max_file_size_mb: int = 10,
        backup_count: int = 5,
        buffer_size: int = 1000
    ):
        """Initialize CommunicationLogger with output destinations and log level.

        Args:
            log_level: Log level for filtering (default: INFO)
            enable_file: Enable file logging (default: False)
            enable_console: Enable console logging to stderr (default: True)
            log_file_path: Path to log file (required if enable_file=True)
            max_file_size_mb: Maximum file size before rotation (default: 10)
            backup_count: Number of backup files to keep (default: 5)
            buffer_size: Entries kept in memory (default: 1000)

        Raises:
            ValueError: If enable_file=True but log_file_path is None
        """
        self.log_level = log_level.value if isinstance(log_level, LogLevel) else log_level
        self.enable_file = enable_file
        self.enable_console = enable_console
        self.log_file_path = log_file_path

        self._lock = Lock()
        self._buffer: deque = deque(maxlen=buffer_size)

        self._file_handler: Optional[FileHandler] = None
        if self.enable_file:
            if not log_file_path:
                raise ValueError("log_file_path required when enable_file=True")
            try:
                self._file_handler = FileHandler(
                    log_file_path=log_file_path,
                    max_size_mb=max_file_size_mb,
                    backup_count=backup_count
                )
            except OSError as e:
                logger.warning("Failed to initialize file logging: %s", e)

    @classmethod
    def from_config(cls, config: LoggingConfig) -> Optional['CommunicationLogger']:
        """Build a logger from a LoggingConfig section.

        Returns:
            CommunicationLogger, or None when logging is disabled
        """
        if not config.enabled:
            return None

        log_file_path = config.log_file_path
        if config.log_to_file and not log_file_path:
            stamp = datetime.now().strftime("%Y%m%d_%H%M%S")
            log_file_path = str(Path.home() / ".modemport" / "logs" / f"comm_{stamp}.log")

        return cls(
            log_level=config.level,
            enable_file=config.log_to_file,
            enable_console=config.log_to_console,
            log_file_path=log_file_path,
            max_file_size_mb=config.max_file_size_mb,
            backup_count=config.backup_count
        )

    def log(self, entry: LogEntry) -> None:
        """Log an entry to all enabled destinations with level filtering."""
        if not self._should_log(entry.level):
            return

        with self._lock:
            self._buffer.append(entry)

            if self._file_handler:
                self._file_handler.write(entry)

            if self.enable_console:
                print(entry.to_string(), file=sys.stderr)

    def _should_log(self, entry_level: str) -> bool:
        entry_priority = self._LEVEL_PRIORITY.get(entry_level, 0)
        current_priority = self._LEVEL_PRIORITY.get(self.log_level, 0)
        return entry_priority >= current_priority

    def log_port_event(
        self,
        event: str,
        port: Optional[str],
        details: Optional[Dict[str, Any]] = None,
        level: str = "INFO"
    ) -> None:
        """Log a lifecycle event (convenience method).

        Example:
            >>> comm_logger.log_port_event(
            ...     event="Port opened",
            ...     port="/dev/ttyUSB0",
            ...     details={"mode": "r+b", "baud_rate": 115200}
            ... )
        """
        self.log(LogEntry(
            timestamp=datetime.now(),
            level=level,
            source=self.SOURCE,
            message=event,
            port=port,
            details=details
        ))

    def log_transmit(self, port: Optional[str], data: bytes, flushed: bool = True) -> None:
        """Log bytes written to the device (convenience method)."""
        self.log(LogEntry(
            timestamp=datetime.now(),
            level="DEBUG",
            source=self.SOURCE,
            message="Data sent" if flushed else "Data buffered",
            port=port,
            direction="TX",
            data=LogEntry.render_bytes(data),
            byte_count=len(data)
        ))

    def log_receive(self, port: Optional[str], data: bytes) -> None:
        """Log bytes read from the device (convenience method)."""
        self.log(LogEntry(
            timestamp=datetime.now(),
            level="DEBUG",
            source=self.SOURCE,
            message="Data received",
            port=port,
            direction="RX",
            data=LogEntry.render_bytes(data),
            byte_count=len(data)
        ))

    def log_error(
        self,
        source: str,
        error: str,
        port: Optional[str] = None,
        details: Optional[Dict[str, Any]] = None
    ) -> None:
        """Log error event (convenience method).

        Example:
            >>> comm_logger.log_error(
            ...     source="SerialPort",
            ...     error="Failed to open device",
            ...     port="/dev/ttyUSB0",
            ...     details={"error_type": "SerialException"}
            ... )
        """
        self.log(LogEntry(
            timestamp=datetime.now(),
            level="ERROR",
            source=source,
            message="Error occurred",
            port=port,
            error=error,
            details=details
        ))

    def set_level(self, level: LogLevel) -> None:
        """Change log level dynamically."""
        self.log_level = level.value if isinstance(level, LogLevel) else level

    def get_entries(self, limit: Optional[int] = None) -> List[LogEntry]:
        """Get log entries from the in-memory buffer, oldest first."""
        with self._lock:
            entries = list(self._buffer)
        if limit:
            entries = entries[-limit:]
        return entries

    def clear_buffer(self) -> None:
        """Clear the in-memory buffer. File logs are not affected."""
        with self._lock:
            self._buffer.clear()

    def flush(self) -> None:
        if self._file_handler:
            self._file_handler.flush()

    def close(self) -> None:
        """Close all handlers and flush buffers."""
        if self._file_handler:
            self._file_handler.close()
            self._file_handler = None

    def __enter__(self):
        return self

    def __exit__(self, exc_type, exc_val, exc_tb):
        self.close()
        return False
