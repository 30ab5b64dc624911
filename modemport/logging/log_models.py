"""Log data models for communication logging.

This module defines immutable records for serial port traffic and
lifecycle events.
"""

from dataclasses import dataclass, asdict
from datetime import datetime
from typing import Dict, Any, Optional
import json


@dataclass(frozen=True)
class LogEntry:
    """Immutable log entry for communication logging.

    Attributes:
        timestamp: When the event occurred
        level: Log level (DEBUG, INFO, WARNING, ERROR)
        source: Component name (SerialPort, PlatformStrategy, ...)
        message: Human-readable message describing the event
        details: Additional structured data (arbitrary dict)
        port: Device identifier (optional)
        direction: "TX" for data sent, "RX" for data received (optional)
        data: Printable rendering of the bytes transferred (optional)
        byte_count: Number of bytes transferred (optional)
        error: Error message if applicable (optional)

    Example:
        >>> entry = LogEntry(
        ...     timestamp=datetime(2025, 1, 12, 10, 30, 15, 234000),
        ...     level="INFO",
        ...     source="SerialPort",
        ...     message="Data sent",
        ...     port="/dev/ttyUSB0",
        ...     direction="TX",
        ...     data="AT\\\\r\\\\n",
        ...     byte_count=4
        ... )
        >>> entry.to_string()
        '2025-01-12 10:30:15.234 | INFO    | SerialPort      | Data sent | PORT: /dev/ttyUSB0 | TX 4B: AT\\\\r\\\\n'
    """

    timestamp: datetime
    level: str
    source: str
    message: str
    details: Optional[Dict[str, Any]] = None

    port: Optional[str] = None
    direction: Optional[str] = None
    data: Optional[str] = None
    byte_count: Optional[int] = None
    error: Optional[str] = None

    @staticmethod
    def render_bytes(data: bytes) -> str:
        """Render raw bytes as printable text (escapes control characters)."""
        return data.decode('latin-1').encode('unicode_escape').decode('ascii')

    def to_dict(self) -> Dict[str, Any]:
        """Convert log entry to dictionary with an ISO 8601 timestamp."""
        result = asdict(self)
        result['timestamp'] = self.timestamp.isoformat()
        return result

    def to_string(self) -> str:
        """Format log entry as a single human-readable line.

        Returns:
            "YYYY-MM-DD HH:MM:SS.mmm | LEVEL | SOURCE | MESSAGE" followed by
            any port, traffic and error context.
        """
        timestamp_str = self.timestamp.strftime("%Y-%m-%d %H:%M:%S.%f")[:-3]
        base = f"{timestamp_str} | {self.level:7} | {self.source:15} | {self.message}"

        if self.port:
            base += f" | PORT: {self.port}"
        if self.direction:
            count = f" {self.byte_count}B" if self.byte_count is not None else ""
            base += f" | {self.direction}{count}: {self.data or ''}"
        if self.error:
            base += f" | ERROR: {self.error}"

        return base

    def to_json(self) -> str:
        return json.dumps(self.to_dict(), default=str)

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> 'LogEntry':
        """Create LogEntry from dictionary (inverse of to_dict)."""
        timestamp = data['timestamp']
        if isinstance(timestamp, str):
            timestamp = datetime.fromisoformat(timestamp)

        return cls(
            timestamp=timestamp,
            level=data['level'],
            source=data['source'],
            message=data['message'],
            details=data.get('details'),
            port=data.get('port'),
            direction=data.get('direction'),
            data=data.get('data'),
            byte_count=data.get('byte_count'),
            error=data.get('error')
        )

    @classmethod
    def from_json(cls, json_str: str) -> 'LogEntry':
        return cls.from_dict(json.loads(json_str))
