"""Raw byte-stream handles for serial devices.

A handle owns one open device and exposes the minimal capability the
controller needs: chunked reads, writes, a blocking toggle and close.
The default implementation is backed by pyserial, so any pyserial URL
(including ``loop://``) can be opened.
"""

from abc import ABC, abstractmethod
from typing import Callable, Optional
import io
import re

import serial

from modemport.core.exceptions import InvalidModeError

# r, w or a; optional "+" for update; optional binary flag
MODE_PATTERN = re.compile(r"^[raw]\+?b?$")


def validate_mode(mode: str) -> str:
    """Check an open mode string.

    Raises:
        InvalidModeError: Mode is not one of r, w, a with optional + and b
    """
    if not isinstance(mode, str) or not MODE_PATTERN.match(mode):
        raise InvalidModeError(f"Invalid mode: {mode!r}")
    return mode


class StreamHandle(ABC):
    """Exclusive byte-stream handle on an open device."""

    def __init__(self, mode: str):
        validate_mode(mode)
        self.mode = mode
        self.readable = mode[0] == "r" or "+" in mode
        self.writable = mode[0] in "wa" or "+" in mode

    @property
    @abstractmethod
    def is_open(self) -> bool:
        """True until close() succeeds."""

    @abstractmethod
    def read(self, max_bytes: int) -> bytes:
        """Read up to ``max_bytes``; empty result when nothing is available."""

    @abstractmethod
    def write(self, data: bytes) -> int:
        """Write ``data`` and return the number of bytes written."""

    @abstractmethod
    def set_blocking(self, enabled: bool) -> None:
        """Switch between blocking and non-blocking reads."""

    @abstractmethod
    def close(self) -> None:
        """Release the device."""

    def _check_readable(self) -> None:
        if not self.readable:
            raise io.UnsupportedOperation(f"handle opened with mode {self.mode!r} is not readable")

    def _check_writable(self) -> None:
        if not self.writable:
            raise io.UnsupportedOperation(f"handle opened with mode {self.mode!r} is not writable")


class SerialStreamHandle(StreamHandle):
    """Handle backed by a pyserial port object.

    Non-blocking reads use ``timeout=0`` (return immediately with what is
    buffered); blocking reads use ``timeout=None`` (wait for data).

    Example:
        >>> handle = SerialStreamHandle.open("loop://", "r+b", baud_rate=9600)
        >>> handle.write(b"AT\\r\\n")
        4
        >>> handle.read(128)
        b'AT\\r\\n'
        >>> handle.close()
    """

    def __init__(self, port: serial.SerialBase, mode: str):
        super().__init__(mode)
        self._serial = port

    @classmethod
    def open(cls, path: str, mode: str = "r+b", baud_rate: int = 9600,
             exclusive: Optional[bool] = None) -> 'SerialStreamHandle':
        """Open ``path`` and return a non-blocking handle.

        Raises:
            InvalidModeError: Mode rejected
            serial.SerialException: Device absent, busy or permission denied
            ValueError: Parameter rejected by pyserial
        """
        validate_mode(mode)
        kwargs = {"baudrate": baud_rate, "timeout": 0}
        if exclusive is not None:
            kwargs["exclusive"] = exclusive
        port = serial.serial_for_url(path, **kwargs)
        return cls(port, mode)

    @property
    def is_open(self) -> bool:
        return bool(self._serial.is_open)

    @property
    def blocking(self) -> bool:
        return self._serial.timeout is None

    def read(self, max_bytes: int) -> bytes:
        self._check_readable()
        return self._serial.read(max_bytes)

    def write(self, data: bytes) -> int:
        self._check_writable()
        written = self._serial.write(data)
        return len(data) if written is None else written

    def set_blocking(self, enabled: bool) -> None:
        self._serial.timeout = None if enabled else 0

    def close(self) -> None:
        self._serial.close()

    def __repr__(self) -> str:
        return f"SerialStreamHandle(port={self._serial.port!r}, mode={self.mode!r})"


HandleFactory = Callable[..., StreamHandle]


def open_handle(path: str, mode: str = "r+b", baud_rate: int = 9600,
                exclusive: Optional[bool] = None) -> StreamHandle:
    """Default handle factory used by SerialPort."""
    return SerialStreamHandle.open(path, mode, baud_rate=baud_rate, exclusive=exclusive)
