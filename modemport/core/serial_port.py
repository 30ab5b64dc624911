"""Serial port controller for AT-command modems.

This module provides the SerialPort class: a cross-platform device lifecycle
(set device, configure line speed, open, read/write, close) with a buffered
write path and non-blocking reads that can temporarily switch to blocking.
"""

from enum import IntEnum
from typing import Optional, Union, TYPE_CHECKING
import atexit
import logging
import time
import weakref

import serial

from modemport.config.config_models import FlushFailurePolicy, SerialConfig
from modemport.config.defaults import get_default_config
from modemport.core.command_runner import CommandRunner
from modemport.core.exceptions import (
    DeviceCloseFailedError,
    DeviceOpenFailedError,
    InvalidBaudRateError,
    InvalidDeviceError,
    InvalidStateError,
    ReadFailedError,
    SerialPortError,
    WriteFailedError
)
from modemport.core.handle import HandleFactory, StreamHandle, open_handle, validate_mode
from modemport.core.platform_strategy import (
    SUPPORTED_BAUD_RATES,
    DeviceId,
    Platform,
    PlatformStrategy,
    resolve_platform
)

# Avoid circular import for type hints
if TYPE_CHECKING:
    from modemport.logging.communication_logger import CommunicationLogger

logger = logging.getLogger(__name__)

# Errors a handle may raise for device-level failures
_HANDLE_ERRORS = (serial.SerialException, OSError, ValueError)

LINE_TERMINATORS = (b"\r", b"\n")


class DeviceState(IntEnum):
    """Lifecycle state of a SerialPort."""
    UNSET = 0
    SET = 1
    OPENED = 2


def read_chunked(handle: StreamHandle, count: int = 0, chunk_size: int = 128) -> bytes:
    """Read from ``handle`` in chunks until ``count`` bytes or no more data.

    Args:
        handle: Open stream handle
        count: Bytes wanted; 0 drains everything currently available
        chunk_size: Maximum bytes requested per read

    Returns:
        Bytes read, possibly fewer than ``count`` (empty if nothing available)
    """
    content = bytearray()
    while count == 0 or len(content) < count:
        size = chunk_size if count == 0 else min(count - len(content), chunk_size)
        chunk = handle.read(size)
        if not chunk:
            break
        content.extend(chunk)
    return bytes(content)


# Ports still alive at interpreter exit get closed here
_live_ports: 'weakref.WeakSet[SerialPort]' = weakref.WeakSet()


@atexit.register
def _close_live_ports() -> None:
    for port in list(_live_ports):
        try:
            port.close()
        except SerialPortError as e:
            logger.warning("Failed to close %s at exit: %s", port.device, e)


class SerialPort:
    """Controls one serial device through its whole lifecycle.

    Every operation is gated on the lifecycle state: a device must be set
    before it can be configured or opened, and must be open before data can
    be sent or read. Instances are not thread-safe; share one across threads
    only behind an external lock.

    Example:
        >>> port = SerialPort()
        >>> port.set_device("/dev/ttyUSB0")
        >>> port.configure_baud_rate(115200)
        >>> port.open()
        >>> port.send("AT\\r\\n")
        >>> port.read_line()
        'OK'
        >>> port.close()
    """

    def __init__(self,
                 config: Optional[SerialConfig] = None,
                 logger: Optional['CommunicationLogger'] = None,
                 runner: Optional[CommandRunner] = None,
                 system_name: Optional[str] = None,
                 handle_factory: Optional[HandleFactory] = None):
        """Detect the platform and prepare an unset port.

        Args:
            config: Serial configuration (default: library defaults)
            logger: Optional CommunicationLogger for port events and traffic
            runner: External command runner (default: subprocess-based)
            system_name: Override of the detected system name
            handle_factory: Callable opening device handles (default: pyserial)

        Raises:
            UnsupportedPlatformError: Operating system not supported
            MissingDependencyError: Required configuration utility missing
        """
        self.config = config or get_default_config().serial
        self.logger = logger

        try:
            self._strategy: PlatformStrategy = resolve_platform(
                system_name,
                runner=runner,
                command_timeout=self.config.command_timeout
            )
        except SerialPortError as e:
            self._log_error(e)
            raise

        self._handle_factory = handle_factory or open_handle
        self._state = DeviceState.UNSET
        self._device: Optional[DeviceId] = None
        self._handle: Optional[StreamHandle] = None
        self._buffer = bytearray()
        self._auto_flush = self.config.auto_flush
        self._baud_rate = self.config.default_baud
        self._blocking = False

        _live_ports.add(self)

    # ------------------------------------------------------------------
    # State
    # ------------------------------------------------------------------

    @property
    def platform(self) -> Platform:
        return self._strategy.platform

    @property
    def state(self) -> DeviceState:
        return self._state

    @property
    def device(self) -> Optional[str]:
        """Normalized device path, or None while unset."""
        return self._device.path if self._device else None

    @property
    def windows_alias(self) -> Optional[str]:
        """Short COM name used by configuration commands on Windows."""
        return self._device.alias if self._device else None

    @property
    def baud_rate(self) -> int:
        """Line speed applied when the device is opened."""
        return self._baud_rate

    @property
    def is_open(self) -> bool:
        return self._state == DeviceState.OPENED

    @property
    def blocking(self) -> bool:
        return self._blocking

    @property
    def pending_bytes(self) -> int:
        """Number of bytes waiting in the write buffer."""
        return len(self._buffer)

    @property
    def auto_flush(self) -> bool:
        return self._auto_flush

    @auto_flush.setter
    def auto_flush(self, enabled: bool) -> None:
        self._auto_flush = bool(enabled)

    def _require_state(self, required: DeviceState, action: str) -> None:
        if self._state != required:
            error = InvalidStateError(
                f"Device must be {required.name.lower()} to {action} (current state: {self._state.name.lower()})",
                self.device
            )
            self._log_error(error)
            raise error

    def _log_error(self, error: SerialPortError) -> None:
        logger.debug("%s: %s", type(error).__name__, error)
        if self.logger:
            self.logger.log_error(
                source="SerialPort",
                error=str(error),
                port=error.port,
                details={"kind": error.kind.value if error.kind else None}
            )

    # ------------------------------------------------------------------
    # Device selection and configuration
    # ------------------------------------------------------------------

    def set_device(self, raw: str) -> None:
        """Select the device to control.

        Args:
            raw: Device name, e.g. "/dev/ttyUSB0", "COM3"

        Raises:
            InvalidStateError: Device currently opened
            InvalidDeviceError: Name rejected or probe failed
        """
        if self._state == DeviceState.OPENED:
            error = InvalidStateError("Device is already opened. Close it first.", self.device)
            self._log_error(error)
            raise error

        try:
            device = self._strategy.normalize_device(raw)
        except InvalidDeviceError as e:
            self._log_error(e)
            raise

        self._device = device
        self._state = DeviceState.SET
        if self.logger:
            self.logger.log_port_event(
                event="Device set",
                port=device.path,
                details={"requested": raw, "alias": device.alias} if device.alias else {"requested": raw}
            )

    def configure_baud_rate(self, rate: int) -> None:
        """Set the line speed of the selected device (8N1 on Windows).

        Only legal after set_device() and before open().

        Raises:
            InvalidStateError: Device unset or already opened
            InvalidBaudRateError: Rate not in SUPPORTED_BAUD_RATES
            ConfigurationFailedError: Platform utility reported failure
        """
        self._require_state(DeviceState.SET, "configure the baud rate")

        if isinstance(rate, bool) or not isinstance(rate, int) or rate not in SUPPORTED_BAUD_RATES:
            error = InvalidBaudRateError(f"Invalid baud rate: {rate}", self.device)
            self._log_error(error)
            raise error

        try:
            self._strategy.configure_line(self._device, rate)
        except SerialPortError as e:
            self._log_error(e)
            raise

        self._baud_rate = rate
        if self.logger:
            self.logger.log_port_event(
                event="Baud rate configured",
                port=self.device,
                details={"baud_rate": rate}
            )

    # ------------------------------------------------------------------
    # Open / close
    # ------------------------------------------------------------------

    def open(self, mode: Optional[str] = None) -> None:
        """Open the selected device in non-blocking mode.

        Does nothing if already open.

        Args:
            mode: r, w or a with optional + and b (default: config.default_mode)

        Raises:
            InvalidStateError: No device set
            InvalidModeError: Mode rejected
            DeviceOpenFailedError: Device absent, busy or permission denied
        """
        if self._state == DeviceState.OPENED:
            return
        if self._state == DeviceState.UNSET:
            error = InvalidStateError("Device must be set before opening")
            self._log_error(error)
            raise error

        if mode is None:
            mode = self.config.default_mode
        try:
            validate_mode(mode)
        except SerialPortError as e:
            self._log_error(e)
            raise

        path = self._device.path
        try:
            handle = self._handle_factory(
                path,
                mode,
                baud_rate=self._baud_rate,
                exclusive=self.config.exclusive
            )
        except _HANDLE_ERRORS as e:
            error = DeviceOpenFailedError(f"Failed to open device: {path}", path, e)
            self._log_error(error)
            raise error from e

        try:
            handle.set_blocking(False)
        except _HANDLE_ERRORS as e:
            handle.close()
            error = DeviceOpenFailedError(f"Failed to make device non-blocking: {path}", path, e)
            self._log_error(error)
            raise error from e

        self._handle = handle
        self._blocking = False
        self._state = DeviceState.OPENED
        if self.logger:
            self.logger.log_port_event(
                event="Port opened",
                port=path,
                details={"mode": mode, "baud_rate": self._baud_rate}
            )

    def close(self) -> None:
        """Release the device handle.

        Safe to call multiple times; does nothing if not open.

        Raises:
            DeviceCloseFailedError: Handle reported an error on release
        """
        if self._state != DeviceState.OPENED:
            return

        try:
            self._handle.close()
        except _HANDLE_ERRORS as e:
            error = DeviceCloseFailedError("Failed to close device", self.device, e)
            self._log_error(error)
            raise error from e

        self._handle = None
        self._blocking = False
        self._state = DeviceState.SET
        if self.logger:
            self.logger.log_port_event(event="Port closed", port=self.device)

    def dispose(self) -> None:
        """Close the port and drop it from the exit-time cleanup list."""
        try:
            self.close()
        finally:
            _live_ports.discard(self)

    # ------------------------------------------------------------------
    # Write path
    # ------------------------------------------------------------------

    def send(self, data: Union[bytes, str], wait_seconds: Optional[float] = None) -> None:
        """Queue data and, with auto-flush on, write it immediately.

        Args:
            data: Bytes, or text encoded with config.encoding
            wait_seconds: Fixed delay after the flush step
                (default: config.send_wait); blocks the calling thread

        Raises:
            InvalidStateError: Device not open
            WriteFailedError: Auto-flush failed, or the write buffer would
                exceed config.max_pending_bytes (nothing is queued then)
        """
        self._require_state(DeviceState.OPENED, "send data")

        if isinstance(data, str):
            data = data.encode(self.config.encoding)
        limit = self.config.max_pending_bytes
        if len(self._buffer) + len(data) > limit:
            error = WriteFailedError(
                f"Write buffer full: {len(self._buffer)} bytes pending, "
                f"{len(data)} more would exceed {limit}",
                self.device
            )
            self._log_error(error)
            raise error
        self._buffer.extend(data)

        if self._auto_flush:
            self.flush()
        elif self.logger:
            self.logger.log_transmit(self.device, bytes(data), flushed=False)

        if wait_seconds is None:
            wait_seconds = self.config.send_wait
        if wait_seconds > 0:
            time.sleep(wait_seconds)

    def flush(self) -> int:
        """Write the whole buffer to the device.

        With FlushFailurePolicy.DROP (default) the buffer is emptied whatever
        the outcome; with RETAIN the unwritten tail stays queued.

        Returns:
            Number of bytes written

        Raises:
            InvalidStateError: Device not open
            WriteFailedError: Write raised or wrote fewer bytes than queued
        """
        self._require_state(DeviceState.OPENED, "flush data")

        if not self._buffer:
            return 0

        pending = bytes(self._buffer)
        try:
            written = self._handle.write(pending)
        except _HANDLE_ERRORS as e:
            self._discard_after_failure(pending, 0)
            error = WriteFailedError("Failed to write to device", self.device, e)
            self._log_error(error)
            raise error from e

        if written < len(pending):
            self._discard_after_failure(pending, written)
            error = WriteFailedError(
                f"Failed to write to device: {written} of {len(pending)} bytes written",
                self.device
            )
            self._log_error(error)
            raise error

        self._buffer.clear()
        if self.logger:
            self.logger.log_transmit(self.device, pending)
        return written

    def _discard_after_failure(self, pending: bytes, written: int) -> None:
        if self.config.flush_failure_policy is FlushFailurePolicy.RETAIN:
            self._buffer = bytearray(pending[written:])
        else:
            self._buffer.clear()

    # ------------------------------------------------------------------
    # Read path
    # ------------------------------------------------------------------

    def _read(self, count: int) -> bytes:
        try:
            return read_chunked(self._handle, count, self.config.read_chunk_size)
        except _HANDLE_ERRORS as e:
            error = ReadFailedError("Failed to read from device", self.device, e)
            self._log_error(error)
            raise error from e

    def read_bytes(self, count: int = 0) -> bytes:
        """Read what the device has available.

        In non-blocking mode this never waits: it may return fewer than
        ``count`` bytes, or nothing at all.

        Args:
            count: Maximum bytes to read; 0 drains everything available

        Raises:
            InvalidStateError: Device not open
            ReadFailedError: Handle reported an I/O error
        """
        if count < 0:
            raise ValueError(f"count must be >= 0, got {count}")
        self._require_state(DeviceState.OPENED, "read data")

        data = self._read(count)
        if data and self.logger:
            self.logger.log_receive(self.device, data)
        return data

    def read_line(self) -> str:
        """Read one line, blocking until a CR or LF ends a non-empty line.

        Leading CR/LF characters are skipped. There is no timeout: wrap the
        call externally if one is needed. Non-blocking mode is restored on
        return.

        Raises:
            InvalidStateError: Device not open
            ReadFailedError: Handle reported an I/O error, or a blocking read
                returned no data (device closed or disconnected)
        """
        self._require_state(DeviceState.OPENED, "read data")

        line = bytearray()
        self.set_blocking_mode(True)
        try:
            while True:
                char = self._read(1)
                if not char:
                    # A blocking read only comes back empty once the device is gone
                    error = ReadFailedError("Device returned no data while reading a line", self.device)
                    self._log_error(error)
                    raise error
                if char in LINE_TERMINATORS:
                    if line:
                        break
                else:
                    line.extend(char)
        finally:
            self.set_blocking_mode(False)

        if self.logger:
            self.logger.log_receive(self.device, bytes(line))
        return line.decode(self.config.encoding, errors='replace')

    def set_blocking_mode(self, enabled: bool) -> None:
        """Switch the open handle between blocking and non-blocking reads.

        Does nothing if no handle is open.
        """
        if self._handle is None:
            return
        self._handle.set_blocking(enabled)
        self._blocking = bool(enabled)

    def __enter__(self):
        """Context manager entry."""
        return self

    def __exit__(self, exc_type, exc_val, exc_tb):
        """Context manager exit: close port."""
        self.close()
        return False

    def __repr__(self) -> str:
        return (f"SerialPort(platform={self.platform.value}, device={self.device!r}, "
                f"state={self._state.name.lower()}, baud={self._baud_rate})")
