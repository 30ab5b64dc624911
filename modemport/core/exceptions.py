"""Exception hierarchy for the serial port controller.

Every failure raised by the controller is a ``SerialPortError`` tagged with an
``ErrorKind``. Each kind also has its own subclass so callers can catch a
single condition or every serial error with one except clause.
"""

from enum import Enum
from typing import Optional, TYPE_CHECKING

if TYPE_CHECKING:
    from modemport.core.command_runner import CommandResult


class ErrorKind(Enum):
    """Tag identifying the category of a serial port error."""
    UNSUPPORTED_PLATFORM = "unsupported_platform"
    MISSING_DEPENDENCY = "missing_dependency"
    INVALID_STATE = "invalid_state"
    INVALID_DEVICE = "invalid_device"
    INVALID_BAUD_RATE = "invalid_baud_rate"
    CONFIGURATION_FAILED = "configuration_failed"
    INVALID_MODE = "invalid_mode"
    DEVICE_OPEN_FAILED = "device_open_failed"
    WRITE_FAILED = "write_failed"
    READ_FAILED = "read_failed"
    DEVICE_CLOSE_FAILED = "device_close_failed"


class ModemPortError(Exception):
    """Base exception for all modemport errors."""
    pass


class SerialPortError(ModemPortError):
    """Serial port control error.

    Attributes:
        kind: ErrorKind tag of this error (None on the untagged base class)
        port: Device identifier involved, if one was known
        os_error: Underlying exception from pyserial or the OS (if available)
    """

    kind: Optional[ErrorKind] = None

    def __init__(self, message: str, port: Optional[str] = None,
                 os_error: Optional[Exception] = None):
        """Initialize SerialPortError.

        Args:
            message: Human-readable error description
            port: Device identifier
            os_error: Original exception from pyserial/OS
        """
        super().__init__(message)
        self.port = port
        self.os_error = os_error

    def __str__(self) -> str:
        """Format error message with port context."""
        base_msg = super().__str__()
        if self.port is None:
            return base_msg if self.os_error is None else f"{base_msg} (cause: {self.os_error})"
        if self.os_error:
            return f"{base_msg} (port: {self.port}, cause: {self.os_error})"
        return f"{base_msg} (port: {self.port})"


class UnsupportedPlatformError(SerialPortError):
    """The running operating system is not Linux, macOS or Windows."""
    kind = ErrorKind.UNSUPPORTED_PLATFORM


class MissingDependencyError(SerialPortError):
    """A required line-configuration utility is not installed."""
    kind = ErrorKind.MISSING_DEPENDENCY


class InvalidStateError(SerialPortError):
    """Operation attempted before its prerequisite state was reached."""
    kind = ErrorKind.INVALID_STATE


class InvalidDeviceError(SerialPortError):
    """Device identifier is malformed or the device could not be probed."""
    kind = ErrorKind.INVALID_DEVICE


class InvalidBaudRateError(SerialPortError):
    """Requested baud rate is not in the supported set."""
    kind = ErrorKind.INVALID_BAUD_RATE


class ConfigurationFailedError(SerialPortError):
    """External line-configuration command reported failure.

    Attributes:
        result: CommandResult of the failed command
    """
    kind = ErrorKind.CONFIGURATION_FAILED

    def __init__(self, message: str, port: Optional[str] = None,
                 result: Optional['CommandResult'] = None):
        super().__init__(message, port)
        self.result = result

    def __str__(self) -> str:
        base_msg = super().__str__()
        if self.result is not None:
            return f"{base_msg} [exit code {self.result.exit_code}]"
        return base_msg


class InvalidModeError(SerialPortError):
    """Open mode does not match the accepted read/write/append pattern."""
    kind = ErrorKind.INVALID_MODE


class DeviceOpenFailedError(SerialPortError):
    """Handle for the device could not be acquired."""
    kind = ErrorKind.DEVICE_OPEN_FAILED


class WriteFailedError(SerialPortError):
    """Flushing the write buffer to the device failed."""
    kind = ErrorKind.WRITE_FAILED


class ReadFailedError(SerialPortError):
    """Reading from the device handle reported an I/O error."""
    kind = ErrorKind.READ_FAILED


class DeviceCloseFailedError(SerialPortError):
    """Releasing the device handle reported an error."""
    kind = ErrorKind.DEVICE_CLOSE_FAILED
