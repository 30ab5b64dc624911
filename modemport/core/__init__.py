"""Core serial port control components.

This package provides the SerialPort controller together with its platform
strategies, stream handles and error taxonomy.
"""

from modemport.core.command_runner import CommandResult, run_command
from modemport.core.exceptions import (
    ErrorKind,
    ModemPortError,
    SerialPortError,
    UnsupportedPlatformError,
    MissingDependencyError,
    InvalidStateError,
    InvalidDeviceError,
    InvalidBaudRateError,
    ConfigurationFailedError,
    InvalidModeError,
    DeviceOpenFailedError,
    WriteFailedError,
    ReadFailedError,
    DeviceCloseFailedError
)
from modemport.core.handle import StreamHandle, SerialStreamHandle, open_handle
from modemport.core.platform_strategy import (
    SUPPORTED_BAUD_RATES,
    DeviceId,
    Platform,
    PlatformStrategy,
    LinuxStrategy,
    MacOSStrategy,
    WindowsStrategy,
    resolve_platform
)
from modemport.core.serial_port import DeviceState, SerialPort

__all__ = [
    'SerialPort',
    'DeviceState',
    'Platform',
    'PlatformStrategy',
    'LinuxStrategy',
    'MacOSStrategy',
    'WindowsStrategy',
    'DeviceId',
    'SUPPORTED_BAUD_RATES',
    'resolve_platform',
    'StreamHandle',
    'SerialStreamHandle',
    'open_handle',
    'CommandResult',
    'run_command',
    'ErrorKind',
    'ModemPortError',
    'SerialPortError',
    'UnsupportedPlatformError',
    'MissingDependencyError',
    'InvalidStateError',
    'InvalidDeviceError',
    'InvalidBaudRateError',
    'ConfigurationFailedError',
    'InvalidModeError',
    'DeviceOpenFailedError',
    'WriteFailedError',
    'ReadFailedError',
    'DeviceCloseFailedError',
]
