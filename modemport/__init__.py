"""modemport: cross-platform serial port control for AT-command modems."""

from modemport.core import (
    SerialPort,
    DeviceState,
    Platform,
    ErrorKind,
    SerialPortError,
    SUPPORTED_BAUD_RATES
)

__all__ = [
    'SerialPort',
    'DeviceState',
    'Platform',
    'ErrorKind',
    'SerialPortError',
    'SUPPORTED_BAUD_RATES',
]

__version__ = "1.0.0"
