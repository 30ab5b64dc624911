"""Platform-specific device naming and line configuration.

Each supported operating system gets one strategy that knows how to probe its
configuration utility, normalize a device identifier and set the line speed.
The strategy is resolved once when a SerialPort is constructed.
"""

from abc import ABC, abstractmethod
from dataclasses import dataclass
from enum import Enum
from typing import List, Optional, Tuple
import logging
import platform as _platform
import re

from modemport.core.command_runner import CommandResult, CommandRunner, run_command
from modemport.core.exceptions import (
    ConfigurationFailedError,
    InvalidDeviceError,
    MissingDependencyError,
    UnsupportedPlatformError
)

logger = logging.getLogger(__name__)

SUPPORTED_BAUD_RATES: Tuple[int, ...] = (
    110, 150, 300, 600, 1200, 2400, 4800, 9600, 19200, 38400,
    57600, 115200, 230400, 460800, 500000, 576000, 921600
)

# COM1, com12, COM3: (trailing colon allowed)
COM_PORT_PATTERN = re.compile(r"^COM(\d+):?$", re.IGNORECASE)


class Platform(Enum):
    """Operating system family."""
    LINUX = "linux"
    MACOS = "macos"
    WINDOWS = "windows"


@dataclass(frozen=True)
class DeviceId:
    """Normalized device identifier.

    Attributes:
        path: Path used to open the device handle
        alias: Short name used by configuration commands (Windows only)
    """
    path: str
    alias: Optional[str] = None


class PlatformStrategy(ABC):
    """Capability set for one operating system."""

    platform: Platform

    def __init__(self, runner: Optional[CommandRunner] = None,
                 command_timeout: Optional[float] = None):
        """Initialize strategy.

        Args:
            runner: Callable executing external commands (default: run_command)
            command_timeout: Timeout in seconds for each external command
        """
        self._runner = runner or run_command
        self.command_timeout = command_timeout

    def _run(self, argv: List[str]) -> CommandResult:
        return self._runner(argv, timeout=self.command_timeout)

    def probe_dependency(self) -> None:
        """Verify required external utilities are installed.

        Raises:
            MissingDependencyError: Utility missing or not runnable
        """

    @abstractmethod
    def normalize_device(self, raw: str) -> DeviceId:
        """Convert a user-supplied identifier into this platform's form.

        Raises:
            InvalidDeviceError: Identifier rejected or device probe failed
        """

    @abstractmethod
    def configuration_command(self, device: DeviceId, baud_rate: int) -> List[str]:
        """Build the command that sets the line speed of ``device``."""

    def configure_line(self, device: DeviceId, baud_rate: int) -> CommandResult:
        """Set the line speed of ``device`` through the platform utility.

        Raises:
            ConfigurationFailedError: Command exited with a non-zero status
        """
        result = self._run(self.configuration_command(device, baud_rate))
        if not result.succeeded:
            raise ConfigurationFailedError(
                f"Failed to configure baud rate {baud_rate}",
                device.path,
                result
            )
        return result

    def __repr__(self) -> str:
        return f"{type(self).__name__}()"


class _SttyStrategy(PlatformStrategy):
    """Shared behavior for platforms configured through ``stty``."""

    # stty flag naming the device: -F on GNU coreutils, -f on BSD
    device_flag: str = "-F"

    def _probe_device(self, path: str) -> DeviceId:
        result = self._run(["stty", self.device_flag, path])
        if not result.succeeded:
            raise InvalidDeviceError(f"Invalid device: {path}", path)
        return DeviceId(path)

    def configuration_command(self, device: DeviceId, baud_rate: int) -> List[str]:
        return ["stty", self.device_flag, device.path, str(baud_rate)]


class LinuxStrategy(_SttyStrategy):
    """Linux: GNU stty, COM names rewritten to /dev/ttyS devices."""

    platform = Platform.LINUX
    device_flag = "-F"

    def probe_dependency(self) -> None:
        if not self._run(["stty", "--version"]).succeeded:
            raise MissingDependencyError("Linux requires the stty command. Please install it.")

    def normalize_device(self, raw: str) -> DeviceId:
        match = COM_PORT_PATTERN.match(raw)
        if match:
            index = int(match.group(1))
            if index < 1:
                raise InvalidDeviceError(f"Invalid device: {raw}", raw)
            path = f"/dev/ttyS{index - 1}"
            logger.debug("Mapped %s to %s", raw, path)
        else:
            path = raw
        return self._probe_device(path)


class MacOSStrategy(_SttyStrategy):
    """macOS: BSD stty, device paths used as given."""

    platform = Platform.MACOS
    device_flag = "-f"

    def normalize_device(self, raw: str) -> DeviceId:
        return self._probe_device(raw)


class WindowsStrategy(PlatformStrategy):
    """Windows: COM names only, configured through ``mode.com``."""

    platform = Platform.WINDOWS

    def normalize_device(self, raw: str) -> DeviceId:
        match = COM_PORT_PATTERN.match(raw)
        if not match:
            raise InvalidDeviceError(f"Invalid device: {raw}", raw)
        alias = f"COM{int(match.group(1))}"
        return DeviceId(path=f"\\\\.\\{alias}", alias=alias)

    def configuration_command(self, device: DeviceId, baud_rate: int) -> List[str]:
        # Data bits, parity and stop bits are fixed at 8N1
        # CreateProcess resolves a bare name to .exe only; the utility is mode.com
        return [
            "mode.com",
            device.alias or device.path,
            f"BAUD={baud_rate}",
            "PARITY=N",
            "DATA=8",
            "STOP=1"
        ]


_STRATEGIES = (
    ("Linux", LinuxStrategy),
    ("Darwin", MacOSStrategy),
    ("Windows", WindowsStrategy),
)


def resolve_platform(system_name: Optional[str] = None,
                     runner: Optional[CommandRunner] = None,
                     command_timeout: Optional[float] = None) -> PlatformStrategy:
    """Select and verify the strategy for the running system.

    Args:
        system_name: System identification string (default: platform.system())
        runner: Command runner handed to the strategy
        command_timeout: Timeout for each external command

    Returns:
        Strategy whose dependency probe has already passed

    Raises:
        UnsupportedPlatformError: System is not Linux, Darwin or Windows
        MissingDependencyError: Required utility missing
    """
    if system_name is None:
        system_name = _platform.system()

    for prefix, strategy_class in _STRATEGIES:
        if system_name.startswith(prefix):
            strategy = strategy_class(runner=runner, command_timeout=command_timeout)
            strategy.probe_dependency()
            logger.debug("Resolved platform %s for %r", strategy.platform.value, system_name)
            return strategy

    raise UnsupportedPlatformError(f"Unsupported operating system: {system_name}")
