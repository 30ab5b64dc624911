"""Shared fixtures: scripted command runner and in-memory stream handle."""

from typing import Dict, List, Optional

import pytest

from modemport.config.config_models import SerialConfig
from modemport.core.command_runner import CommandResult
from modemport.core.handle import StreamHandle


class FakeRunner:
    """Command runner returning scripted exit codes.

    Commands are matched on their space-joined form; anything not scripted
    exits with ``default_exit``.
    """

    def __init__(self, default_exit: int = 0, results: Optional[Dict[str, int]] = None):
        self.default_exit = default_exit
        self.results = dict(results or {})
        self.calls: List[List[str]] = []

    def __call__(self, argv, timeout=None) -> CommandResult:
        command = list(argv)
        self.calls.append(command)
        exit_code = self.results.get(" ".join(command), self.default_exit)
        return CommandResult(exit_code, b"", b"" if exit_code == 0 else b"failed")

    def commands(self) -> List[str]:
        return [" ".join(call) for call in self.calls]


class FakeHandle(StreamHandle):
    """In-memory handle: ``incoming`` feeds reads, writes land in ``written``."""

    def __init__(self, mode: str = "r+b", incoming: bytes = b""):
        super().__init__(mode)
        self.incoming = bytearray(incoming)
        self.written = bytearray()
        self.read_sizes: List[int] = []
        self.blocking_calls: List[bool] = []
        self.write_error: Optional[Exception] = None
        self.short_write: Optional[int] = None
        self.close_error: Optional[Exception] = None
        self._open = True

    @property
    def is_open(self) -> bool:
        return self._open

    def feed(self, data: bytes) -> None:
        self.incoming.extend(data)

    def read(self, max_bytes: int) -> bytes:
        self._check_readable()
        self.read_sizes.append(max_bytes)
        chunk = bytes(self.incoming[:max_bytes])
        del self.incoming[:max_bytes]
        return chunk

    def write(self, data: bytes) -> int:
        self._check_writable()
        if self.write_error is not None:
            raise self.write_error
        if self.short_write is not None:
            self.written.extend(data[:self.short_write])
            return self.short_write
        self.written.extend(data)
        return len(data)

    def set_blocking(self, enabled: bool) -> None:
        self.blocking_calls.append(enabled)

    def close(self) -> None:
        if self.close_error is not None:
            raise self.close_error
        self._open = False


class FakeHandleFactory:
    """Handle factory recording open calls; hands out one FakeHandle per open."""

    def __init__(self, incoming: bytes = b""):
        self.incoming = incoming
        self.calls: List[dict] = []
        self.handles: List[FakeHandle] = []
        self.error: Optional[Exception] = None

    def __call__(self, path, mode, baud_rate=9600, exclusive=None) -> FakeHandle:
        self.calls.append({"path": path, "mode": mode, "baud_rate": baud_rate, "exclusive": exclusive})
        if self.error is not None:
            raise self.error
        handle = FakeHandle(mode, self.incoming)
        self.handles.append(handle)
        return handle

    @property
    def last(self) -> FakeHandle:
        return self.handles[-1]


@pytest.fixture
def runner():
    return FakeRunner()


@pytest.fixture
def handle_factory():
    return FakeHandleFactory()


@pytest.fixture
def fast_config():
    """Serial config without the post-send delay."""
    return SerialConfig(send_wait=0)


@pytest.fixture
def make_port(runner, handle_factory, fast_config):
    """Build a SerialPort for a given system name with fake collaborators."""
    from modemport.core.serial_port import SerialPort

    created = []

    def _make(system_name: str = "Linux", **kwargs):
        kwargs.setdefault("config", fast_config)
        kwargs.setdefault("runner", runner)
        kwargs.setdefault("handle_factory", handle_factory)
        port = SerialPort(system_name=system_name, **kwargs)
        created.append(port)
        return port

    yield _make

    for port in created:
        for handle in handle_factory.handles:
            handle.close_error = None
        port.dispose()


@pytest.fixture
def make_handle():
    """Build a standalone FakeHandle."""
    def _make(mode: str = "r+b", incoming: bytes = b""):
        return FakeHandle(mode, incoming)
    return _make
