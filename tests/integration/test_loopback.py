"""Integration tests driving SerialPort over pyserial's loop:// port.

The external line configuration command is scripted; everything from the
handle down is real pyserial.
"""

import pytest

from modemport.config.config_models import LogLevel, SerialConfig
from modemport.core.serial_port import DeviceState, SerialPort
from modemport.logging import CommunicationLogger


@pytest.fixture
def loop_port(runner):
    port = SerialPort(config=SerialConfig(send_wait=0), runner=runner, system_name="Linux")
    port.set_device("loop://")
    port.configure_baud_rate(115200)
    port.open()
    yield port
    port.dispose()


class TestLoopback:
    """End-to-end traffic through a real pyserial handle."""

    def test_open_state(self, loop_port, runner):
        assert loop_port.state == DeviceState.OPENED
        assert loop_port.blocking is False
        assert runner.commands() == ["stty --version", "stty -F loop://", "stty -F loop:// 115200"]

    def test_nothing_available(self, loop_port):
        assert loop_port.read_bytes() == b""

    def test_round_trip(self, loop_port):
        payload = bytes(range(256)) * 2

        loop_port.send(payload)

        assert loop_port.read_bytes(len(payload)) == payload
        assert loop_port.read_bytes() == b""

    def test_partial_read(self, loop_port):
        loop_port.send(b"AT+CSQ\r\n")

        assert loop_port.read_bytes(2) == b"AT"
        assert loop_port.read_bytes() == b"+CSQ\r\n"

    def test_read_line(self, loop_port):
        loop_port.send("\r\nOK\r\n")

        assert loop_port.read_line() == "OK"
        assert loop_port.blocking is False
        assert loop_port.read_bytes() == b"\n"

    def test_buffered_send(self, loop_port):
        loop_port.auto_flush = False
        loop_port.send(b"AT")
        loop_port.send(b"I\r")

        assert loop_port.read_bytes() == b""
        assert loop_port.flush() == 4
        assert loop_port.read_bytes() == b"ATI\r"

    def test_reopen(self, loop_port):
        loop_port.close()
        assert loop_port.state == DeviceState.SET

        loop_port.open()
        loop_port.send(b"AT\r")

        assert loop_port.read_bytes() == b"AT\r"


class TestLoopbackLogging:
    """Communication log of a full session."""

    def test_session_log_file(self, runner, tmp_path):
        log_file = tmp_path / "session.log"
        comm_logger = CommunicationLogger(
            log_level=LogLevel.DEBUG,
            enable_file=True,
            enable_console=False,
            log_file_path=str(log_file)
        )

        with SerialPort(config=SerialConfig(send_wait=0), logger=comm_logger,
                        runner=runner, system_name="Linux") as port:
            port.set_device("loop://")
            port.open()
            port.send(b"ATE0\r\n")
            port.read_line()
        port.dispose()
        comm_logger.close()

        lines = log_file.read_text(encoding="utf-8").splitlines()
        messages = [line.split(" | ")[3] for line in lines]
        assert messages == ["Device set", "Port opened", "Data sent", "Data received", "Port closed"]
        assert "TX 6B: ATE0\\r\\n" in lines[2]
        assert "RX 4B: ATE0" in lines[3]
