"""Unit tests for configuration models, schema validation and ConfigManager."""

import dataclasses
import os

import pytest
import yaml

from modemport.config import (
    Config,
    ConfigManager,
    FlushFailurePolicy,
    LogLevel,
    LoggingConfig,
    SerialConfig,
    get_default_config
)
from modemport.config.config_schema import ConfigSchema


@pytest.fixture
def isolated_env(tmp_path, monkeypatch):
    """No config files on the search path and no MODEMPORT_ variables."""
    home = tmp_path / "home"
    work = tmp_path / "work"
    home.mkdir()
    work.mkdir()
    monkeypatch.setenv("HOME", str(home))
    monkeypatch.chdir(work)
    for name in list(os.environ):
        if name.startswith("MODEMPORT_"):
            monkeypatch.delenv(name)
    ConfigManager.reset()
    yield tmp_path
    ConfigManager.reset()


def write_yaml(path, data):
    path.parent.mkdir(parents=True, exist_ok=True)
    path.write_text(yaml.safe_dump(data), encoding="utf-8")
    return path


class TestConfigModels:
    """Test dataclass defaults and serialization."""

    def test_defaults(self):
        config = get_default_config()

        assert config.serial.default_baud == 9600
        assert config.serial.default_mode == "r+b"
        assert config.serial.auto_flush is True
        assert config.serial.flush_failure_policy is FlushFailurePolicy.DROP
        assert config.logging.enabled is False
        assert config.logging.level is LogLevel.INFO

    def test_defaults_match_dataclass_defaults(self):
        assert get_default_config() == Config()

    def test_frozen(self):
        with pytest.raises(dataclasses.FrozenInstanceError):
            SerialConfig().default_baud = 115200

    def test_to_dict_converts_enums(self):
        config = Config(
            serial=SerialConfig(flush_failure_policy=FlushFailurePolicy.RETAIN),
            logging=LoggingConfig(level=LogLevel.DEBUG)
        )

        result = config.to_dict()

        assert result["serial"]["flush_failure_policy"] == "retain"
        assert result["logging"]["level"] == "DEBUG"
        assert result["serial"]["default_baud"] == 9600


class TestConfigSchema:
    """Test JSON schema validation and error formatting."""

    def test_defaults_are_valid(self):
        is_valid, errors = ConfigSchema.validate_config(get_default_config().to_dict())

        assert is_valid is True
        assert errors == []

    def test_invalid_baud_rate(self):
        is_valid, errors = ConfigSchema.validate_config({"serial": {"default_baud": 12345}})

        assert is_valid is False
        assert len(errors) == 1
        assert "Section 'serial', field 'default_baud'" in errors[0]
        assert "got 12345" in errors[0]

    def test_wrong_type(self):
        is_valid, errors = ConfigSchema.validate_config({"serial": {"auto_flush": "sometimes"}})

        assert is_valid is False
        assert "Expected type boolean" in errors[0]

    def test_below_minimum(self):
        is_valid, errors = ConfigSchema.validate_config({"serial": {"send_wait": -1}})

        assert is_valid is False
        assert "Value must be >= 0" in errors[0]

    @pytest.mark.parametrize("mode,valid", [("r+b", True), ("w", True), ("rw", False)])
    def test_mode_pattern(self, mode, valid):
        is_valid, _ = ConfigSchema.validate_config({"serial": {"default_mode": mode}})

        assert is_valid is valid

    def test_max_pending_bytes_must_be_positive(self):
        is_valid, errors = ConfigSchema.validate_config({"serial": {"max_pending_bytes": 0}})

        assert is_valid is False
        assert "Value must be >= 1" in errors[0]

    def test_unknown_field_strict(self):
        is_valid, errors = ConfigSchema.validate_config({"serial": {"parity": "even"}})

        assert is_valid is False
        assert errors == ["Section 'serial': Unknown fields ['parity'] not allowed"]

    def test_unknown_field_permissive(self):
        is_valid, errors = ConfigSchema.validate_config({"serial": {"parity": "even"}}, strict=False)

        assert is_valid is True
        assert errors == []

    def test_permissive_does_not_mutate_schema(self):
        ConfigSchema.validate_config({}, strict=False)

        assert ConfigSchema.get_schema()["additionalProperties"] is False


class TestConfigManager:
    """Test layered configuration loading."""

    def test_instance_before_initialize(self, isolated_env):
        assert ConfigManager.is_initialized() is False
        with pytest.raises(RuntimeError):
            ConfigManager.instance()

    def test_constructor_guard(self, isolated_env):
        ConfigManager.initialize()

        with pytest.raises(RuntimeError):
            ConfigManager()

    def test_defaults_only(self, isolated_env):
        manager = ConfigManager.initialize()

        assert manager.get_config() == get_default_config()
        assert manager.config_path is None
        assert manager.get_source("serial.default_baud") == "default"
        assert ConfigManager.instance() is manager

    def test_explicit_file(self, isolated_env):
        path = write_yaml(isolated_env / "custom.yaml", {
            "serial": {"default_baud": 115200, "flush_failure_policy": "retain"},
            "logging": {"enabled": True, "level": "DEBUG"}
        })

        manager = ConfigManager.initialize(config_path=path)
        config = manager.get_config()

        assert config.serial.default_baud == 115200
        assert config.serial.flush_failure_policy is FlushFailurePolicy.RETAIN
        assert config.serial.send_wait == 0.1
        assert config.logging.enabled is True
        assert config.logging.level is LogLevel.DEBUG
        assert manager.config_path == path
        assert manager.get_source("serial.default_baud") == "file"
        assert manager.get_source("serial.send_wait") == "default"

    def test_searches_working_directory(self, isolated_env):
        write_yaml(isolated_env / "work" / "modemport.yaml", {"serial": {"default_baud": 57600}})

        config = ConfigManager.initialize().get_config()

        assert config.serial.default_baud == 57600

    def test_searches_home_directory(self, isolated_env):
        write_yaml(isolated_env / "home" / ".modemport" / "config.yaml", {"serial": {"auto_flush": False}})

        config = ConfigManager.initialize().get_config()

        assert config.serial.auto_flush is False

    def test_empty_file(self, isolated_env):
        path = isolated_env / "empty.yaml"
        path.write_text("", encoding="utf-8")

        config = ConfigManager.initialize(config_path=path).get_config()

        assert config == get_default_config()

    def test_malformed_explicit_file_raises(self, isolated_env):
        path = isolated_env / "broken.yaml"
        path.write_text("serial: [unclosed", encoding="utf-8")

        with pytest.raises(yaml.YAMLError):
            ConfigManager.initialize(config_path=path)

    def test_malformed_searched_file_falls_back(self, isolated_env):
        (isolated_env / "work" / "modemport.yaml").write_text("serial: [unclosed", encoding="utf-8")

        manager = ConfigManager.initialize()

        assert manager.get_config() == get_default_config()
        assert manager.config_path is None

    def test_invalid_file_raises(self, isolated_env):
        path = write_yaml(isolated_env / "bad.yaml", {"serial": {"default_baud": 12345}})

        with pytest.raises(ValueError) as exc_info:
            ConfigManager.initialize(config_path=path)

        assert "default_baud" in str(exc_info.value)

    def test_skip_validation(self, isolated_env):
        path = write_yaml(isolated_env / "bad.yaml", {"serial": {"default_baud": 12345}})

        config = ConfigManager.initialize(config_path=path, skip_validation=True).get_config()

        assert config.serial.default_baud == 12345

    def test_env_overrides_file(self, isolated_env, monkeypatch):
        path = write_yaml(isolated_env / "custom.yaml", {"serial": {"default_baud": 115200}})
        monkeypatch.setenv("MODEMPORT_SERIAL_DEFAULT_BAUD", "19200")
        monkeypatch.setenv("MODEMPORT_SERIAL_AUTO_FLUSH", "off")
        monkeypatch.setenv("MODEMPORT_SERIAL_SEND_WAIT", "0.5")
        monkeypatch.setenv("MODEMPORT_LOGGING_LEVEL", "WARNING")

        manager = ConfigManager.initialize(config_path=path)
        config = manager.get_config()

        assert config.serial.default_baud == 19200
        assert config.serial.auto_flush is False
        assert config.serial.send_wait == 0.5
        assert config.logging.level is LogLevel.WARNING
        assert manager.get_source("serial.default_baud") == "env"

    def test_lowercase_level_from_env(self, isolated_env, monkeypatch):
        monkeypatch.setenv("MODEMPORT_LOGGING_LEVEL", "debug")

        config = ConfigManager.initialize().get_config()

        assert config.logging.level is LogLevel.DEBUG

    def test_lowercase_level_from_file(self, isolated_env):
        path = write_yaml(isolated_env / "custom.yaml", {"logging": {"level": "warning"}})

        config = ConfigManager.initialize(config_path=path).get_config()

        assert config.logging.level is LogLevel.WARNING

    def test_max_pending_bytes_from_file(self, isolated_env):
        path = write_yaml(isolated_env / "custom.yaml", {"serial": {"max_pending_bytes": 1024}})

        config = ConfigManager.initialize(config_path=path).get_config()

        assert config.serial.max_pending_bytes == 1024

    def test_env_value_without_section_ignored(self, isolated_env, monkeypatch):
        monkeypatch.setenv("MODEMPORT_DEBUG", "1")

        config = ConfigManager.initialize().get_config()

        assert config == get_default_config()

    @pytest.mark.parametrize("raw,expected", [
        ("true", True),
        ("Yes", True),
        ("OFF", False),
        ("42", 42),
        ("0.25", 0.25),
        ("/dev/ttyUSB0", "/dev/ttyUSB0"),
    ])
    def test_parse_env_value(self, raw, expected):
        assert ConfigManager._parse_env_value(raw) == expected

    def test_reinitialize_replaces_config(self, isolated_env, monkeypatch):
        first = ConfigManager.initialize()
        monkeypatch.setenv("MODEMPORT_SERIAL_DEFAULT_BAUD", "38400")

        second = ConfigManager.initialize()

        assert second is first
        assert second.get_config().serial.default_baud == 38400
