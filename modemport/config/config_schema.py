"""JSON Schema validation for modemport configuration.

Provides schema definition and validation logic with clear error messages for
configuration validation.
"""

from typing import List, Tuple, Dict, Any
import copy

import jsonschema
from jsonschema import Draft7Validator

from modemport.core.platform_strategy import SUPPORTED_BAUD_RATES
from modemport.core.handle import MODE_PATTERN


class ConfigSchema:
    """Configuration schema validator using JSON Schema Draft 7.

    Example:
        >>> is_valid, errors = ConfigSchema.validate_config({"serial": {"default_baud": 9600}})
        >>> is_valid
        True
    """

    VALID_BAUD_RATES = list(SUPPORTED_BAUD_RATES)

    @staticmethod
    def get_schema() -> Dict[str, Any]:
        """Get JSON Schema Draft 7 for configuration validation."""
        return {
            "$schema": "http://json-schema.org/draft-07/schema#",
            "title": "modemport Configuration",
            "type": "object",
            "properties": {
                "serial": {
                    "type": "object",
                    "description": "Serial port controller settings",
                    "properties": {
                        "default_baud": {
                            "type": "integer",
                            "description": "Line speed used when opening an unconfigured device",
                            "enum": ConfigSchema.VALID_BAUD_RATES
                        },
                        "default_mode": {
                            "type": "string",
                            "description": "Mode used by open() when none is given",
                            "pattern": MODE_PATTERN.pattern
                        },
                        "send_wait": {
                            "type": "number",
                            "description": "Seconds to wait after each send",
                            "minimum": 0,
                            "maximum": 60
                        },
                        "auto_flush": {
                            "type": "boolean",
                            "description": "Flush the write buffer on every send"
                        },
                        "read_chunk_size": {
                            "type": "integer",
                            "description": "Maximum bytes requested per handle read",
                            "minimum": 1,
                            "maximum": 65536
                        },
                        "flush_failure_policy": {
                            "type": "string",
                            "description": "Buffer handling when a flush fails",
                            "enum": ["drop", "retain"]
                        },
                        "max_pending_bytes": {
                            "type": "integer",
                            "description": "Upper bound on bytes held in the write buffer",
                            "minimum": 1
                        },
                        "command_timeout": {
                            "type": "integer",
                            "description": "Timeout for external configuration commands in seconds",
                            "minimum": 1,
                            "maximum": 300
                        },
                        "exclusive": {
                            "type": "boolean",
                            "description": "Request exclusive access to the device (POSIX)"
                        },
                        "encoding": {
                            "type": "string",
                            "description": "Text encoding for str data and read_line",
                            "minLength": 1
                        }
                    },
                    "additionalProperties": False
                },
                "logging": {
                    "type": "object",
                    "description": "Communication logging settings",
                    "properties": {
                        "enabled": {"type": "boolean"},
                        "level": {
                            "type": "string",
                            "enum": ["DEBUG", "INFO", "WARNING", "ERROR"]
                        },
                        "log_to_file": {"type": "boolean"},
                        "log_to_console": {"type": "boolean"},
                        "log_file_path": {"type": ["string", "null"]},
                        "max_file_size_mb": {
                            "type": "integer",
                            "minimum": 1,
                            "maximum": 1024
                        },
                        "backup_count": {
                            "type": "integer",
                            "minimum": 0,
                            "maximum": 100
                        }
                    },
                    "additionalProperties": False
                }
            },
            "additionalProperties": False
        }

    @staticmethod
    def validate_config(config: Dict[str, Any], strict: bool = True) -> Tuple[bool, List[str]]:
        """Validate configuration dictionary against schema.

        Args:
            config: Configuration dictionary to validate.
            strict: If True, reject unknown fields.

        Returns:
            Tuple of (is_valid, error_messages).
        """
        schema = ConfigSchema.get_schema()
        if not strict:
            schema = ConfigSchema._make_permissive(schema)

        validator = Draft7Validator(schema)
        errors = [
            ConfigSchema._format_error(error)
            for error in sorted(validator.iter_errors(config), key=lambda e: list(e.path))
        ]
        return len(errors) == 0, errors

    @staticmethod
    def _make_permissive(schema: Dict[str, Any]) -> Dict[str, Any]:
        permissive_schema = copy.deepcopy(schema)

        def remove_additional_properties(obj):
            if isinstance(obj, dict):
                obj.pop("additionalProperties", None)
                for value in obj.values():
                    remove_additional_properties(value)

        remove_additional_properties(permissive_schema)
        return permissive_schema

    @staticmethod
    def _format_error(error: jsonschema.exceptions.ValidationError) -> str:
        """Format validation error with section and field names.

        Example:
            "Section 'serial', field 'default_baud': Expected one of [110, ...], got 12345"
        """
        path_parts = list(error.path)
        if not path_parts:
            section, field = "root", "configuration"
        elif len(path_parts) == 1:
            section, field = path_parts[0], "section"
        else:
            section = path_parts[0]
            field = ".".join(str(p) for p in path_parts[1:])

        if error.validator == "enum":
            return (f"Section '{section}', field '{field}': Expected one of "
                    f"{error.validator_value}, got {error.instance!r}")
        elif error.validator == "type":
            return (f"Section '{section}', field '{field}': Expected type "
                    f"{error.validator_value}, got {type(error.instance).__name__} "
                    f"(value: {error.instance!r})")
        elif error.validator in ("minimum", "maximum"):
            bound = ">=" if error.validator == "minimum" else "<="
            return (f"Section '{section}', field '{field}': Value must be {bound} "
                    f"{error.validator_value}, got {error.instance!r}")
        elif error.validator == "additionalProperties":
            known = set(error.schema.get("properties", {}).keys())
            extra = sorted(set(error.instance.keys()) - known)
            return f"Section '{section}': Unknown fields {extra} not allowed"
        return f"Section '{section}', field '{field}': {error.message}"
