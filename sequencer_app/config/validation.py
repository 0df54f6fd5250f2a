"""Configuration validation utilities."""

import math
from dataclasses import dataclass
from typing import Any

TIMEOUT_POLICIES = ("soft", "fail")
LOG_LEVELS = ("DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL")


@dataclass(frozen=True)
class ValidationError:
    """Represents a configuration validation error."""
    field: str
    message: str
    value: Any


def _is_number(value: Any) -> bool:
    return isinstance(value, (int, float)) and not isinstance(value, bool) and math.isfinite(value)


class ConfigValidator:
    """Validates configuration parameters."""

    @staticmethod
    def validate_playback_params(params: dict[str, Any]) -> list[ValidationError]:
        """Validate playback speed parameters."""
        errors = []

        for name in ("min_speed", "max_speed", "default_speed"):
            if name in params:
                value = params[name]
                if not _is_number(value) or value <= 0:
                    errors.append(ValidationError(
                        field=name,
                        message="Must be a positive number",
                        value=value
                    ))

        min_speed = params.get("min_speed")
        max_speed = params.get("max_speed")
        if _is_number(min_speed) and _is_number(max_speed) and min_speed > max_speed:
            errors.append(ValidationError(
                field="min_speed",
                message="Must not exceed max_speed",
                value=min_speed
            ))

        default_speed = params.get("default_speed")
        if (_is_number(default_speed) and _is_number(min_speed) and _is_number(max_speed)
                and not min_speed <= default_speed <= max_speed):
            errors.append(ValidationError(
                field="default_speed",
                message="Must lie between min_speed and max_speed",
                value=default_speed
            ))

        if "inbox_size" in params:
            value = params["inbox_size"]
            if not isinstance(value, int) or isinstance(value, bool) or value <= 0:
                errors.append(ValidationError(
                    field="inbox_size",
                    message="Must be a positive integer",
                    value=value
                ))

        return errors

    @staticmethod
    def validate_ack_params(params: dict[str, Any]) -> list[ValidationError]:
        """Validate acknowledgment wait parameters."""
        errors = []

        for name in ("safety_margin_ms", "min_timeout_ms", "max_timeout_ms"):
            if name in params:
                value = params[name]
                if not _is_number(value) or value < 0:
                    errors.append(ValidationError(
                        field=name,
                        message="Must be a non-negative number",
                        value=value
                    ))

        min_timeout = params.get("min_timeout_ms")
        max_timeout = params.get("max_timeout_ms")
        if _is_number(min_timeout) and _is_number(max_timeout) and min_timeout > max_timeout:
            errors.append(ValidationError(
                field="min_timeout_ms",
                message="Must not exceed max_timeout_ms",
                value=min_timeout
            ))

        if "timeout_policy" in params:
            value = params["timeout_policy"]
            if value not in TIMEOUT_POLICIES:
                errors.append(ValidationError(
                    field="timeout_policy",
                    message=f"Must be one of {', '.join(TIMEOUT_POLICIES)}",
                    value=value
                ))

        if "fail_on_device_error" in params:
            value = params["fail_on_device_error"]
            if not isinstance(value, bool):
                errors.append(ValidationError(
                    field="fail_on_device_error",
                    message="Must be a boolean",
                    value=value
                ))

        return errors

    @staticmethod
    def validate_motion_params(section: str, params: dict[str, Any]) -> list[ValidationError]:
        """Validate a motion estimate section; every value must be a positive number."""
        errors = []

        for name, value in params.items():
            if not _is_number(value) or value <= 0:
                errors.append(ValidationError(
                    field=f"{section}.{name}",
                    message="Must be a positive number",
                    value=value
                ))

        return errors

    @staticmethod
    def validate_logging_params(params: dict[str, Any]) -> list[ValidationError]:
        """Validate logging parameters."""
        errors = []

        if "level" in params:
            value = params["level"]
            if not isinstance(value, str) or value.upper() not in LOG_LEVELS:
                errors.append(ValidationError(
                    field="level",
                    message=f"Must be one of {', '.join(LOG_LEVELS)}",
                    value=value
                ))

        for name in ("format_json", "include_caller"):
            if name in params and not isinstance(params[name], bool):
                errors.append(ValidationError(
                    field=name,
                    message="Must be a boolean",
                    value=params[name]
                ))

        return errors

    @staticmethod
    def validate_config(config: dict[str, Any]) -> list[ValidationError]:
        """Validate complete configuration."""
        errors = []

        if "playback" in config:
            errors.extend(ConfigValidator.validate_playback_params(config["playback"]))

        if "ack" in config:
            errors.extend(ConfigValidator.validate_ack_params(config["ack"]))

        for section in ("servo", "stepper", "pin"):
            if section in config:
                errors.extend(ConfigValidator.validate_motion_params(section, config[section]))

        if "logging" in config:
            errors.extend(ConfigValidator.validate_logging_params(config["logging"]))

        return errors
