"""Unit tests for configuration management."""

import math
from pathlib import Path

import pytest
import yaml

from sequencer_app.config.defaults import build_engine_config, get_default_config
from sequencer_app.config.loader import ConfigLoader
from sequencer_app.config.validation import ConfigValidator


class TestDefaultConfig:
    """Test suite for default configuration."""

    def test_default_config_creation(self) -> None:
        config = get_default_config()

        assert config.playback.min_speed == 0.25
        assert config.playback.max_speed == 2.0
        assert config.ack.max_timeout_ms == 30000.0
        assert config.ack.timeout_policy == "soft"

    def test_build_engine_config_keeps_missing_defaults(self) -> None:
        config = build_engine_config({"ack": {"timeout_policy": "fail"}})

        assert config.ack.timeout_policy == "fail"
        assert config.ack.safety_margin_ms == 2000.0
        assert config.servo.full_sweep_ms == 1000.0

    def test_build_engine_config_rejects_unknown_keys(self) -> None:
        with pytest.raises(TypeError):
            build_engine_config({"playback": {"warp_speed": 9}})


class TestConfigLoader:
    """Test suite for configuration loader."""

    def test_config_loader_creation(self) -> None:
        loader = ConfigLoader.create()

        assert isinstance(loader.config_dir, Path)
        assert loader.config_dir.name == "config"

    def test_missing_directory_yields_defaults(self, tmp_path) -> None:
        loader = ConfigLoader.create(tmp_path / "absent")

        assert loader.load() == get_default_config()

    def test_three_tier_precedence(self, tmp_path) -> None:
        """Run overrides beat device overrides, which beat engine.yaml."""
        (tmp_path / "engine.yaml").write_text(yaml.safe_dump({
            "ack": {"safety_margin_ms": 1000, "min_timeout_ms": 100},
        }))
        (tmp_path / "devices.yaml").write_text(yaml.safe_dump({
            "devices": {"z_axis": {"ack": {"safety_margin_ms": 4000}}},
        }))
        loader = ConfigLoader.create(tmp_path)

        site = loader.merge_config()
        device = loader.merge_config("z_axis")
        run = loader.merge_config("z_axis", {"ack": {"safety_margin_ms": 9000}})

        assert site["ack"]["safety_margin_ms"] == 1000
        assert device["ack"]["safety_margin_ms"] == 4000
        assert device["ack"]["min_timeout_ms"] == 100
        assert run["ack"]["safety_margin_ms"] == 9000

    def test_shipped_config_is_valid(self) -> None:
        """The YAML files in the repository pass validation."""
        loader = ConfigLoader.create()

        assert ConfigValidator.validate_config(loader.merge_config()) == []
        assert loader.load(device_id="gripper_servo").servo.full_sweep_ms == 1800


class TestConfigValidator:
    """Test suite for configuration validation."""

    def test_valid_playback_params(self) -> None:
        params = {"min_speed": 0.25, "max_speed": 2.0, "default_speed": 1.0, "inbox_size": 64}

        assert ConfigValidator.validate_playback_params(params) == []

    def test_inverted_speed_range(self) -> None:
        errors = ConfigValidator.validate_playback_params({"min_speed": 3.0, "max_speed": 2.0})

        assert [e.field for e in errors] == ["min_speed"]

    def test_default_speed_outside_range(self) -> None:
        errors = ConfigValidator.validate_playback_params(
            {"min_speed": 0.5, "max_speed": 2.0, "default_speed": 4.0}
        )

        assert errors[0].field == "default_speed"

    def test_invalid_timeout_policy(self) -> None:
        errors = ConfigValidator.validate_ack_params({"timeout_policy": "retry"})

        assert len(errors) == 1
        assert errors[0].value == "retry"

    def test_min_timeout_above_max(self) -> None:
        errors = ConfigValidator.validate_ack_params({"min_timeout_ms": 500, "max_timeout_ms": 100})

        assert errors[0].field == "min_timeout_ms"

    def test_motion_params_must_be_positive(self) -> None:
        errors = ConfigValidator.validate_config({"servo": {"full_sweep_ms": 0}})

        assert errors[0].field == "servo.full_sweep_ms"

    def test_logging_level(self) -> None:
        assert ConfigValidator.validate_logging_params({"level": "debug"}) == []
        assert len(ConfigValidator.validate_logging_params({"level": "LOUD"})) == 1

    def test_non_boolean_flag(self) -> None:
        errors = ConfigValidator.validate_ack_params({"fail_on_device_error": "yes"})

        assert errors[0].field == "fail_on_device_error"

    def test_nan_is_not_a_positive_number(self) -> None:
        errors = ConfigValidator.validate_playback_params({"max_speed": math.nan})

        assert errors
