"""Tests for device command formatting and wait estimates."""

import pytest

from sequencer_app.config.defaults import get_default_config
from sequencer_app.devices.commands import ack_timeout_ms, build_device_command, estimate_motion_ms
from sequencer_app.sequence.models import ActionStep


def _step(group, action, value=None, **kwargs):
    return ActionStep(id="a1", device_id="dev1", device_group=group, action=action, value=value, **kwargs)


class TestBuildDeviceCommand:
    """Test translation of action steps into controller messages."""

    def test_stepper_move_to(self):
        command = build_device_command(_step("steppers", "moveTo", 1200))

        assert command == {
            "action": "control",
            "componentGroup": "steppers",
            "id": "dev1",
            "command": "move",
            "value": 1200,
        }

    def test_stepper_step(self):
        command = build_device_command(_step("steppers", "step", -50))

        assert command["command"] == "step"
        assert command["value"] == -50

    @pytest.mark.parametrize("action,param", [("setSpeed", "speed"), ("setAcceleration", "acceleration")])
    def test_stepper_set_params(self, action, param):
        command = build_device_command(_step("steppers", action, 600))

        assert command["command"] == "setParams"
        assert command[param] == 600
        assert "value" not in command

    def test_servo_set_angle(self):
        command = build_device_command(_step("servos", "setAngle", 45, speed=50))

        assert command == {
            "action": "control",
            "componentGroup": "servos",
            "id": "dev1",
            "command": "setAngle",
            "value": 45,
            "speed": 50,
        }

    def test_generic_component(self):
        """Test the fallback shape used for pins and unknown actions."""
        command = build_device_command(_step("pins", "digitalWrite", 1))

        assert command == {
            "action": "digitalWrite",
            "componentId": "dev1",
            "componentGroup": "pins",
            "value": 1,
        }

    def test_unknown_servo_action_uses_fallback(self):
        command = build_device_command(_step("servos", "detach"))

        assert command["action"] == "detach"
        assert command["componentId"] == "dev1"

    def test_no_command_id_attached(self):
        assert "commandId" not in build_device_command(_step("servos", "setAngle", 10))


class TestMotionEstimate:
    """Test acknowledgment wait estimates."""

    def test_servo_full_sweep_scaled_by_speed(self):
        config = get_default_config()

        assert estimate_motion_ms(_step("servos", "setAngle", 90), config) == 1000.0
        assert estimate_motion_ms(_step("servos", "setAngle", 90, speed=50), config) == 2000.0

    def test_stepper_trapezoid(self):
        """Long move: cruise time plus one acceleration ramp."""
        config = get_default_config()
        step = _step("steppers", "moveTo", 4000, speed=1000, acceleration=500)

        # 4000 >= 1000^2/500 so 4000/1000 + 1000/500 seconds
        assert estimate_motion_ms(step, config) == pytest.approx(6000.0)

    def test_stepper_triangle(self):
        """Short move never reaches cruise speed."""
        config = get_default_config()
        step = _step("steppers", "step", -125, speed=1000, acceleration=500)

        # 2 * sqrt(125 / 500) seconds
        assert estimate_motion_ms(step, config) == pytest.approx(1000.0)

    def test_pin_settle(self):
        config = get_default_config()

        assert estimate_motion_ms(_step("relays", "toggle"), config) == config.pin.settle_ms

    def test_timeout_adds_margin_and_clamps(self):
        config = get_default_config()

        assert ack_timeout_ms(_step("pins", "digitalWrite", 1), config) == 2050.0
        huge = _step("steppers", "moveTo", 10_000_000, speed=1000, acceleration=500)
        assert ack_timeout_ms(huge, config) == config.ack.max_timeout_ms
