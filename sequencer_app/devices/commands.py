"""
Device command formatting and acknowledgment wait estimates.

Action steps are translated into the control messages understood by the
controller firmware. The same step also yields an estimate of how long
the motion will take, which bounds the acknowledgment wait.
"""

import math
from typing import Any

from ..config.defaults import DefaultConfig
from ..sequence.models import ActionStep, DeviceGroup
from ..utils.time import clamp, is_finite_number

_STEPPER_COMMANDS = {
    "moveTo": "move",
    "step": "step",
}

_STEPPER_PARAMS = {
    "setSpeed": "speed",
    "setAcceleration": "acceleration",
}


def build_device_command(step: ActionStep) -> dict[str, Any]:
    """
    Format an action step as a device control message.

    The correlation id is attached later by the correlator.

    Args:
        step: Validated action step

    Returns:
        Message dictionary ready for the gateway
    """
    group = step.device_group

    if group == DeviceGroup.STEPPERS.value and step.action in _STEPPER_COMMANDS:
        message = _control(step, _STEPPER_COMMANDS[step.action])
        message["value"] = step.value
    elif group == DeviceGroup.STEPPERS.value and step.action in _STEPPER_PARAMS:
        message = _control(step, "setParams")
        message[_STEPPER_PARAMS[step.action]] = step.value
    elif group == DeviceGroup.SERVOS.value and step.action == "setAngle":
        message = _control(step, "setAngle")
        message["value"] = step.value
    else:
        message = {
            "action": step.action,
            "componentId": step.device_id,
            "componentGroup": group,
            "value": step.value,
        }

    if step.speed is not None:
        message["speed"] = step.speed
    if step.acceleration is not None:
        message["acceleration"] = step.acceleration

    return message


def _control(step: ActionStep, command: str) -> dict[str, Any]:
    return {
        "action": "control",
        "componentGroup": step.device_group,
        "id": step.device_id,
        "command": command,
    }


def estimate_motion_ms(step: ActionStep, config: DefaultConfig) -> float:
    """
    Estimate how long the device needs to carry out a step.

    Servos are assumed to travel a full sweep at the requested speed
    percentage since the current angle is unknown. Steppers follow a
    trapezoidal profile over |value| steps, or a triangular one when the
    move is too short to reach cruise speed. Everything else only needs
    the pin settle time.
    """
    group = step.device_group

    if group == DeviceGroup.SERVOS.value and step.action == "setAngle":
        speed_pct = step.speed if step.speed is not None else config.servo.default_speed_pct
        return config.servo.full_sweep_ms * 100.0 / max(speed_pct, 1.0)

    if group == DeviceGroup.STEPPERS.value and step.action in _STEPPER_COMMANDS:
        if not is_finite_number(step.value):
            return config.pin.settle_ms

        distance = abs(float(step.value))
        speed = step.speed if step.speed is not None else config.stepper.default_speed
        accel = (step.acceleration if step.acceleration is not None
                 else config.stepper.default_acceleration)

        if distance >= speed * speed / accel:
            seconds = distance / speed + speed / accel
        else:
            seconds = 2.0 * math.sqrt(distance / accel)
        return seconds * 1000.0

    return config.pin.settle_ms


def ack_timeout_ms(step: ActionStep, config: DefaultConfig) -> float:
    """
    Bounded acknowledgment wait for a step, in nominal milliseconds.

    Motion estimate plus safety margin, clamped to the configured range.
    """
    estimate = estimate_motion_ms(step, config) + config.ack.safety_margin_ms
    return clamp(estimate, config.ack.min_timeout_ms, config.ack.max_timeout_ms)
