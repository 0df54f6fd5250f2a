"""Pytest configuration and shared fixtures."""

from datetime import datetime, timezone
from typing import Any, Dict

import pytest

from sequencer_app.config.defaults import (
    AckParams,
    DefaultConfig,
    LoggingParams,
    PinMotionParams,
    PlaybackParams,
    ServoMotionParams,
    StepperMotionParams,
)
from sequencer_app.devices.loopback import LoopbackGateway
from sequencer_app.sequence.models import ActionStep, DelayStep, Sequence


@pytest.fixture
def sample_sequence_document() -> Dict[str, Any]:
    """Sequence document in the shape saved by the recorder."""
    return {
        "id": "seq_pick_place",
        "name": "Pick and place",
        "description": "Lift the part and drop it in the bin",
        "steps": [
            {
                "id": "step_1",
                "type": "action",
                "deviceId": "gripper_servo",
                "deviceComponentGroup": "servos",
                "action": "setAngle",
                "value": 90,
            },
            {"id": "step_2", "type": "delay", "duration": 250},
            {
                "id": "step_3",
                "type": "action",
                "deviceId": "z_axis",
                "deviceComponentGroup": "steppers",
                "action": "moveTo",
                "value": 1200,
                "speed": 800,
                "acceleration": 400,
            },
        ],
        "createdAt": "2024-03-01T10:00:00.000Z",
        "updatedAt": "2024-03-02T08:30:00.000Z",
    }


@pytest.fixture
def delay_sequence() -> Sequence:
    """Three short delays totalling 150ms."""
    return Sequence(
        id="seq_delays",
        name="Delays",
        steps=[
            DelayStep(id="d1", duration_ms=50),
            DelayStep(id="d2", duration_ms=50),
            DelayStep(id="d3", duration_ms=50),
        ],
    )


@pytest.fixture
def servo_sequence() -> Sequence:
    """Delay followed by a servo move."""
    return Sequence(
        id="seq_servo",
        name="Servo sweep",
        steps=[
            DelayStep(id="d1", duration_ms=1000),
            ActionStep(
                id="a1",
                device_id="servo1",
                device_group="servos",
                action="setAngle",
                value=90,
            ),
        ],
    )


@pytest.fixture
def fast_config() -> DefaultConfig:
    """Configuration with short acknowledgment waits for tests."""
    return DefaultConfig(
        playback=PlaybackParams(),
        ack=AckParams(safety_margin_ms=50.0, min_timeout_ms=20.0, max_timeout_ms=500.0),
        servo=ServoMotionParams(full_sweep_ms=20.0),
        stepper=StepperMotionParams(default_speed=10000.0, default_acceleration=100000.0),
        pin=PinMotionParams(settle_ms=5.0),
        logging=LoggingParams(),
    )


@pytest.fixture
def gateway() -> LoopbackGateway:
    """Loopback device that acknowledges after 10ms."""
    return LoopbackGateway(ack_delay_ms=10.0)


@pytest.fixture
def silent_gateway() -> LoopbackGateway:
    """Loopback device that never acknowledges."""
    return LoopbackGateway(auto_ack=False)


@pytest.fixture
def fixed_timestamp() -> datetime:
    return datetime(2024, 3, 1, 10, 0, 0, tzinfo=timezone.utc)
