#!/usr/bin/env python3
"""
Basic Usage Example - CNC Sequence Execution Engine

Replays a recorded pick-and-place sequence against the in-process
loopback device. It shows how to:
- Load a sequence document
- Start, pause, speed up and resume playback
- Follow progress through sequence events

Run: python examples/basic_usage.py
"""

import asyncio
import json

from sequencer_app.devices.loopback import LoopbackGateway
from sequencer_app.engine import SequenceEngine
from sequencer_app.events.publisher import EventKind, EventRecorder
from sequencer_app.logging import configure_logging
from sequencer_app.persistence.sequence_store import InMemorySequenceRepository
from sequencer_app.sequence.parsers import parse_sequence

SAMPLE_SEQUENCE = {
    "id": "seq_pick_place",
    "name": "Pick and place",
    "steps": [
        {"id": "s1", "type": "action", "deviceId": "gripper_servo",
         "deviceComponentGroup": "servos", "action": "setAngle", "value": 20},
        {"id": "s2", "type": "action", "deviceId": "z_axis",
         "deviceComponentGroup": "steppers", "action": "moveTo", "value": -800,
         "speed": 1200, "acceleration": 600},
        {"id": "s3", "type": "delay", "duration": 600},
        {"id": "s4", "type": "action", "deviceId": "gripper_servo",
         "deviceComponentGroup": "servos", "action": "setAngle", "value": 90},
        {"id": "s5", "type": "action", "deviceId": "vacuum",
         "deviceComponentGroup": "pins", "action": "digitalWrite", "value": 1},
        {"id": "s6", "type": "delay", "duration": 400},
    ],
    "createdAt": "2024-03-01T10:00:00.000Z",
    "updatedAt": "2024-03-01T10:00:00.000Z",
}


def print_event(event):
    """Print each sequence event as it arrives."""
    print(f"📡 {json.dumps(event.to_payload())}")


async def main():
    configure_logging(level="WARNING")

    sequence = parse_sequence(SAMPLE_SEQUENCE)
    print(f"📋 Loaded '{sequence.name}' with {sequence.total_steps} steps "
          f"({sequence.total_duration_ms():.0f}ms of delays)")

    gateway = LoopbackGateway(ack_delay_ms=150)
    repository = InMemorySequenceRepository([sequence])
    recorder = EventRecorder()

    async with SequenceEngine(gateway, repository=repository) as engine:
        engine.subscribe(print_event)
        engine.subscribe(recorder)

        result = await engine.start("seq_pick_place")
        print(f"▶️  start -> {result.to_dict()}")

        await recorder.wait_for(EventKind.STEP_START, count=3)
        print(f"⏸️  pause -> {(await engine.pause()).to_dict()}")
        print(f"   state: {engine.get_state().to_dict()}")

        await asyncio.sleep(0.5)
        print(f"⏩ set_speed(3.0) -> {(await engine.set_speed(3.0)).to_dict()}")
        print(f"▶️  resume -> {(await engine.resume()).to_dict()}")

        await recorder.wait_for(EventKind.COMPLETED, timeout=10.0)

    print(f"\n✅ Completed. Device received {len(gateway.sent)} commands:")
    for command in gateway.sent:
        print(f"  • {command}")


if __name__ == "__main__":
    asyncio.run(main())
