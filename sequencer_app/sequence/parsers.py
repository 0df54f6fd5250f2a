"""
Sequence document parsers.

Converts the camelCase JSON documents written by the sequence editor into
the immutable models used for playback, and back again for storage.
"""

from typing import Any, Union

import orjson

from ..errors import InvalidSequence
from ..utils.time import format_timestamp, parse_timestamp
from .models import ActionStep, DelayStep, Sequence, Step, StepType


class ParseError(InvalidSequence):
    """Raised when a sequence document cannot be read."""
    pass


def parse_json_payload(raw_data: Union[str, bytes]) -> Any:
    """
    Parse raw JSON text.

    Args:
        raw_data: JSON document as text or bytes

    Returns:
        Decoded JSON value

    Raises:
        ParseError: If the text is not valid JSON
    """
    try:
        return orjson.loads(raw_data)
    except orjson.JSONDecodeError as e:
        raise ParseError(f"Invalid JSON: {e}")


def parse_step(data: dict[str, Any], index: int = 0) -> Step:
    """
    Parse a single step entry.

    Field checks beyond presence and type are left to the validators so
    that a malformed step still surfaces as InvalidStep at start time.

    Raises:
        ParseError: If the entry is not an object or has an unknown type
    """
    if not isinstance(data, dict):
        raise ParseError(f"Step {index} must be an object, got {type(data).__name__}")

    step_id = str(data.get("id") or f"step_{index}")
    step_type = data.get("type")

    if step_type == StepType.DELAY.value:
        if "duration" not in data:
            raise ParseError(f"Delay step {index} is missing duration")
        return DelayStep(id=step_id, duration_ms=data["duration"])

    if step_type == StepType.ACTION.value:
        return ActionStep(
            id=step_id,
            device_id=data.get("deviceId", ""),
            device_group=data.get("deviceComponentGroup", ""),
            action=data.get("action", ""),
            value=data.get("value"),
            speed=data.get("speed"),
            acceleration=data.get("acceleration"),
        )

    raise ParseError(f"Step {index} has unknown type {step_type!r}")


def parse_sequence(raw: Union[dict[str, Any], str, bytes]) -> Sequence:
    """
    Parse a sequence document.

    Args:
        raw: Decoded document, or its JSON text

    Returns:
        Immutable Sequence

    Raises:
        ParseError: If the document is malformed
    """
    data = parse_json_payload(raw) if isinstance(raw, (str, bytes)) else raw

    if not isinstance(data, dict):
        raise ParseError("Sequence document must be an object")

    sequence_id = data.get("id")
    if not sequence_id:
        raise ParseError("Sequence document is missing id")

    steps_data = data.get("steps", [])
    if not isinstance(steps_data, list):
        raise ParseError("Sequence steps must be a list", sequence_id=str(sequence_id))

    try:
        steps = [parse_step(step, i) for i, step in enumerate(steps_data)]
        created_at = parse_timestamp(data.get("createdAt"))
        updated_at = parse_timestamp(data.get("updatedAt"))
    except ParseError as e:
        raise ParseError(str(e), sequence_id=str(sequence_id))
    except (TypeError, ValueError) as e:
        raise ParseError(f"Invalid timestamp: {e}", sequence_id=str(sequence_id))

    return Sequence(
        id=str(sequence_id),
        name=str(data.get("name", "")),
        steps=tuple(steps),
        description=data.get("description"),
        created_at=created_at,
        updated_at=updated_at,
    )


def step_to_dict(step: Step) -> dict[str, Any]:
    """Convert a step back to its document form."""
    if isinstance(step, DelayStep):
        return {"id": step.id, "type": StepType.DELAY.value, "duration": step.duration_ms}

    result: dict[str, Any] = {
        "id": step.id,
        "type": StepType.ACTION.value,
        "deviceId": step.device_id,
        "deviceComponentGroup": step.device_group,
        "action": step.action,
        "value": step.value,
    }
    if step.speed is not None:
        result["speed"] = step.speed
    if step.acceleration is not None:
        result["acceleration"] = step.acceleration
    return result


def sequence_to_dict(sequence: Sequence) -> dict[str, Any]:
    """Convert a sequence back to its document form."""
    result: dict[str, Any] = {
        "id": sequence.id,
        "name": sequence.name,
        "steps": [step_to_dict(s) for s in sequence.steps],
    }
    if sequence.description is not None:
        result["description"] = sequence.description
    if sequence.created_at is not None:
        result["createdAt"] = format_timestamp(sequence.created_at)
    if sequence.updated_at is not None:
        result["updatedAt"] = format_timestamp(sequence.updated_at)
    return result
