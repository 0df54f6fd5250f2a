"""
Step validation run once at the start of playback.

A sequence that fails here never enters the Running phase.
"""

from typing import Iterable

from ..errors import InvalidSequence, InvalidStep
from ..utils.time import is_finite_number
from .models import ActionStep, DelayStep, DeviceGroup, Sequence, Step

_DEVICE_GROUPS = {g.value for g in DeviceGroup}


def validate(steps: Iterable[Step]) -> None:
    """
    Validate every step of a sequence.

    Args:
        steps: Steps in playback order

    Raises:
        InvalidStep: On the first malformed step
    """
    for index, step in enumerate(steps):
        if isinstance(step, ActionStep):
            _validate_action(step, index)
        elif isinstance(step, DelayStep):
            _validate_delay(step, index)
        else:
            raise InvalidStep(
                f"Step {index} has unsupported type {type(step).__name__}",
                step_index=index,
                field="type"
            )


def validate_sequence(sequence: Sequence, start_index: int = 0) -> None:
    """
    Validate a sequence and the index playback should start from.

    Raises:
        InvalidSequence: If there are no steps or start_index is out of range
        InvalidStep: On the first malformed step
    """
    if not sequence.steps:
        raise InvalidSequence(
            "Invalid sequence or empty steps",
            sequence_id=sequence.id
        )

    if isinstance(start_index, bool) or not isinstance(start_index, int):
        raise InvalidSequence(
            f"Start index must be an integer, got {start_index!r}",
            sequence_id=sequence.id
        )

    if not 0 <= start_index < len(sequence.steps):
        raise InvalidSequence(
            f"Start index {start_index} outside 0..{len(sequence.steps) - 1}",
            sequence_id=sequence.id,
            context={"start_index": start_index, "total_steps": len(sequence.steps)}
        )

    validate(sequence.steps)


def _validate_action(step: ActionStep, index: int) -> None:
    if not step.device_id or not str(step.device_id).strip():
        raise InvalidStep(
            f"Action step {index} has an empty device id",
            step_id=step.id,
            step_index=index,
            field="device_id"
        )

    if not step.action or not str(step.action).strip():
        raise InvalidStep(
            f"Action step {index} has an empty action",
            step_id=step.id,
            step_index=index,
            field="action"
        )

    if step.device_group not in _DEVICE_GROUPS:
        raise InvalidStep(
            f"Action step {index} addresses unknown device group {step.device_group!r}",
            step_id=step.id,
            step_index=index,
            field="device_group"
        )

    for name in ("speed", "acceleration"):
        value = getattr(step, name)
        if value is not None and (not is_finite_number(value) or value <= 0):
            raise InvalidStep(
                f"Action step {index} has invalid {name} {value!r}",
                step_id=step.id,
                step_index=index,
                field=name
            )


def _validate_delay(step: DelayStep, index: int) -> None:
    if not is_finite_number(step.duration_ms):
        raise InvalidStep(
            f"Delay step {index} duration must be a number, got {step.duration_ms!r}",
            step_id=step.id,
            step_index=index,
            field="duration_ms"
        )

    if step.duration_ms < 0:
        raise InvalidStep(
            f"Delay step {index} has negative duration {step.duration_ms}",
            step_id=step.id,
            step_index=index,
            field="duration_ms"
        )
