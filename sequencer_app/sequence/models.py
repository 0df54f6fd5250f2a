"""
Canonical data models for recorded sequences.

This module defines immutable data structures for sequences and their
steps. A run borrows a Sequence as a read-only snapshot: the dataclasses
are frozen and the step list is stored as a tuple, so playback can never
observe an edit.
"""

from dataclasses import dataclass, field
from datetime import datetime
from enum import Enum
from typing import Any, Optional, Union


class StepType(str, Enum):
    """Step discriminator used in sequence documents."""
    ACTION = "action"
    DELAY = "delay"


class DeviceGroup(str, Enum):
    """Hardware configuration groups a step can address."""
    SERVOS = "servos"
    STEPPERS = "steppers"
    SENSORS = "sensors"
    RELAYS = "relays"
    PINS = "pins"


@dataclass(frozen=True)
class ActionStep:
    """A command applied to one addressed device."""
    id: str
    device_id: str
    device_group: str               # One of DeviceGroup values
    action: str                     # e.g. "moveTo", "setAngle", "digitalWrite"
    value: Any = None
    speed: Optional[float] = None
    acceleration: Optional[float] = None

    @property
    def step_type(self) -> StepType:
        return StepType.ACTION


@dataclass(frozen=True)
class DelayStep:
    """A pure wait with no device interaction."""
    id: str
    duration_ms: float

    @property
    def step_type(self) -> StepType:
        return StepType.DELAY


Step = Union[ActionStep, DelayStep]


@dataclass(frozen=True)
class Sequence:
    """A named, ordered list of steps recorded against a hardware configuration."""
    id: str
    name: str
    steps: tuple[Step, ...] = field(default_factory=tuple)
    description: Optional[str] = None
    created_at: Optional[datetime] = None
    updated_at: Optional[datetime] = None

    def __post_init__(self) -> None:
        # Lists passed by callers are frozen into a tuple
        if not isinstance(self.steps, tuple):
            object.__setattr__(self, "steps", tuple(self.steps))

    @property
    def total_steps(self) -> int:
        return len(self.steps)

    def step_at(self, index: int) -> Step:
        """Return the step at index; raises IndexError when out of range."""
        return self.steps[index]

    def action_steps(self) -> list[ActionStep]:
        """All action steps in playback order."""
        return [s for s in self.steps if isinstance(s, ActionStep)]

    def total_duration_ms(self, speed_multiplier: float = 1.0) -> float:
        """
        Sum of delay durations at the given speed.

        Action steps are excluded because their duration depends on the
        device; this is the dry-run figure shown while editing.
        """
        total = sum(s.duration_ms for s in self.steps if isinstance(s, DelayStep))
        return total / speed_multiplier
