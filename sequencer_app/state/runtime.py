"""
Runtime ownership of the single run state.

The tracker is mutated only by the engine worker. Readers receive the
current immutable snapshot, which is swapped atomically on every change.
"""

from dataclasses import replace
from typing import Any, Optional

import structlog

from ..errors import StateTransitionError
from ..logging.config import get_state_logger, log_state_transition
from ..sequence.models import Sequence
from .machine import next_phase
from .models import RunPhase, RunState, RunTrigger

logger = structlog.get_logger(__name__)
state_logger = get_state_logger(__name__)


class RunStateTracker:
    """Holds the current RunState and applies transitions to it."""

    def __init__(self, default_speed: float = 1.0):
        self.default_speed = default_speed
        self._state = RunState.idle(default_speed)

    @property
    def state(self) -> RunState:
        return self._state

    @property
    def phase(self) -> RunPhase:
        return self._state.phase

    def begin(self, sequence: Sequence, start_index: int, speed_multiplier: float) -> RunState:
        """Enter Running for a new sequence."""
        new_phase = next_phase(self._state.phase, RunTrigger.START)
        new_state = RunState(
            phase=new_phase,
            sequence_id=sequence.id,
            sequence_name=sequence.name,
            step_index=start_index,
            total_steps=sequence.total_steps,
            speed_multiplier=speed_multiplier,
        )
        return self._swap(new_state, RunTrigger.START,
                          {"start_index": start_index, "speed": speed_multiplier})

    def transition(self, trigger: RunTrigger, **changes: Any) -> RunState:
        """
        Apply a trigger and optional field changes.

        Raises:
            StateTransitionError: If the trigger is not legal from the current phase
        """
        new_phase = next_phase(self._state.phase, trigger)
        new_state = replace(self._state, phase=new_phase, **changes)

        if new_state.step_index < self._state.step_index and new_phase != RunPhase.IDLE:
            raise StateTransitionError(
                f"Step index cannot move backwards ({self._state.step_index} -> {new_state.step_index})",
                current_state=self._state.phase.value,
                attempted_transition=trigger.value
            )

        return self._swap(new_state, trigger, changes or None)

    def update(self, **changes: Any) -> RunState:
        """Change fields without a phase transition."""
        self._state = replace(self._state, **changes)
        return self._state

    def reset(self) -> RunState:
        """Return a terminal phase to the idle zero state."""
        next_phase(self._state.phase, RunTrigger.RESET)
        return self._swap(RunState.idle(self.default_speed), RunTrigger.RESET, None)

    def _swap(
        self,
        new_state: RunState,
        trigger: RunTrigger,
        context: Optional[dict[str, Any]]
    ) -> RunState:
        old_state = self._state
        self._state = new_state

        if old_state.phase != new_state.phase:
            log_state_transition(
                state_logger,
                sequence_id=new_state.sequence_id or old_state.sequence_id,
                from_phase=old_state.phase.value,
                to_phase=new_state.phase.value,
                trigger=trigger.value,
                context=context
            )
        else:
            logger.debug(
                "Run state updated",
                sequence_id=new_state.sequence_id,
                phase=new_state.phase.value,
                trigger=trigger.value,
                step_index=new_state.step_index,
                speed_multiplier=new_state.speed_multiplier
            )

        return new_state
