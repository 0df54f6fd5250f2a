"""
Run phase transition table.

Pure functions: no I/O and no clocks. The engine decides which trigger
applies; this module only says whether the trigger is legal from the
current phase and where it leads.
"""

from ..errors import StateTransitionError
from .models import RunPhase, RunTrigger

TRANSITIONS: dict[RunPhase, dict[RunTrigger, RunPhase]] = {
    RunPhase.IDLE: {
        RunTrigger.START: RunPhase.RUNNING,
    },
    RunPhase.RUNNING: {
        RunTrigger.PAUSE: RunPhase.PAUSED,
        RunTrigger.STOP: RunPhase.STOPPING,
        RunTrigger.SET_SPEED: RunPhase.RUNNING,
        RunTrigger.ADVANCE: RunPhase.RUNNING,
        RunTrigger.FINISH: RunPhase.COMPLETED,
        RunTrigger.FAIL: RunPhase.FAILED,
    },
    RunPhase.PAUSED: {
        RunTrigger.RESUME: RunPhase.RUNNING,
        RunTrigger.STOP: RunPhase.STOPPING,
        RunTrigger.SET_SPEED: RunPhase.PAUSED,
        RunTrigger.FAIL: RunPhase.FAILED,
    },
    RunPhase.STOPPING: {
        RunTrigger.RESET: RunPhase.IDLE,
    },
    RunPhase.COMPLETED: {
        RunTrigger.RESET: RunPhase.IDLE,
    },
    RunPhase.FAILED: {
        RunTrigger.RESET: RunPhase.IDLE,
    },
}


def can_apply(phase: RunPhase, trigger: RunTrigger) -> bool:
    """Check whether a trigger is legal from a phase."""
    return trigger in TRANSITIONS.get(phase, {})


def next_phase(phase: RunPhase, trigger: RunTrigger) -> RunPhase:
    """
    Resolve the phase a trigger leads to.

    Args:
        phase: Current phase
        trigger: Requested transition

    Returns:
        Target phase

    Raises:
        StateTransitionError: If the trigger is not legal from phase
    """
    try:
        return TRANSITIONS[phase][trigger]
    except KeyError:
        raise StateTransitionError(
            f"Invalid transition {trigger.value} from {phase.value}",
            current_state=phase.value,
            attempted_transition=trigger.value
        ) from None
