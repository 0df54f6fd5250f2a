"""
Run state data models for sequence playback.

This module defines the immutable snapshot of the single active run and
the phases and triggers the state machine moves it through.
"""

from dataclasses import dataclass, replace
from enum import Enum
from typing import Any, Optional


class RunPhase(str, Enum):
    """Lifecycle phases of a sequence run."""
    IDLE = "idle"
    RUNNING = "running"
    PAUSED = "paused"
    STOPPING = "stopping"
    COMPLETED = "completed"
    FAILED = "failed"


class RunTrigger(str, Enum):
    """Events that move a run between phases."""
    START = "start"
    PAUSE = "pause"
    RESUME = "resume"
    STOP = "stop"
    SET_SPEED = "set_speed"
    ADVANCE = "advance"                 # Step satisfied, more steps remain
    FINISH = "finish"                   # Last step satisfied
    FAIL = "fail"                       # Playback error
    RESET = "reset"                     # Terminal phase back to idle


# Phases in which a run owns the engine
ACTIVE_PHASES = frozenset({RunPhase.RUNNING, RunPhase.PAUSED, RunPhase.STOPPING})


@dataclass(frozen=True)
class RunState:
    """Snapshot of the current run."""

    phase: RunPhase = RunPhase.IDLE
    sequence_id: Optional[str] = None
    sequence_name: Optional[str] = None
    step_index: int = 0
    total_steps: int = 0
    speed_multiplier: float = 1.0
    pending_command_id: Optional[str] = None      # Only while Running on an action step

    @classmethod
    def idle(cls, speed_multiplier: float = 1.0) -> "RunState":
        """The zero state reported when nothing is playing."""
        return cls(speed_multiplier=speed_multiplier)

    @property
    def is_active(self) -> bool:
        return self.phase in ACTIVE_PHASES

    @property
    def is_running(self) -> bool:
        return self.phase in (RunPhase.RUNNING, RunPhase.PAUSED)

    @property
    def is_paused(self) -> bool:
        return self.phase == RunPhase.PAUSED

    def with_phase(self, phase: RunPhase) -> "RunState":
        return replace(self, phase=phase)

    def with_step(self, step_index: int) -> "RunState":
        return replace(self, step_index=step_index, pending_command_id=None)

    def with_speed(self, speed_multiplier: float) -> "RunState":
        return replace(self, speed_multiplier=speed_multiplier)

    def with_pending_command(self, command_id: Optional[str]) -> "RunState":
        return replace(self, pending_command_id=command_id)

    def to_dict(self) -> dict[str, Any]:
        """State payload in the camelCase shape the UI expects."""
        return {
            "sequenceId": self.sequence_id,
            "sequenceName": self.sequence_name,
            "currentStepIndex": self.step_index,
            "totalSteps": self.total_steps,
            "phase": self.phase.value,
            "speedMultiplier": self.speed_multiplier,
            "pendingCommandId": self.pending_command_id,
            "isRunning": self.is_running,
            "isPaused": self.is_paused,
        }
