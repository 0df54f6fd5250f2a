"""
Control command error classifications.

Raised inside the engine worker when a command arrives in a phase that
cannot accept it. They are converted to ``accepted: False`` results and
never propagate across the command API.
"""

from typing import Optional, Dict, Any


class ControlError(Exception):
    """Base class for rejected control commands."""

    def __init__(self, message: str, current_phase: Optional[str] = None,
                 context: Optional[Dict[str, Any]] = None):
        super().__init__(message)
        self.current_phase = current_phase
        self.context = context or {}
        self.recoverable = True


class AlreadyRunning(ControlError):
    """start was called while another run is active."""

    def __init__(self, message: str, active_sequence_id: Optional[str] = None, **kwargs):
        super().__init__(message, **kwargs)
        self.active_sequence_id = active_sequence_id


class NotRunning(ControlError):
    """pause, resume, stop or set_speed was called from an incompatible phase."""

    def __init__(self, message: str, command: Optional[str] = None, **kwargs):
        super().__init__(message, **kwargs)
        self.command = command


class InvalidSpeed(ControlError):
    """Speed multiplier is not a finite positive number."""

    def __init__(self, message: str, value: Any = None, **kwargs):
        super().__init__(message, **kwargs)
        self.value = value
