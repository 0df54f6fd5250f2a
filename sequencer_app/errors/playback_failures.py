"""
Playback failure classifications.

These exceptions describe what went wrong while a sequence was running.
They are reported through the ``error`` event, never thrown across the
command API. Only AckTimeout is soft: by default it counts as success.
"""

from typing import Optional, Dict, Any


class PlaybackError(Exception):
    """Base class for failures that abort a running sequence."""

    def __init__(self, message: str, context: Optional[Dict[str, Any]] = None):
        super().__init__(message)
        self.context = context or {}
        self.recoverable = False


class AckTimeout(PlaybackError):
    """The device did not acknowledge a command within its bounded wait."""

    def __init__(self, message: str, command_id: Optional[str] = None,
                 timeout_ms: Optional[float] = None, **kwargs):
        super().__init__(message, **kwargs)
        self.command_id = command_id
        self.timeout_ms = timeout_ms
        self.recoverable = True


class GatewayDisconnected(PlaybackError):
    """The device connection dropped during a run."""

    def __init__(self, message: str, command_id: Optional[str] = None,
                 step_index: Optional[int] = None, **kwargs):
        super().__init__(message, **kwargs)
        self.command_id = command_id
        self.step_index = step_index


class DeviceCommandRejected(PlaybackError):
    """The device answered a command with an error status."""

    def __init__(self, message: str, command_id: Optional[str] = None,
                 detail: Optional[Dict[str, Any]] = None, **kwargs):
        super().__init__(message, **kwargs)
        self.command_id = command_id
        self.detail = detail or {}


class CommandSendError(PlaybackError):
    """The gateway refused the outgoing command outright."""

    def __init__(self, message: str, device_id: Optional[str] = None, **kwargs):
        super().__init__(message, **kwargs)
        self.device_id = device_id


class Cancelled(PlaybackError):
    """Internal signal that a wait was abandoned by stop; never surfaced."""

    def __init__(self, message: str = "Cancelled", **kwargs):
        super().__init__(message, **kwargs)
        self.recoverable = True


class StateTransitionError(PlaybackError):
    """Invalid phase transition that would corrupt the run state."""

    def __init__(self, message: str, current_state: Optional[str] = None,
                 attempted_transition: Optional[str] = None, **kwargs):
        super().__init__(message, **kwargs)
        self.current_state = current_state
        self.attempted_transition = attempted_transition
