"""
Error classification for sequence playback.

This module provides a structured exception hierarchy for the three
places things go wrong: validating a sequence before it runs, issuing a
control command in the wrong phase, and failures during playback.
"""

from .sequence_validation import (
    SequenceValidationError,
    InvalidStep,
    InvalidSequence,
    SequenceNotFound,
)
from .control import (
    ControlError,
    AlreadyRunning,
    NotRunning,
    InvalidSpeed,
)
from .playback_failures import (
    PlaybackError,
    AckTimeout,
    GatewayDisconnected,
    DeviceCommandRejected,
    CommandSendError,
    Cancelled,
    StateTransitionError,
)

__all__ = [
    # Sequence validation
    "SequenceValidationError",
    "InvalidStep",
    "InvalidSequence",
    "SequenceNotFound",
    # Control commands
    "ControlError",
    "AlreadyRunning",
    "NotRunning",
    "InvalidSpeed",
    # Playback failures
    "PlaybackError",
    "AckTimeout",
    "GatewayDisconnected",
    "DeviceCommandRejected",
    "CommandSendError",
    "Cancelled",
    "StateTransitionError",
]
