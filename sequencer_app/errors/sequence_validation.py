"""
Sequence validation error classifications.

These exceptions are raised before a run begins. A sequence that fails
validation never enters the Running phase, and the error is returned
synchronously from ``start``.
"""

from typing import Optional, Dict, Any


class SequenceValidationError(Exception):
    """Base class for sequences that cannot be played as given."""

    def __init__(self, message: str, context: Optional[Dict[str, Any]] = None):
        super().__init__(message)
        self.context = context or {}
        self.recoverable = True


class InvalidStep(SequenceValidationError):
    """A single step is malformed (empty device id or action, negative delay)."""

    def __init__(self, message: str, step_id: Optional[str] = None,
                 step_index: Optional[int] = None, field: Optional[str] = None, **kwargs):
        super().__init__(message, **kwargs)
        self.step_id = step_id
        self.step_index = step_index
        self.field = field


class InvalidSequence(SequenceValidationError):
    """The sequence as a whole cannot run (no steps, bad start index, bad document)."""

    def __init__(self, message: str, sequence_id: Optional[str] = None, **kwargs):
        super().__init__(message, **kwargs)
        self.sequence_id = sequence_id


class SequenceNotFound(SequenceValidationError):
    """The repository has no sequence with the requested id."""

    def __init__(self, message: str, sequence_id: Optional[str] = None, **kwargs):
        super().__init__(message, **kwargs)
        self.sequence_id = sequence_id
