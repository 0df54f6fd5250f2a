"""
Sequence step model.

Immutable sequences, their action and delay steps, document parsing,
and the validation run before playback.
"""
