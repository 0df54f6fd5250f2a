"""
Run state machine.

Tracks the single active sequence run through Idle, Running, Paused,
Stopping, Completed and Failed.
"""
