"""
Sequencer App - CNC Sequence Execution Engine

Replays recorded sequences of timed hardware actions (servos, steppers,
digital I/O) against a remote device. Correlates device acknowledgments,
and supports pause, resume, live speed changes and cancellation.
"""

__version__ = "0.1.0"
__author__ = "Sequencer Team"
