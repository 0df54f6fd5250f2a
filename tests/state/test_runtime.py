"""Tests for run state ownership."""

from unittest.mock import patch

import pytest

from sequencer_app.errors import StateTransitionError
from sequencer_app.state.models import RunPhase, RunTrigger
from sequencer_app.state.runtime import RunStateTracker


class TestRunStateTracker:
    """Test applying transitions to the single run state."""

    def test_begin_sets_run_fields(self, delay_sequence):
        tracker = RunStateTracker()

        state = tracker.begin(delay_sequence, 1, 1.5)

        assert state.phase == RunPhase.RUNNING
        assert state.sequence_id == "seq_delays"
        assert state.sequence_name == "Delays"
        assert state.step_index == 1
        assert state.total_steps == 3
        assert state.speed_multiplier == 1.5

    def test_begin_while_running_is_illegal(self, delay_sequence):
        tracker = RunStateTracker()
        tracker.begin(delay_sequence, 0, 1.0)

        with pytest.raises(StateTransitionError):
            tracker.begin(delay_sequence, 0, 1.0)

    def test_step_index_cannot_move_backwards(self, delay_sequence):
        tracker = RunStateTracker()
        tracker.begin(delay_sequence, 2, 1.0)

        with pytest.raises(StateTransitionError):
            tracker.transition(RunTrigger.ADVANCE, step_index=1)

        assert tracker.state.step_index == 2

    def test_reset_returns_to_idle_zero_state(self, delay_sequence):
        tracker = RunStateTracker(default_speed=1.0)
        tracker.begin(delay_sequence, 0, 2.0)
        tracker.transition(RunTrigger.FINISH, step_index=3)

        state = tracker.reset()

        assert state.phase == RunPhase.IDLE
        assert state.sequence_id is None
        assert state.speed_multiplier == 1.0

    def test_reset_from_running_is_illegal(self, delay_sequence):
        tracker = RunStateTracker()
        tracker.begin(delay_sequence, 0, 1.0)

        with pytest.raises(StateTransitionError):
            tracker.reset()

    def test_update_keeps_phase(self, delay_sequence):
        tracker = RunStateTracker()
        tracker.begin(delay_sequence, 0, 1.0)

        state = tracker.update(pending_command_id="cmd_1")

        assert state.phase == RunPhase.RUNNING
        assert state.pending_command_id == "cmd_1"

    def test_phase_changes_are_logged(self, delay_sequence):
        """Test that phase changes go through the standard transition log."""
        tracker = RunStateTracker()

        with patch("sequencer_app.state.runtime.log_state_transition") as log_transition:
            tracker.begin(delay_sequence, 0, 1.0)
            tracker.transition(RunTrigger.SET_SPEED, speed_multiplier=2.0)
            tracker.transition(RunTrigger.PAUSE)

        assert log_transition.call_count == 2
        kwargs = log_transition.call_args.kwargs
        assert kwargs["from_phase"] == "running"
        assert kwargs["to_phase"] == "paused"
        assert kwargs["trigger"] == "pause"
