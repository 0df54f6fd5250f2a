"""Tests for run state data models."""

import dataclasses

import pytest

from sequencer_app.state.models import RunPhase, RunState


class TestRunState:
    """Test RunState data model."""

    def test_idle_zero_state(self):
        state = RunState.idle()

        assert state.phase == RunPhase.IDLE
        assert state.sequence_id is None
        assert state.step_index == 0
        assert state.total_steps == 0
        assert state.speed_multiplier == 1.0
        assert state.pending_command_id is None
        assert not state.is_active

    def test_snapshot_is_immutable(self):
        state = RunState.idle()

        with pytest.raises(dataclasses.FrozenInstanceError):
            state.step_index = 4

    def test_with_helpers_return_new_state(self):
        running = RunState(phase=RunPhase.RUNNING, sequence_id="s1", total_steps=3)

        advanced = running.with_pending_command("cmd_1").with_step(1)

        assert advanced.step_index == 1
        assert advanced.pending_command_id is None
        assert running.step_index == 0
        assert running.with_speed(1.5).speed_multiplier == 1.5
        assert running.with_phase(RunPhase.PAUSED).is_paused

    @pytest.mark.parametrize("phase,is_running,is_paused", [
        (RunPhase.IDLE, False, False),
        (RunPhase.RUNNING, True, False),
        (RunPhase.PAUSED, True, True),
        (RunPhase.COMPLETED, False, False),
    ])
    def test_to_dict_flags(self, phase, is_running, is_paused):
        payload = RunState(phase=phase, sequence_id="s1", total_steps=2).to_dict()

        assert payload["phase"] == phase.value
        assert payload["isRunning"] is is_running
        assert payload["isPaused"] is is_paused
        assert payload["currentStepIndex"] == 0
        assert payload["totalSteps"] == 2
