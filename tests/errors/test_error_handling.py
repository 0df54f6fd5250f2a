"""Tests for the error hierarchy."""

import pytest

from sequencer_app.errors import (
    AckTimeout,
    AlreadyRunning,
    Cancelled,
    CommandSendError,
    ControlError,
    DeviceCommandRejected,
    GatewayDisconnected,
    InvalidSequence,
    InvalidSpeed,
    InvalidStep,
    NotRunning,
    PlaybackError,
    SequenceNotFound,
    SequenceValidationError,
    StateTransitionError,
)


class TestErrorHierarchy:
    """Test classification and recoverability flags."""

    @pytest.mark.parametrize("error_class", [InvalidStep, InvalidSequence, SequenceNotFound])
    def test_validation_errors(self, error_class):
        error = error_class("bad")

        assert isinstance(error, SequenceValidationError)
        assert error.recoverable is True

    @pytest.mark.parametrize("error_class", [AlreadyRunning, NotRunning, InvalidSpeed])
    def test_control_errors(self, error_class):
        error = error_class("rejected", current_phase="idle")

        assert isinstance(error, ControlError)
        assert error.current_phase == "idle"
        assert error.recoverable is True

    @pytest.mark.parametrize("error_class", [
        GatewayDisconnected, DeviceCommandRejected, CommandSendError, StateTransitionError,
    ])
    def test_playback_failures_are_fatal(self, error_class):
        error = error_class("boom")

        assert isinstance(error, PlaybackError)
        assert error.recoverable is False

    def test_ack_timeout_is_soft(self):
        error = AckTimeout("slow", command_id="cmd_1", timeout_ms=2500)

        assert isinstance(error, PlaybackError)
        assert error.recoverable is True
        assert error.timeout_ms == 2500

    def test_cancelled_default_message(self):
        assert str(Cancelled()) == "Cancelled"

    def test_context_defaults_to_empty_dict(self):
        assert InvalidStep("x").context == {}
        assert GatewayDisconnected("x", context={"port": "COM3"}).context == {"port": "COM3"}

    def test_invalid_step_fields(self):
        error = InvalidStep("empty device", step_id="a1", step_index=2, field="device_id")

        assert (error.step_id, error.step_index, error.field) == ("a1", 2, "device_id")
