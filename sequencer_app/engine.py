"""
Sequence playback engine.

Coordinates a single sequence run: pulls steps in order, waits the
speed-scaled duration of each through the timing controller and, for
action steps, awaits the device acknowledgment through the correlator.

All run state is owned by one worker task. Control commands are queued
to that task and answered with a CommandResult once accepted or
rejected; progress is reported through the event publisher.
"""

import asyncio
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any, Callable, Optional, Union

import structlog

from .config.defaults import DefaultConfig, get_default_config
from .config.loader import ConfigLoader
from .correlation.correlator import AckResult, AckStatus, CommandCorrelator
from .devices.base import DeviceGateway
from .devices.commands import ack_timeout_ms, build_device_command
from .errors import (
    AckTimeout,
    AlreadyRunning,
    CommandSendError,
    ControlError,
    DeviceCommandRejected,
    GatewayDisconnected,
    InvalidSpeed,
    NotRunning,
    PlaybackError,
    SequenceNotFound,
    SequenceValidationError,
)
from .events.publisher import EventKind, EventObserver, EventPublisher, SequenceEvent
from .persistence.sequence_store import SequenceRepository
from .sequence.models import ActionStep, DelayStep, Sequence, Step
from .sequence.validators import validate_sequence
from .state.models import RunPhase, RunState, RunTrigger
from .state.runtime import RunStateTracker
from .timing.controller import TimingController, WaitHandle
from .utils.time import clamp, is_finite_number

logger = structlog.get_logger(__name__)


@dataclass(frozen=True)
class CommandResult:
    """Outcome of a control command."""
    accepted: bool
    error: Optional[str] = None
    error_type: Optional[str] = None

    @classmethod
    def ok(cls) -> "CommandResult":
        return cls(accepted=True)

    @classmethod
    def rejected(cls, error: Exception) -> "CommandResult":
        return cls(accepted=False, error=str(error), error_type=type(error).__name__)

    def to_dict(self) -> dict[str, Any]:
        result: dict[str, Any] = {"accepted": self.accepted}
        if self.error is not None:
            result["error"] = self.error
        return result


@dataclass
class _Command:
    name: str
    reply: asyncio.Future
    args: dict[str, Any] = field(default_factory=dict)


class SequenceEngine:
    """
    Plays one sequence at a time against a device gateway.

    Usage::

        async with SequenceEngine(gateway, repository) as engine:
            engine.subscribe(print)
            await engine.start("seq_1", speed_multiplier=1.5)
    """

    def __init__(
        self,
        gateway: DeviceGateway,
        repository: Optional[SequenceRepository] = None,
        config: Optional[DefaultConfig] = None,
        publisher: Optional[EventPublisher] = None,
        config_loader: Optional[ConfigLoader] = None,
    ) -> None:
        self.logger = logger
        self.gateway = gateway
        self.repository = repository
        self.config_loader = config_loader
        self.config = config or (config_loader.load() if config_loader else get_default_config())
        self.publisher = publisher or EventPublisher()
        self.correlator = CommandCorrelator(gateway)
        self.timing = TimingController()
        self._tracker = RunStateTracker(self.config.playback.default_speed)

        self._loop: Optional[asyncio.AbstractEventLoop] = None
        self._inbox: Optional[asyncio.Queue] = None
        self._worker: Optional[asyncio.Task] = None
        self._disconnected: Optional[asyncio.Future] = None
        self._handlers_registered = False
        self._device_configs: dict[str, DefaultConfig] = {}

        self._clear_run()

    @classmethod
    def from_config_dir(
        cls,
        gateway: DeviceGateway,
        config_dir: Optional[str] = None,
        repository: Optional[SequenceRepository] = None,
        publisher: Optional[EventPublisher] = None,
    ) -> "SequenceEngine":
        """Build an engine whose parameters come from engine.yaml and devices.yaml."""
        loader = ConfigLoader.create(Path(config_dir) if config_dir else None)
        return cls(gateway, repository=repository, publisher=publisher, config_loader=loader)

    # Lifecycle

    async def open(self) -> None:
        """Start the worker task on the running loop."""
        if self._worker is not None and not self._worker.done():
            return

        self._loop = asyncio.get_running_loop()
        self._inbox = asyncio.Queue(maxsize=self.config.playback.inbox_size)
        self._disconnected = self._loop.create_future()

        if not self._handlers_registered:
            self.gateway.on_message(self._on_gateway_message)
            self.gateway.on_disconnect(self._on_gateway_disconnect)
            self._handlers_registered = True

        self._worker = self._loop.create_task(self._run(), name="sequence-engine")
        self.logger.info("Sequence engine opened", inbox_size=self.config.playback.inbox_size)

    async def close(self) -> None:
        """Stop any active run and shut the worker down."""
        if self._worker is None:
            return

        if self._tracker.state.is_running and not self._worker.done():
            await self.stop()

        self._worker.cancel()
        try:
            await self._worker
        except asyncio.CancelledError:
            pass

        self._worker = None
        self.logger.info("Sequence engine closed")

    async def __aenter__(self) -> "SequenceEngine":
        await self.open()
        return self

    async def __aexit__(self, exc_type, exc, tb) -> None:
        await self.close()

    # Command surface

    async def start(
        self,
        sequence: Union[Sequence, str],
        start_index: int = 0,
        speed_multiplier: Optional[float] = None
    ) -> CommandResult:
        """Begin playing a sequence, given directly or by repository id."""
        return await self._submit(
            "start",
            sequence=sequence,
            start_index=start_index,
            speed_multiplier=speed_multiplier,
        )

    async def pause(self) -> CommandResult:
        return await self._submit("pause")

    async def resume(self) -> CommandResult:
        return await self._submit("resume")

    async def stop(self) -> CommandResult:
        return await self._submit("stop")

    async def set_speed(self, speed_multiplier: float) -> CommandResult:
        """Change playback speed; the value is clamped to the configured range."""
        return await self._submit("set_speed", speed_multiplier=speed_multiplier)

    def get_state(self) -> RunState:
        """Current run snapshot; the idle zero state when nothing is playing."""
        return self._tracker.state

    def subscribe(self, observer: EventObserver) -> Callable[[], None]:
        """Register an event observer; returns its unsubscribe callable."""
        return self.publisher.subscribe(observer)

    async def _submit(self, name: str, **args: Any) -> CommandResult:
        if self._worker is None or self._worker.done() or self._inbox is None:
            raise RuntimeError("Sequence engine is not open")

        reply = asyncio.get_running_loop().create_future()
        await self._inbox.put(_Command(name=name, reply=reply, args=args))
        return await reply

    # Gateway callbacks, possibly from foreign threads

    def _on_gateway_message(self, message: Any) -> None:
        self._call_in_loop(self.correlator.handle_message, message)

    def _on_gateway_disconnect(self) -> None:
        self._call_in_loop(self._mark_disconnected)

    def _call_in_loop(self, callback, *args: Any) -> None:
        if self._loop is None or self._loop.is_closed():
            return
        self._loop.call_soon_threadsafe(callback, *args)

    def _mark_disconnected(self) -> None:
        if self._disconnected is not None and not self._disconnected.done():
            self._disconnected.set_result(None)

    # Worker

    async def _run(self) -> None:
        get_task: Optional[asyncio.Task] = None
        try:
            while True:
                if get_task is None:
                    get_task = asyncio.ensure_future(self._inbox.get())

                waitables = {get_task, self._disconnected}
                if self._wait is not None and not self._wait.done:
                    waitables.add(self._wait.future)
                if self._ack_future is not None and not self._ack_future.done():
                    waitables.add(self._ack_future)

                await asyncio.wait(waitables, return_when=asyncio.FIRST_COMPLETED)

                # A disconnect reported before these commands belongs to the current phase
                if self._disconnected.done():
                    self._disconnected = self._loop.create_future()
                    self._handle_disconnect()

                # Commands always win over step wake-ups from the same iteration
                if get_task.done():
                    self._dispatch(get_task.result())
                    get_task = None
                    while not self._inbox.empty():
                        self._dispatch(self._inbox.get_nowait())

                self._advance()
        finally:
            if get_task is not None:
                get_task.cancel()

    def _dispatch(self, command: _Command) -> None:
        handler = getattr(self, f"_handle_{command.name}")
        try:
            handler(**command.args)
            result = CommandResult.ok()
        except (ControlError, SequenceValidationError, PlaybackError) as e:
            self.logger.warning(
                "Command rejected",
                command=command.name,
                phase=self._tracker.phase.value,
                error=str(e),
                error_type=type(e).__name__
            )
            result = CommandResult.rejected(e)
        except Exception as e:
            self.logger.error(
                "Unexpected error handling command",
                command=command.name,
                phase=self._tracker.phase.value,
                error=str(e),
                error_type=type(e).__name__,
                exc_info=True
            )
            result = CommandResult.rejected(e)

        if not command.reply.done():
            command.reply.set_result(result)

    def _handle_start(
        self,
        sequence: Union[Sequence, str],
        start_index: int,
        speed_multiplier: Optional[float]
    ) -> None:
        state = self._tracker.state
        if state.is_active:
            raise AlreadyRunning(
                f"Sequence {state.sequence_id} is already running",
                active_sequence_id=state.sequence_id,
                current_phase=state.phase.value
            )

        if isinstance(sequence, str):
            if self.repository is None:
                raise SequenceNotFound(
                    f"Sequence {sequence} not found: no repository configured",
                    sequence_id=sequence
                )
            sequence = self.repository.get_sequence_by_id(sequence)

        validate_sequence(sequence, start_index)

        if speed_multiplier is None:
            speed_multiplier = self.config.playback.default_speed
        speed = self._clamp_speed(speed_multiplier)

        if not self.gateway.is_connected():
            raise GatewayDisconnected("Device gateway is not connected")

        self._device_configs.clear()
        self._sequence = sequence
        self._tracker.begin(sequence, start_index, speed)
        self.logger.info(
            "Sequence started",
            sequence_id=sequence.id,
            sequence_name=sequence.name,
            total_steps=sequence.total_steps,
            start_index=start_index,
            speed_multiplier=speed
        )
        self._begin_step(start_index)

    def _handle_pause(self) -> None:
        self._require_phase("pause", RunPhase.RUNNING)

        if self._wait is not None and not self._wait.done:
            self._paused_remaining_ms = self.timing.pause(self._wait)

        state = self._tracker.transition(RunTrigger.PAUSE, pending_command_id=None)
        self.logger.info(
            "Sequence paused",
            sequence_id=state.sequence_id,
            step_index=state.step_index,
            remaining_ms=self._paused_remaining_ms
        )
        self._publish(EventKind.PAUSED)

    def _handle_resume(self) -> None:
        self._require_phase("resume", RunPhase.PAUSED)

        pending = self._command_id if self._command_id and self.correlator.is_pending(self._command_id) else None
        state = self._tracker.transition(RunTrigger.RESUME, pending_command_id=pending)

        if self._wait is not None and self._wait.paused:
            self.timing.resume(self._wait, self._paused_remaining_ms, state.speed_multiplier)

        self.logger.info(
            "Sequence resumed",
            sequence_id=state.sequence_id,
            step_index=state.step_index,
            remaining_ms=self._paused_remaining_ms,
            speed_multiplier=state.speed_multiplier
        )
        self._paused_remaining_ms = None
        self._publish(EventKind.RESUMED)

    def _handle_stop(self) -> None:
        self._require_phase("stop", RunPhase.RUNNING, RunPhase.PAUSED)

        state = self._tracker.transition(RunTrigger.STOP)
        self._cancel_waits()
        self.logger.info("Sequence stopped", sequence_id=state.sequence_id,
                         step_index=state.step_index)
        self._publish(EventKind.STOPPED)
        self._end_run()

    def _handle_set_speed(self, speed_multiplier: float) -> None:
        self._require_phase("set_speed", RunPhase.RUNNING, RunPhase.PAUSED)

        speed = self._clamp_speed(speed_multiplier)
        state = self._tracker.transition(RunTrigger.SET_SPEED, speed_multiplier=speed)

        if self._wait is not None and not self._wait.done:
            self.timing.change_speed(self._wait, speed)

        self.logger.info(
            "Playback speed changed",
            sequence_id=state.sequence_id,
            requested=speed_multiplier,
            speed_multiplier=speed
        )
        self._publish(EventKind.SPEED_CHANGED, speed_multiplier=speed)

    def _handle_disconnect(self) -> None:
        state = self._tracker.state
        self.logger.warning("Device gateway disconnected", phase=state.phase.value,
                            sequence_id=state.sequence_id)

        if state.is_running:
            self._fail(GatewayDisconnected(
                "Device disconnected during sequence playback",
                command_id=self._command_id,
                step_index=state.step_index
            ))

    # Step execution

    def _begin_step(self, index: int) -> None:
        step = self._sequence.step_at(index)
        self._reset_step()
        self._publish(EventKind.STEP_START, current_step_index=index)

        speed = self._tracker.state.speed_multiplier
        if isinstance(step, DelayStep):
            self.logger.debug("Delay step", step_index=index, duration_ms=step.duration_ms, speed=speed)
            self._wait = self.timing.start_wait(step.duration_ms, speed)
            return

        config = self._config_for(step)
        command = build_device_command(step)
        try:
            command_id = self.correlator.send(command)
        except CommandSendError as e:
            self._fail(e)
            return

        timeout_ms = ack_timeout_ms(step, config)
        self._command_id = command_id
        self._ack_future = self.correlator.future(command_id)
        self._wait = self.timing.start_wait(timeout_ms, speed)
        self._tracker.update(pending_command_id=command_id)

        self.logger.info(
            "Action step sent",
            step_index=index,
            device_id=step.device_id,
            action=step.action,
            command_id=command_id,
            timeout_ms=timeout_ms
        )

    def _advance(self) -> None:
        """Collect step progress and complete the step when it is satisfied."""
        if self._sequence is None:
            return

        if self._ack_future is not None and self._ack_future.done() and self._ack is None:
            self._ack = self._ack_future.result()
        if self._wait is not None and self._wait.fired:
            self._timer_elapsed = True

        # Completion is deferred while paused and applied on resume
        if self._tracker.phase != RunPhase.RUNNING:
            return

        step = self._sequence.step_at(self._tracker.state.step_index)
        if isinstance(step, DelayStep):
            if self._timer_elapsed:
                self._complete_step()
            return

        if self._ack is None and self._timer_elapsed:
            self.correlator.expire(self._command_id)
            self._ack = self._ack_future.result()

        if self._ack is not None:
            self._finish_action(step, self._ack)

    def _finish_action(self, step: ActionStep, ack: AckResult) -> None:
        if ack.status == AckStatus.ACKNOWLEDGED:
            self._complete_step()

        elif ack.status == AckStatus.REJECTED:
            error = DeviceCommandRejected(
                f"Device rejected {step.action} on {step.device_id}",
                command_id=ack.command_id,
                detail=ack.detail
            )
            if self.config.ack.fail_on_device_error:
                self._fail(error)
            else:
                self.logger.warning("Device reported an error; continuing",
                                    command_id=ack.command_id, detail=ack.detail)
                self._complete_step()

        elif ack.status == AckStatus.TIMED_OUT:
            error = AckTimeout(
                f"No acknowledgment for {step.action} on {step.device_id}",
                command_id=ack.command_id,
                timeout_ms=self._wait.duration_ms if self._wait else None
            )
            if self.config.ack.timeout_policy == "fail":
                self._fail(error)
            else:
                self.logger.warning(
                    "Acknowledgment timed out; continuing",
                    command_id=error.command_id,
                    device_id=step.device_id,
                    timeout_ms=error.timeout_ms
                )
                self._complete_step()

    def _complete_step(self) -> None:
        state = self._tracker.state
        index = state.step_index

        if self._wait is not None and not self._wait.done:
            self.timing.cancel(self._wait)
        self._publish(EventKind.STEP_COMPLETE, current_step_index=index)

        if index + 1 < state.total_steps:
            self._tracker.transition(RunTrigger.ADVANCE, step_index=index + 1, pending_command_id=None)
            self._begin_step(index + 1)
            return

        state = self._tracker.transition(RunTrigger.FINISH, step_index=state.total_steps,
                                         pending_command_id=None)
        self.logger.info("Sequence completed", sequence_id=state.sequence_id,
                         total_steps=state.total_steps)
        self._publish(EventKind.COMPLETED)
        self._end_run()

    def _fail(self, error: PlaybackError) -> None:
        self._cancel_waits()
        state = self._tracker.transition(RunTrigger.FAIL, pending_command_id=None)
        self.logger.error(
            "Sequence failed",
            sequence_id=state.sequence_id,
            step_index=state.step_index,
            error=str(error),
            error_type=type(error).__name__,
            context=error.context or None
        )
        self._publish(EventKind.ERROR, error=str(error))
        self._end_run()

    # Helpers

    def _publish(self, kind: EventKind, **fields: Any) -> None:
        state = self._tracker.state
        event_fields: dict[str, Any] = {
            "sequence_id": state.sequence_id,
            "total_steps": state.total_steps,
        }
        if kind in (EventKind.STEP_START, EventKind.STEP_COMPLETE, EventKind.PAUSED,
                    EventKind.RESUMED, EventKind.STOPPED, EventKind.ERROR):
            event_fields["current_step_index"] = state.step_index
        if kind == EventKind.COMPLETED:
            event_fields["name"] = state.sequence_name
        event_fields.update(fields)
        self.publisher.publish(SequenceEvent(kind=kind, **event_fields))

    def _require_phase(self, command: str, *phases: RunPhase) -> None:
        phase = self._tracker.phase
        if phase not in phases:
            raise NotRunning(
                f"Cannot {command.replace('_', ' ')} while {phase.value}",
                command=command,
                current_phase=phase.value
            )

    def _clamp_speed(self, speed_multiplier: Any) -> float:
        if not is_finite_number(speed_multiplier) or speed_multiplier <= 0:
            raise InvalidSpeed(
                f"Speed multiplier must be a positive number, got {speed_multiplier!r}",
                value=speed_multiplier,
                current_phase=self._tracker.phase.value
            )
        playback = self.config.playback
        return clamp(float(speed_multiplier), playback.min_speed, playback.max_speed)

    def _config_for(self, step: Step) -> DefaultConfig:
        """Parameters for a step, with devices.yaml overrides for its device."""
        if self.config_loader is None or not isinstance(step, ActionStep):
            return self.config
        if step.device_id not in self._device_configs:
            self._device_configs[step.device_id] = self.config_loader.load(device_id=step.device_id)
        return self._device_configs[step.device_id]

    def _cancel_waits(self) -> None:
        if self._wait is not None:
            self.timing.cancel(self._wait)
        self.correlator.cancel_all()

    def _end_run(self) -> None:
        self._tracker.reset()
        self._clear_run()

    def _reset_step(self) -> None:
        self._wait: Optional[WaitHandle] = None
        self._ack_future: Optional[asyncio.Future] = None
        self._ack: Optional[AckResult] = None
        self._command_id: Optional[str] = None
        self._timer_elapsed = False
        self._paused_remaining_ms: Optional[float] = None

    def _clear_run(self) -> None:
        self._sequence: Optional[Sequence] = None
        self._reset_step()
