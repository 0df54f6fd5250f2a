"""
Speed-scaled waits that survive pause, resume and speed changes.

Each wait tracks its remaining time in nominal milliseconds, the duration
it would take at speed 1.0. The effective time left is always the nominal
remainder divided by the current speed, so a speed change only rescales
what has not yet elapsed. Timers run on the event loop's monotonic clock.
"""

import asyncio
import itertools
from typing import Optional

import structlog

from ..utils.time import ms_to_seconds

logger = structlog.get_logger(__name__)

_handle_ids = itertools.count(1)


class WaitHandle:
    """
    A single scheduled wait.

    ``future`` resolves with None when the wait elapses and is cancelled
    when the wait is discarded; it resolves at most once.
    """

    def __init__(self, future: asyncio.Future, duration_ms: float, speed: float):
        self.id = next(_handle_ids)
        self.future = future
        self.duration_ms = duration_ms
        self.speed = speed
        self.speed_at_pause: Optional[float] = None
        self.paused = False
        self._remaining_nominal_ms = max(duration_ms, 0.0)
        self._armed_at: Optional[float] = None
        self._timer: Optional[asyncio.TimerHandle] = None
        self._generation = 0

    @property
    def fired(self) -> bool:
        return self.future.done() and not self.future.cancelled()

    @property
    def cancelled(self) -> bool:
        return self.future.cancelled()

    @property
    def done(self) -> bool:
        return self.future.done()

    def __repr__(self) -> str:
        state = "fired" if self.fired else "cancelled" if self.cancelled else \
            "paused" if self.paused else "running"
        return f"<WaitHandle {self.id} {self.duration_ms}ms x{self.speed} {state}>"


class TimingController:
    """Creates and manipulates speed-scaled waits on one event loop."""

    def __init__(self, loop: Optional[asyncio.AbstractEventLoop] = None):
        self._loop = loop

    @property
    def loop(self) -> asyncio.AbstractEventLoop:
        if self._loop is None:
            self._loop = asyncio.get_running_loop()
        return self._loop

    def start_wait(self, duration_ms: float, speed: float) -> WaitHandle:
        """
        Schedule a wait of ``duration_ms / speed`` effective milliseconds.

        Args:
            duration_ms: Nominal duration at speed 1.0; negative values wait zero
            speed: Positive speed multiplier

        Returns:
            Handle tracking the wait
        """
        handle = WaitHandle(self.loop.create_future(), duration_ms, speed)
        self._arm(handle)
        return handle

    def remaining_ms(self, handle: WaitHandle) -> float:
        """Effective milliseconds left at the handle's current speed."""
        if handle.done:
            return 0.0
        if handle.paused:
            return handle._remaining_nominal_ms / (handle.speed_at_pause or handle.speed)
        return self._nominal_left(handle) / handle.speed

    def pause(self, handle: WaitHandle) -> float:
        """
        Freeze a wait.

        Idempotent: pausing a paused handle returns the same remainder.

        Returns:
            Remaining effective milliseconds at the speed in force when paused
        """
        if handle.done:
            return 0.0

        if not handle.paused:
            handle._remaining_nominal_ms = self._nominal_left(handle)
            self._disarm(handle)
            handle.paused = True
            handle.speed_at_pause = handle.speed

        return handle._remaining_nominal_ms / handle.speed_at_pause

    def resume(
        self,
        handle: WaitHandle,
        remaining_ms: Optional[float] = None,
        new_speed: Optional[float] = None
    ) -> None:
        """
        Re-arm a paused wait.

        The remainder is rescaled by ``speed_at_pause / new_speed``. Without
        ``remaining_ms`` the value recorded at pause is used; without
        ``new_speed`` the last speed given to change_speed (or the speed at
        pause) is used.
        """
        if handle.done or not handle.paused:
            return

        speed_at_pause = handle.speed_at_pause or handle.speed
        if remaining_ms is not None:
            handle._remaining_nominal_ms = max(remaining_ms, 0.0) * speed_at_pause

        handle.speed = new_speed if new_speed is not None else handle.speed
        handle.paused = False
        handle.speed_at_pause = None
        self._arm(handle)

    def change_speed(self, handle: WaitHandle, new_speed: float) -> None:
        """
        Apply a new speed to a wait without losing progress.

        While paused the speed is only recorded and takes effect at resume.
        """
        if handle.done:
            return

        if handle.paused:
            handle.speed = new_speed
            return

        handle._remaining_nominal_ms = self._nominal_left(handle)
        self._disarm(handle)
        handle.speed = new_speed
        self._arm(handle)

    def cancel(self, handle: WaitHandle) -> None:
        """Discard a wait; it will never fire afterwards."""
        self._disarm(handle)
        if not handle.future.done():
            handle.future.cancel()

    def _arm(self, handle: WaitHandle) -> None:
        handle._generation += 1
        handle._armed_at = self.loop.time()
        delay_ms = handle._remaining_nominal_ms / handle.speed
        handle._timer = self.loop.call_later(
            ms_to_seconds(delay_ms), self._fire, handle, handle._generation
        )

    def _disarm(self, handle: WaitHandle) -> None:
        handle._generation += 1
        if handle._timer is not None:
            handle._timer.cancel()
            handle._timer = None
        handle._armed_at = None

    def _nominal_left(self, handle: WaitHandle) -> float:
        if handle._armed_at is None:
            return handle._remaining_nominal_ms
        elapsed_ms = (self.loop.time() - handle._armed_at) * 1000.0
        return max(handle._remaining_nominal_ms - elapsed_ms * handle.speed, 0.0)

    def _fire(self, handle: WaitHandle, generation: int) -> None:
        if generation != handle._generation or handle.paused or handle.future.done():
            return

        handle._timer = None
        handle._armed_at = None
        handle._remaining_nominal_ms = 0.0
        handle.future.set_result(None)
        logger.debug("Wait elapsed", handle_id=handle.id, duration_ms=handle.duration_ms)
