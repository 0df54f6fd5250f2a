"""
Sequence event publication.

Every run transition is published as a SequenceEvent to all registered
observers, in order, exactly once. The observer list is replaced rather
than mutated on (un)registration, so an observer that subscribes or
unsubscribes during delivery never disturbs the event in flight.
"""

import asyncio
from dataclasses import dataclass, field
from datetime import datetime
from enum import Enum
from typing import Any, Callable, Optional

import structlog

from ..utils.time import format_timestamp, utc_now

logger = structlog.get_logger(__name__)


class EventKind(str, Enum):
    """Kinds of run events observers receive."""
    STEP_START = "step-start"
    STEP_COMPLETE = "step-complete"
    PAUSED = "paused"
    RESUMED = "resumed"
    STOPPED = "stopped"
    COMPLETED = "completed"
    ERROR = "error"
    SPEED_CHANGED = "speed-changed"


@dataclass(frozen=True)
class SequenceEvent:
    """One run transition as seen by observers."""
    kind: EventKind
    sequence_id: Optional[str] = None
    current_step_index: Optional[int] = None
    total_steps: Optional[int] = None
    name: Optional[str] = None
    speed_multiplier: Optional[float] = None
    error: Optional[str] = None
    timestamp: datetime = field(default_factory=utc_now)

    def to_payload(self) -> dict[str, Any]:
        """Broadcast payload; optional fields are omitted when unset."""
        payload: dict[str, Any] = {
            "type": "sequence-event",
            "event": self.kind.value,
        }
        optional = {
            "sequenceId": self.sequence_id,
            "currentStepIndex": self.current_step_index,
            "totalSteps": self.total_steps,
            "name": self.name,
            "speedMultiplier": self.speed_multiplier,
            "error": self.error,
        }
        payload.update({k: v for k, v in optional.items() if v is not None})
        payload["timestamp"] = format_timestamp(self.timestamp)
        return payload


EventObserver = Callable[[SequenceEvent], None]


class EventPublisher:
    """Fan-out of sequence events to observers."""

    def __init__(self) -> None:
        self._observers: tuple[EventObserver, ...] = ()

    @property
    def observer_count(self) -> int:
        return len(self._observers)

    def subscribe(self, observer: EventObserver) -> Callable[[], None]:
        """
        Register an observer.

        Returns:
            Callable that removes the observer again
        """
        self._observers = self._observers + (observer,)

        def unsubscribe() -> None:
            self.unsubscribe(observer)

        return unsubscribe

    def unsubscribe(self, observer: EventObserver) -> bool:
        """Remove an observer; returns False if it was not registered."""
        if observer not in self._observers:
            return False
        remaining = list(self._observers)
        remaining.remove(observer)
        self._observers = tuple(remaining)
        return True

    def publish(self, event: SequenceEvent) -> int:
        """
        Deliver an event to every observer registered at call time.

        An observer that raises is logged and skipped.

        Returns:
            Number of observers that accepted the event
        """
        delivered = 0
        for observer in self._observers:
            try:
                observer(event)
                delivered += 1
            except Exception as e:
                logger.error(
                    "Event observer failed",
                    event_kind=event.kind.value,
                    sequence_id=event.sequence_id,
                    observer=getattr(observer, "__qualname__", repr(observer)),
                    error=str(e),
                    exc_info=True
                )

        logger.debug("Event published", event_kind=event.kind.value,
                     sequence_id=event.sequence_id, step_index=event.current_step_index,
                     observers=delivered)
        return delivered


class EventRecorder:
    """Observer that keeps every event it receives."""

    def __init__(self) -> None:
        self.events: list[SequenceEvent] = []
        self._waiters: list[tuple[EventKind, int, asyncio.Future]] = []

    def __call__(self, event: SequenceEvent) -> None:
        self.events.append(event)
        for waiter in list(self._waiters):
            kind, count, future = waiter
            if not future.done() and self.count(kind) >= count:
                future.set_result(event)
                self._waiters.remove(waiter)

    def kinds(self) -> list[str]:
        return [e.kind.value for e in self.events]

    def payloads(self) -> list[dict[str, Any]]:
        return [e.to_payload() for e in self.events]

    def of_kind(self, kind: EventKind) -> list[SequenceEvent]:
        return [e for e in self.events if e.kind == kind]

    def count(self, kind: EventKind) -> int:
        return len(self.of_kind(kind))

    def clear(self) -> None:
        self.events.clear()

    async def wait_for(self, kind: EventKind, timeout: float = 5.0, count: int = 1) -> SequenceEvent:
        """
        Wait until at least ``count`` events of a kind have been recorded.

        Returns:
            The most recent event of that kind

        Raises:
            asyncio.TimeoutError: If the events do not arrive in time
        """
        if self.count(kind) >= count:
            return self.of_kind(kind)[-1]

        future = asyncio.get_running_loop().create_future()
        waiter = (kind, count, future)
        self._waiters.append(waiter)
        try:
            return await asyncio.wait_for(future, timeout)
        finally:
            if waiter in self._waiters:
                self._waiters.remove(waiter)
