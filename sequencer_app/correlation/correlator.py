"""
Command correlation between outgoing device commands and their replies.

Every command sent through the correlator carries a unique ``commandId``.
The device echoes that id (or ``originalCommandId``) in its reply, which
resolves the matching waiter exactly once. Waiters are plain asyncio
futures so the engine can include them in a single ``asyncio.wait``.
"""

import asyncio
import time
import uuid
from collections import OrderedDict
from dataclasses import dataclass, field
from enum import Enum
from typing import Any, Callable, Optional, Union

import orjson

from ..devices.base import DeviceGateway
from ..errors import Cancelled, CommandSendError
from ..logging.config import get_command_logger, log_command_ack

logger = get_command_logger(__name__)

_RECENT_RESULTS = 128


class AckStatus(str, Enum):
    """How a command wait was resolved."""
    ACKNOWLEDGED = "acknowledged"
    REJECTED = "rejected"
    TIMED_OUT = "timed_out"
    CANCELLED = "cancelled"


@dataclass(frozen=True)
class AckResult:
    """Resolution of a single command wait."""
    command_id: str
    status: AckStatus
    detail: Optional[dict[str, Any]] = None
    elapsed_ms: float = 0.0

    @property
    def success(self) -> bool:
        return self.status == AckStatus.ACKNOWLEDGED


@dataclass
class _PendingCommand:
    future: asyncio.Future
    sent_at: float
    device_id: Optional[str] = None
    command: dict[str, Any] = field(default_factory=dict)


def generate_command_id() -> str:
    """Unique id in the form ``cmd_<epoch ms>_<random>``."""
    return f"cmd_{int(time.time() * 1000)}_{uuid.uuid4().hex[:9]}"


class CommandCorrelator:
    """
    Tracks outstanding device commands.

    All methods must be called from the event loop that owns the
    correlator; gateway callbacks are marshalled there by the engine.
    """

    def __init__(
        self,
        gateway: DeviceGateway,
        id_factory: Callable[[], str] = generate_command_id
    ):
        self.gateway = gateway
        self._id_factory = id_factory
        self._pending: dict[str, _PendingCommand] = {}
        self._recent: OrderedDict[str, AckResult] = OrderedDict()

    @property
    def pending_ids(self) -> list[str]:
        return list(self._pending)

    def is_pending(self, command_id: str) -> bool:
        return command_id in self._pending

    def send(self, command: dict[str, Any]) -> str:
        """
        Attach a fresh ``commandId`` and forward the command to the gateway.

        Args:
            command: Device message without correlation id

        Returns:
            The generated command id

        Raises:
            CommandSendError: If the gateway raised while sending
        """
        loop = asyncio.get_running_loop()
        command_id = self._id_factory()
        outgoing = {**command, "commandId": command_id}
        device_id = command.get("id") or command.get("componentId")

        self._pending[command_id] = _PendingCommand(
            future=loop.create_future(),
            sent_at=loop.time(),
            device_id=device_id,
            command=outgoing,
        )

        try:
            self.gateway.send(outgoing)
        except Exception as e:
            del self._pending[command_id]
            logger.error(
                "Gateway refused command",
                command_id=command_id,
                device_id=device_id,
                error=str(e)
            )
            raise CommandSendError(
                f"Failed to send command to {device_id}: {e}",
                device_id=device_id,
                context={"command_id": command_id}
            ) from e

        logger.debug("Command sent", command_id=command_id, device_id=device_id)
        return command_id

    def future(self, command_id: str) -> asyncio.Future:
        """
        Future that resolves with the AckResult for a pending command.

        Raises:
            KeyError: If the id is not pending
        """
        return self._pending[command_id].future

    def complete(
        self,
        command_id: str,
        success: bool,
        detail: Optional[dict[str, Any]] = None
    ) -> bool:
        """
        Resolve a pending command.

        Unknown or already resolved ids are ignored.

        Returns:
            True if a waiter was resolved
        """
        status = AckStatus.ACKNOWLEDGED if success else AckStatus.REJECTED
        return self._resolve(command_id, status, detail)

    def expire(self, command_id: str) -> bool:
        """Resolve a pending command as timed out."""
        return self._resolve(command_id, AckStatus.TIMED_OUT, None)

    def cancel_all(self) -> int:
        """
        Resolve every pending command as cancelled.

        Returns:
            Number of waiters cancelled
        """
        command_ids = list(self._pending)
        for command_id in command_ids:
            self._resolve(command_id, AckStatus.CANCELLED,
                          {"message": str(Cancelled(f"Command {command_id} cancelled"))})
        return len(command_ids)

    def handle_message(self, message: Union[dict[str, Any], str, bytes]) -> Optional[str]:
        """
        Match an inbound device message against pending commands.

        Plain-text firmware output, status broadcasts and replies for ids
        that are not pending are ignored.

        Returns:
            The resolved command id, or None if the message matched nothing
        """
        if isinstance(message, (str, bytes)):
            try:
                message = orjson.loads(message)
            except orjson.JSONDecodeError:
                return None

        if not isinstance(message, dict):
            return None

        command_id = message.get("commandId") or message.get("originalCommandId")
        if not isinstance(command_id, str) or command_id not in self._pending:
            if command_id is not None:
                logger.debug("Ignoring reply for unknown command", command_id=command_id)
            return None

        # actionComplete carries an explicit success flag; older replies only a status
        success = message.get("success")
        if not isinstance(success, bool):
            success = str(message.get("status", "")).upper() != "ERROR"
        self.complete(command_id, success, message)
        return command_id

    async def await_completion(self, command_id: str, max_wait_ms: float) -> AckResult:
        """
        Wait for a command to resolve.

        A timeout expires the command and returns a TIMED_OUT result rather
        than raising.

        Raises:
            KeyError: If the id was never sent or has been forgotten
        """
        if command_id in self._recent:
            return self._recent[command_id]

        future = self.future(command_id)
        try:
            return await asyncio.wait_for(asyncio.shield(future), max(max_wait_ms, 0.0) / 1000.0)
        except asyncio.TimeoutError:
            self.expire(command_id)
            return future.result()

    def _resolve(
        self,
        command_id: str,
        status: AckStatus,
        detail: Optional[dict[str, Any]]
    ) -> bool:
        pending = self._pending.pop(command_id, None)
        if pending is None:
            logger.debug("Ignoring resolution for unknown command",
                         command_id=command_id, ack_status=status.value)
            return False

        elapsed_ms = (pending.future.get_loop().time() - pending.sent_at) * 1000.0
        result = AckResult(
            command_id=command_id,
            status=status,
            detail=detail,
            elapsed_ms=elapsed_ms,
        )

        if not pending.future.done():
            pending.future.set_result(result)

        self._recent[command_id] = result
        while len(self._recent) > _RECENT_RESULTS:
            self._recent.popitem(last=False)

        log_command_ack(logger, command_id, status.value,
                        device_id=pending.device_id, elapsed_ms=elapsed_ms)
        return True
