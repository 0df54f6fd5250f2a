"""
In-process simulated controller.

Acknowledges every command after a fixed delay with the firmware's
``actionComplete`` message, echoing the ``commandId`` and a ``success``
flag. Used by the examples and tests in place of a serial or network
connection.
"""

import asyncio
from typing import Any, Iterable, Optional

import structlog

from .base import DeviceGateway, DisconnectHandler, MessageHandler

logger = structlog.get_logger(__name__)


class LoopbackGateway(DeviceGateway):
    """
    Simulated device gateway.

    Args:
        ack_delay_ms: Delay before a command is acknowledged
        auto_ack: If False, commands are recorded but never acknowledged
        reject_actions: Action names answered with ``success: false``
    """

    def __init__(
        self,
        ack_delay_ms: float = 10.0,
        auto_ack: bool = True,
        reject_actions: Optional[Iterable[str]] = None
    ):
        self.ack_delay_ms = ack_delay_ms
        self.auto_ack = auto_ack
        self.reject_actions = set(reject_actions or ())
        self.sent: list[dict[str, Any]] = []
        self._message_handlers: list[MessageHandler] = []
        self._disconnect_handlers: list[DisconnectHandler] = []
        self._connected = True
        self._pending: list[asyncio.TimerHandle] = []

    def send(self, command: dict[str, Any]) -> None:
        if not self._connected:
            raise ConnectionError("Loopback gateway is disconnected")

        self.sent.append(dict(command))
        logger.debug("Loopback command received", command=command)

        if not self.auto_ack or "commandId" not in command:
            return

        loop = asyncio.get_running_loop()
        handle = loop.call_later(self.ack_delay_ms / 1000.0, self._reply, command)
        self._pending.append(handle)

    def on_message(self, handler: MessageHandler) -> None:
        self._message_handlers.append(handler)

    def on_disconnect(self, handler: DisconnectHandler) -> None:
        self._disconnect_handlers.append(handler)

    def is_connected(self) -> bool:
        return self._connected

    def _reply(self, command: dict[str, Any]) -> None:
        if not self._connected:
            return

        rejected = command.get("action") in self.reject_actions or \
            command.get("command") in self.reject_actions
        message = {
            "type": "actionComplete",
            "componentId": command.get("id", command.get("componentId")),
            "componentGroup": command.get("componentGroup"),
            "commandId": command["commandId"],
            "success": not rejected,
        }
        if rejected:
            message["error"] = "Rejected by loopback"
        self.inject(message)

    def acknowledge(self, command_id: str, success: bool = True, error: Optional[str] = None) -> None:
        """Send an actionComplete for a specific command id by hand."""
        message: dict[str, Any] = {"type": "actionComplete", "commandId": command_id, "success": success}
        if error is not None:
            message["error"] = error
        self.inject(message)

    def inject(self, message: Any) -> None:
        """Deliver an arbitrary inbound message to every handler."""
        for handler in list(self._message_handlers):
            handler(message)

    def disconnect(self) -> None:
        """Simulate a connection loss; pending replies are dropped."""
        if not self._connected:
            return

        self._connected = False
        for handle in self._pending:
            handle.cancel()
        self._pending.clear()

        logger.info("Loopback gateway disconnected")
        for handler in list(self._disconnect_handlers):
            handler()

    def reconnect(self) -> None:
        """Restore the simulated connection."""
        self._connected = True

    @property
    def last_command(self) -> Optional[dict[str, Any]]:
        return self.sent[-1] if self.sent else None
