"""Device gateway contract used by the engine to reach hardware."""

from abc import ABC, abstractmethod
from typing import Any, Callable

MessageHandler = Callable[[Any], None]
DisconnectHandler = Callable[[], None]


class DeviceGateway(ABC):
    """
    Transport to the controller board.

    Implementations forward commands to the device and report inbound
    traffic through registered handlers. Handlers may be invoked from any
    thread; the engine marshals them onto its own event loop.
    """

    @abstractmethod
    def send(self, command: dict[str, Any]) -> None:
        """
        Forward a command to the device.

        Fire-and-forget: the acknowledgment, if any, arrives later through
        the message handler.
        """
        pass

    @abstractmethod
    def on_message(self, handler: MessageHandler) -> None:
        """Register a handler for inbound device messages (dict or raw text)."""
        pass

    @abstractmethod
    def on_disconnect(self, handler: DisconnectHandler) -> None:
        """Register a handler invoked once per connection loss."""
        pass

    def is_connected(self) -> bool:
        """Report whether the transport is currently connected."""
        return True
