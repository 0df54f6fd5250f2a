"""Tests for the loopback device gateway."""

import asyncio
from unittest.mock import Mock

import pytest

from sequencer_app.devices.loopback import LoopbackGateway


class TestLoopbackGateway:
    """Test simulated device behaviour."""

    @pytest.mark.asyncio
    async def test_acknowledges_with_command_id(self):
        gateway = LoopbackGateway(ack_delay_ms=5)
        received = []
        gateway.on_message(received.append)

        gateway.send({"action": "control", "componentGroup": "servos", "id": "servo1", "commandId": "cmd_1"})
        await asyncio.sleep(0.05)

        assert received == [{
            "type": "actionComplete",
            "componentId": "servo1",
            "componentGroup": "servos",
            "commandId": "cmd_1",
            "success": True,
        }]

    @pytest.mark.asyncio
    async def test_rejected_action_replies_error(self):
        gateway = LoopbackGateway(ack_delay_ms=5, reject_actions=["setAngle"])
        received = []
        gateway.on_message(received.append)

        gateway.send({"action": "control", "command": "setAngle", "commandId": "cmd_2"})
        await asyncio.sleep(0.05)

        assert received[0]["success"] is False
        assert received[0]["error"] == "Rejected by loopback"

    def test_no_auto_ack_records_only(self):
        gateway = LoopbackGateway(auto_ack=False)
        handler = Mock()
        gateway.on_message(handler)

        gateway.send({"action": "digitalWrite", "commandId": "cmd_3"})

        assert gateway.last_command["commandId"] == "cmd_3"
        handler.assert_not_called()

    @pytest.mark.asyncio
    async def test_disconnect_drops_pending_replies(self):
        gateway = LoopbackGateway(ack_delay_ms=20)
        received = []
        on_disconnect = Mock()
        gateway.on_message(received.append)
        gateway.on_disconnect(on_disconnect)

        gateway.send({"action": "control", "commandId": "cmd_4"})
        gateway.disconnect()
        gateway.disconnect()
        await asyncio.sleep(0.05)

        assert received == []
        on_disconnect.assert_called_once()
        assert not gateway.is_connected()

    def test_send_while_disconnected_raises(self):
        gateway = LoopbackGateway(auto_ack=False)
        gateway.disconnect()

        with pytest.raises(ConnectionError):
            gateway.send({"action": "control"})

        gateway.reconnect()
        gateway.send({"action": "control"})
        assert len(gateway.sent) == 1
