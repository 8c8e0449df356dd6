import json
from unittest.mock import AsyncMock, Mock

import pytest

from meshgate.node.events import GatewayEvents
from meshgate.node.handlers import BaseHandler, RelayCommandHandler, TelemetryForwardHandler
from meshgate.node.node import ActuatorNode
from meshgate.protocol import BusError, decode_frame, encode_frame

TELEMETRY = (
    b'{"temperature":21.5,"humidity":40.2,"co2":415,"light":120,"motion":false,"leak":false}'
)


class MockEventService:
    def __init__(self):
        self.published = []

    async def publish(self, event_type, data):
        self.published.append((event_type, data))

    def types(self):
        return [event_type for event_type, _ in self.published]


def test_base_handler_is_abstract():
    """Test that BaseHandler cannot be instantiated directly."""
    with pytest.raises(TypeError):
        BaseHandler()


class TestRelayCommandHandler:
    def setup_method(self):
        self.relay = Mock()
        self.send_fn = AsyncMock(return_value=True)
        self.events = MockEventService()
        self.handler = RelayCommandHandler(self.relay, self.send_fn, event_service=self.events)

    @pytest.mark.asyncio
    async def test_switches_relay_and_acknowledges(self):
        command = await self.handler(b'{"relay":1,"state":1}', 0)

        self.relay.set.assert_called_once_with(1, True)
        self.send_fn.assert_awaited_once_with(b'{"status":0}', 0)
        assert command.relay == 1
        assert self.events.types() == [GatewayEvents.RELAY_SWITCHED, GatewayEvents.ACK_SENT]

    @pytest.mark.asyncio
    async def test_state_zero_switches_off(self):
        await self.handler(b'{"relay":2,"state":0}', 5)
        self.relay.set.assert_called_once_with(2, False)

    @pytest.mark.asyncio
    async def test_relay_switched_before_ack(self):
        order = []
        self.relay.set.side_effect = lambda *a: order.append("set")
        self.send_fn.side_effect = lambda *a: order.append("ack") or True
        await self.handler(b'{"relay":1,"state":1}', 0)
        assert order == ["set", "ack"]

    @pytest.mark.asyncio
    @pytest.mark.parametrize(
        "payload",
        [b'{"relay":1}', b'{"relay":"1","state":1}', b'{"relay":9,"state":1}', b"nonsense"],
    )
    async def test_invalid_command_has_no_effect(self, payload):
        assert await self.handler(payload, 0) is None
        self.relay.set.assert_not_called()
        self.send_fn.assert_not_awaited()
        assert self.events.types() == [GatewayEvents.MESSAGE_DROPPED]

    @pytest.mark.asyncio
    async def test_failed_ack_send(self):
        self.send_fn.return_value = False
        command = await self.handler(b'{"relay":1,"state":1}', 0)
        assert command is not None
        assert GatewayEvents.ACK_SENT not in self.events.types()

    @pytest.mark.asyncio
    async def test_works_without_event_service(self):
        handler = RelayCommandHandler(self.relay, self.send_fn)
        await handler(b'{"relay":1,"state":1}', 0)
        self.relay.set.assert_called_once()


class TestTelemetryForwardHandler:
    def setup_method(self):
        self.bus = Mock()
        self.bus.publish = AsyncMock()
        self.events = MockEventService()
        self.handler = TelemetryForwardHandler(self.bus, event_service=self.events)

    @pytest.mark.asyncio
    async def test_publishes_verbatim(self):
        report = await self.handler(TELEMETRY, 7)

        self.bus.publish.assert_awaited_once_with("home/sensors/7", TELEMETRY, qos=1)
        assert report.co2 == 415
        assert self.events.types() == [GatewayEvents.TELEMETRY_PUBLISHED]

    @pytest.mark.asyncio
    async def test_custom_prefix_and_qos(self):
        handler = TelemetryForwardHandler(self.bus, topic_prefix="lab/env", qos=0)
        await handler(TELEMETRY, 3)
        self.bus.publish.assert_awaited_once_with("lab/env/3", TELEMETRY, qos=0)

    @pytest.mark.asyncio
    async def test_acknowledgement_is_not_forwarded(self):
        assert await self.handler(b'{"status":0}', 42) is None
        self.bus.publish.assert_not_awaited()
        assert self.events.published == [(GatewayEvents.ACK_RECEIVED, {"src": 42})]

    @pytest.mark.asyncio
    async def test_invalid_telemetry_is_dropped(self):
        data = json.loads(TELEMETRY)
        del data["co2"]
        assert await self.handler(json.dumps(data).encode(), 7) is None
        self.bus.publish.assert_not_awaited()
        assert self.events.types() == [GatewayEvents.MESSAGE_DROPPED]

    @pytest.mark.asyncio
    async def test_bus_error_is_dropped(self):
        self.bus.publish.side_effect = BusError("not connected")
        assert await self.handler(TELEMETRY, 7) is None
        assert self.events.types() == [GatewayEvents.MESSAGE_DROPPED]


class TestActuatorNode:
    @pytest.mark.asyncio
    async def test_command_frame_switches_relay_and_acks(self):
        transport = Mock()
        transport.send = AsyncMock()
        relay = Mock()
        node = ActuatorNode(transport, relay)

        await node.dispatcher.process_frame(encode_frame(b'{"relay":2,"state":1}'), 0)

        relay.set.assert_called_once_with(2, True)
        frame, dest = transport.send.await_args.args
        assert dest == 0
        assert decode_frame(frame) == b'{"status":0}'

    @pytest.mark.asyncio
    async def test_corrupted_frame_is_ignored(self):
        transport = Mock()
        transport.send = AsyncMock()
        relay = Mock()
        node = ActuatorNode(transport, relay)

        frame = bytearray(encode_frame(b'{"relay":2,"state":1}'))
        frame[-1] ^= 0x01
        await node.dispatcher.process_frame(bytes(frame), 0)

        relay.set.assert_not_called()
        transport.send.assert_not_awaited()
