import json
from unittest.mock import AsyncMock

import pytest

from meshgate.hardware.ws_transport import WsMeshTransport
from meshgate.protocol import TransportError


class TestWsMeshTransport:
    def setup_method(self):
        self.transport = WsMeshTransport("ws://bridge.local:81")
        self.received = []
        self.transport.set_rx_callback(lambda data, src: self.received.append((data, src)))

    @pytest.mark.asyncio
    async def test_inbound_frame(self):
        self.transport._handle_message(json.dumps({"src": 7, "data": "7B7D2A"}))
        assert await self.transport.poll() == 1
        assert self.received == [(b"{}*", 7)]

    @pytest.mark.asyncio
    @pytest.mark.parametrize(
        "message",
        ["not json", "[1,2]", '{"status":"rx started"}', '{"src":1,"data":"XYZ"}'],
    )
    async def test_ignored_messages(self, message):
        self.transport._handle_message(message)
        assert await self.transport.poll() == 0

    @pytest.mark.asyncio
    @pytest.mark.parametrize(
        "message",
        ['{"src":70000,"data":"00"}', '{"src":-1,"data":"00"}', '{"src":true,"data":"00"}'],
    )
    async def test_out_of_range_source_is_ignored(self, message):
        self.transport._handle_message(message)
        assert await self.transport.poll() == 0
        assert self.received == []

    def test_overrun(self):
        transport = WsMeshTransport(max_pending=1)
        transport._handle_message('{"src":1,"data":"00"}')
        transport._handle_message('{"src":1,"data":"01"}')
        assert len(transport._pending) == 1

    @pytest.mark.asyncio
    async def test_send_encodes_hex(self):
        ws = AsyncMock()
        self.transport.ws = ws
        self.transport._connected = True

        await self.transport.send(b"\x01\xab", 42)

        sent = json.loads(ws.send.await_args.args[0])
        assert sent == {"cmd": "TX", "dest": 42, "data": "01AB"}

    @pytest.mark.asyncio
    async def test_send_when_bridge_unreachable(self, monkeypatch):
        monkeypatch.setattr(self.transport, "_ensure", AsyncMock())
        with pytest.raises(TransportError):
            await self.transport.send(b"\x01", 1)
