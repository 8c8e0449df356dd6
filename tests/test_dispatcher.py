import asyncio
from unittest.mock import AsyncMock

import pytest

from meshgate.node.dispatcher import Dispatcher
from meshgate.node.events import EventService, GatewayEvents
from meshgate.protocol import BusError, FrameCodec, TransportError, encode_frame


class MockTransport:
    """Mock mesh transport for testing the dispatcher."""

    def __init__(self):
        self.rx_callback = None
        self.sent = []
        self.pending = []
        self.fail_send = False

    def set_rx_callback(self, callback):
        self.rx_callback = callback

    async def start(self):
        pass

    async def stop(self):
        pass

    async def send(self, data: bytes, dest: int) -> None:
        if self.fail_send:
            raise TransportError("link down")
        self.sent.append((data, dest))

    async def poll(self) -> int:
        count = 0
        while self.pending:
            data, src = self.pending.pop(0)
            self.rx_callback(data, src)
            count += 1
        return count


class RecordingSubscriber:
    def __init__(self):
        self.events = []

    async def handle_event(self, event_type, data):
        self.events.append((event_type, data))


class TestDispatcher:
    def setup_method(self):
        self.transport = MockTransport()
        self.dispatcher = Dispatcher(self.transport, max_pending=4)
        self.handler = AsyncMock()
        self.dispatcher.register_handler(self.handler)

    def test_registers_rx_callback(self):
        assert self.transport.rx_callback == self.dispatcher._on_frame_received

    def test_register_non_callable_handler(self):
        with pytest.raises(ValueError):
            self.dispatcher.register_handler(object())

    @pytest.mark.asyncio
    async def test_valid_frame_reaches_handler(self):
        await self.dispatcher.process_frame(encode_frame(b'{"status":0}'), 9)
        self.handler.assert_awaited_once_with(b'{"status":0}', 9)

    @pytest.mark.asyncio
    async def test_corrupted_frame_is_dropped(self):
        frame = bytearray(encode_frame(b"hello"))
        frame[0] ^= 0x01
        await self.dispatcher.process_frame(bytes(frame), 3)
        self.handler.assert_not_awaited()
        assert self.dispatcher.stats["frames_dropped"] == 1

    @pytest.mark.asyncio
    async def test_short_frame_is_dropped(self):
        await self.dispatcher.process_frame(b"\x01", 3)
        self.handler.assert_not_awaited()
        assert self.dispatcher.stats["frames_dropped"] == 1

    @pytest.mark.asyncio
    async def test_drop_publishes_event(self):
        events = EventService()
        subscriber = RecordingSubscriber()
        events.subscribe(GatewayEvents.MESSAGE_DROPPED, subscriber)
        dispatcher = Dispatcher(self.transport, event_service=events)

        await dispatcher.process_frame(b"\x01", 5)

        assert subscriber.events[0][0] == GatewayEvents.MESSAGE_DROPPED
        assert subscriber.events[0][1]["src"] == 5

    @pytest.mark.asyncio
    async def test_no_handler_drops_silently(self):
        dispatcher = Dispatcher(MockTransport())
        await dispatcher.process_frame(encode_frame(b"x"), 1)
        assert dispatcher.stats["frames_dropped"] == 1

    @pytest.mark.asyncio
    async def test_send_payload_frames_and_sends(self):
        assert await self.dispatcher.send_payload(b"abc", 42) is True
        assert self.transport.sent == [(encode_frame(b"abc"), 42)]
        assert self.dispatcher.stats["frames_sent"] == 1

    @pytest.mark.asyncio
    async def test_send_payload_oversize(self):
        dispatcher = Dispatcher(self.transport, codec=FrameCodec(4))
        assert await dispatcher.send_payload(b"toolong", 1) is False
        assert self.transport.sent == []
        assert dispatcher.stats["send_failures"] == 1

    @pytest.mark.asyncio
    async def test_send_payload_transport_failure(self):
        self.transport.fail_send = True
        assert await self.dispatcher.send_payload(b"abc", 1) is False
        assert self.dispatcher.stats["send_failures"] == 1

    @pytest.mark.asyncio
    async def test_receive_overrun(self):
        for i in range(6):
            self.dispatcher._on_frame_received(encode_frame(b"x"), i)
        assert self.dispatcher.pending == 4
        assert self.dispatcher.stats["overruns"] == 2
        assert self.dispatcher.stats["frames_received"] == 6

    @pytest.mark.asyncio
    async def test_poll_and_consume_loops(self):
        self.transport.pending.append((encode_frame(b"one"), 1))
        self.transport.pending.append((encode_frame(b"two"), 2))

        self.dispatcher.poll_interval = 0.001
        tasks = [
            asyncio.create_task(self.dispatcher.poll_forever()),
            asyncio.create_task(self.dispatcher.run_forever()),
        ]
        try:
            for _ in range(100):
                if self.handler.await_count == 2:
                    break
                await asyncio.sleep(0.01)
        finally:
            for task in tasks:
                task.cancel()
            await asyncio.gather(*tasks, return_exceptions=True)

        assert [c.args for c in self.handler.await_args_list] == [(b"one", 1), (b"two", 2)]

    @pytest.mark.asyncio
    async def test_handler_library_error_is_contained(self):
        self.handler.side_effect = BusError("broker gone")
        await self.dispatcher.process_frame(encode_frame(b"x"), 1)
        assert self.dispatcher.stats["frames_dropped"] == 1

    @pytest.mark.asyncio
    @pytest.mark.parametrize("src", [70000, -1, True, "7", None])
    async def test_invalid_source_id_is_dropped(self, src):
        await self.dispatcher.process_frame(encode_frame(b"x"), src)
        self.handler.assert_not_awaited()
        assert self.dispatcher.stats["frames_dropped"] == 1

    @pytest.mark.asyncio
    async def test_unexpected_handler_error_keeps_consumer_running(self):
        """Test a handler crash on one frame does not stop the consume loop."""
        self.handler.side_effect = [RuntimeError("boom"), None]
        self.dispatcher._on_frame_received(encode_frame(b"one"), 1)
        self.dispatcher._on_frame_received(encode_frame(b"two"), 2)

        task = asyncio.create_task(self.dispatcher.run_forever())
        try:
            for _ in range(100):
                if self.handler.await_count == 2:
                    break
                await asyncio.sleep(0.01)
            assert not task.done()
        finally:
            task.cancel()
            await asyncio.gather(task, return_exceptions=True)

        assert [c.args for c in self.handler.await_args_list] == [(b"one", 1), (b"two", 2)]
        assert self.dispatcher.stats["frames_dropped"] == 1
