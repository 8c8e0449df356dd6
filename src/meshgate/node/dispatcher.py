from __future__ import annotations

import asyncio
import logging
from typing import Optional

from ..hardware.base import MeshTransport
from ..protocol import (
    FrameCodec,
    FrameError,
    MeshGateError,
    OversizeFrameError,
    TransportError,
)
from ..protocol.constants import MAX_NODE_ID, POLL_INTERVAL
from .events import GatewayEvents
from .handlers.base import BaseHandler

MAX_PENDING_FRAMES = 64  # inbound frames buffered between poll and consumer


class Dispatcher:
    """Moves frames between a mesh transport and a payload handler.

    Inbound frames are queued by the transport rx callback, checked against
    the envelope checksum and handed to the registered handler as bare
    payloads. Outbound payloads are wrapped in an envelope and sent.
    """

    # ------------------------------------------------------------------
    # Setup and configuration
    # ------------------------------------------------------------------

    def __init__(
        self,
        transport: MeshTransport,
        *,
        codec: Optional[FrameCodec] = None,
        poll_interval: float = POLL_INTERVAL,
        max_pending: int = MAX_PENDING_FRAMES,
        event_service=None,
    ) -> None:
        self.transport = transport
        self.codec = codec or FrameCodec()
        self.poll_interval = poll_interval
        self.event_service = event_service

        self._handler: Optional[BaseHandler] = None
        self._queue: asyncio.Queue[tuple[bytes, int]] = asyncio.Queue(maxsize=max_pending)
        self._logger = logging.getLogger("Dispatcher")

        self.stats = {
            "frames_received": 0,
            "frames_dropped": 0,
            "frames_sent": 0,
            "send_failures": 0,
            "overruns": 0,
        }

        self.transport.set_rx_callback(self._on_frame_received)
        self._logger.info("Registered RX callback with transport")

    def register_handler(self, handler: BaseHandler) -> None:
        """Set the handler that receives every valid inbound payload."""
        if not callable(handler):
            raise ValueError("Handler must be callable as handler(payload, src)")
        self._handler = handler

    # ------------------------------------------------------------------
    # RX path
    # ------------------------------------------------------------------

    def _on_frame_received(self, data: bytes, src: int) -> None:
        """Called by the transport from poll(); never blocks."""
        self.stats["frames_received"] += 1
        try:
            self._queue.put_nowait((bytes(data), src))
        except asyncio.QueueFull:
            self.stats["overruns"] += 1
            self.stats["frames_dropped"] += 1
            self._logger.warning(f"Receive overrun, dropping {len(data)}-byte frame from {src}")

    async def process_frame(self, data: bytes, src: int) -> None:
        if isinstance(src, bool) or not isinstance(src, int) or not (0 <= src <= MAX_NODE_ID):
            self.stats["frames_dropped"] += 1
            self._logger.warning(f"Dropping frame with invalid source id {src!r}")
            await self._publish_drop(src, "invalid source id")
            return

        try:
            payload = self.codec.decode(data)
        except FrameError as e:
            self.stats["frames_dropped"] += 1
            self._logger.warning(f"Dropping frame from {src}: {e}")
            await self._publish_drop(src, str(e))
            return

        self._logger.debug(f"RX {len(payload)}-byte payload from {src}")
        if self._handler is None:
            self.stats["frames_dropped"] += 1
            self._logger.debug(f"No handler registered, dropping payload from {src}")
            return

        try:
            await self._handler(payload, src)
        except MeshGateError as e:
            self.stats["frames_dropped"] += 1
            self._logger.warning(f"Handler error for payload from {src}: {e}")
        except Exception as e:
            self.stats["frames_dropped"] += 1
            self._logger.error(f"Unexpected handler error for payload from {src}: {e!r}")

    async def _publish_drop(self, src, reason: str) -> None:
        if self.event_service:
            await self.event_service.publish(
                GatewayEvents.MESSAGE_DROPPED, {"src": src, "reason": reason}
            )

    async def run_forever(self) -> None:
        """Consume the inbound queue (call this in an asyncio task)."""
        while True:
            data, src = await self._queue.get()
            try:
                await self.process_frame(data, src)
            finally:
                self._queue.task_done()

    async def poll_forever(self) -> None:
        """Drive transport.poll() at a fixed cadence (call this in an asyncio task)."""
        while True:
            try:
                await self.transport.poll()
            except TransportError as e:
                self._logger.warning(f"Transport poll failed: {e}")
            await asyncio.sleep(self.poll_interval)

    # ------------------------------------------------------------------
    # TX path
    # ------------------------------------------------------------------

    async def send_payload(self, payload: bytes, dest: int) -> bool:
        """Frame `payload` and transmit it to `dest`. Returns False on failure."""
        try:
            frame = self.codec.encode(payload)
            await self.transport.send(frame, dest)
        except (OversizeFrameError, TransportError) as e:
            self.stats["send_failures"] += 1
            self._logger.warning(f"Send to {dest} failed: {e}")
            return False

        self.stats["frames_sent"] += 1
        self._logger.debug(f"TX {len(frame)}-byte frame to {dest}")
        return True

    @property
    def pending(self) -> int:
        return self._queue.qsize()
