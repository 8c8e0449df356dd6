import asyncio
import json
import logging
from collections import deque
from typing import Deque, Optional, Tuple

import websockets
from websockets.exceptions import ConnectionClosed, WebSocketException

from ..protocol.constants import MAX_NODE_ID
from ..protocol.errors import TransportError
from .base import MeshTransport

logger = logging.getLogger("WsMeshTransport")


class WsMeshTransport(MeshTransport):
    """Mesh transport bridged through a radio co-processor's WebSocket server.

    Outbound: ``{"cmd": "TX", "dest": <node id>, "data": "<HEX>"}``
    Inbound:  ``{"src": <node id>, "data": "<HEX>"}``
    """

    def __init__(self, url: str = "ws://192.168.0.33:81", timeout: float = 30, max_pending: int = 64):
        super().__init__()
        self.url = url
        self.ws = None
        self._connected = False
        self._connection_lock = asyncio.Lock()  # Prevent concurrent connection attempts
        self._reconnect_delay = 1.0
        self._max_reconnect_delay = 30.0
        self._timeout = timeout
        self.max_pending = max(1, max_pending)
        self._pending: Deque[Tuple[bytes, int]] = deque()
        self._reader_task: Optional[asyncio.Task] = None
        self._stopping = False

    async def _connect(self):
        async with self._connection_lock:
            if self._connected and self.ws is not None:
                return

            try:
                if self.ws is not None:
                    try:
                        await self.ws.close()
                    except Exception as e:
                        logger.debug(f"Error closing existing connection: {e}")

                self.ws = await asyncio.wait_for(websockets.connect(self.url), timeout=self._timeout)
                self._connected = True
                self._reconnect_delay = 1.0
                logger.info(f"Connected to {self.url}")

                await self.ws.send(json.dumps({"cmd": "START_RX"}))

            except (OSError, asyncio.TimeoutError, WebSocketException) as e:
                self._connected = False
                self.ws = None
                logger.error(f"Connection failed: {e}")
                await asyncio.sleep(self._reconnect_delay)
                self._reconnect_delay = min(self._reconnect_delay * 1.5, self._max_reconnect_delay)

    async def _ensure(self):
        if not self._connected:
            await self._connect()

    async def start(self) -> None:
        self._stopping = False
        await self._ensure()
        if self._reader_task is None or self._reader_task.done():
            self._reader_task = asyncio.create_task(self._read_forever())

    async def stop(self) -> None:
        self._stopping = True
        if self._reader_task is not None:
            self._reader_task.cancel()
            try:
                await self._reader_task
            except asyncio.CancelledError:
                pass
            self._reader_task = None
        if self.ws is not None:
            await self.ws.close()
        self.ws = None
        self._connected = False

    async def send(self, data: bytes, dest: int) -> None:
        await self._ensure()
        if self.ws is None or not self._connected:
            raise TransportError(f"WebSocket bridge {self.url} not connected")
        try:
            await self.ws.send(json.dumps({"cmd": "TX", "dest": dest, "data": bytes(data).hex().upper()}))
        except ConnectionClosed as e:
            self._connected = False
            self.ws = None
            raise TransportError(f"WebSocket closed during send: {e}") from e
        logger.debug(f"TX to 0x{dest:04x}: {bytes(data).hex().upper()}")

    def _handle_message(self, msg) -> None:
        try:
            pkt = json.loads(msg)
        except json.JSONDecodeError as e:
            logger.warning(f"JSON error: {e} - Raw message: {msg!r}")
            return

        if not isinstance(pkt, dict):
            logger.warning(f"Unhandled RX format: {pkt}")
            return

        hex_str = pkt.get("data")
        src = pkt.get("src")
        if not isinstance(hex_str, str) or not isinstance(src, int):
            # Status replies (e.g. to START_RX) carry no frame
            logger.debug(f"Bridge message: {pkt}")
            return
        if isinstance(src, bool) or not (0 <= src <= MAX_NODE_ID):
            logger.warning(f"Dropping frame with invalid source id {src!r}")
            return

        try:
            data = bytes.fromhex(hex_str.replace(" ", ""))
        except ValueError:
            logger.warning(f"Invalid hex payload from 0x{src:04x}: {hex_str!r}")
            return

        if len(self._pending) >= self.max_pending:
            logger.warning(f"RX overrun, dropping frame from 0x{src:04x}")
            return
        logger.debug(f"RX from 0x{src:04x}: {data.hex()}")
        self._pending.append((data, src))

    async def _read_forever(self) -> None:
        while not self._stopping:
            await self._ensure()
            if self.ws is None:
                continue
            try:
                msg = await self.ws.recv()
            except ConnectionClosed:
                logger.info("Connection closed. Reconnecting...")
                self._connected = False
                self.ws = None
                await asyncio.sleep(1)
                continue
            self._handle_message(msg)

    async def poll(self) -> int:
        delivered = 0
        while self._pending:
            data, src = self._pending.popleft()
            if self._rx_callback:
                self._rx_callback(data, src)
            delivered += 1
        return delivered
