"""
KISS Serial Mesh Transport

Talks to a radio co-processor over a serial line. Each KISS data frame holds
the 16-bit node id (big-endian; destination on TX, source on RX) followed by
one envelope.
"""

import logging
import struct
import threading
from collections import deque
from typing import Any, Deque, Dict, Optional, Tuple

import serial

from ..protocol.errors import TransportError
from .base import MeshTransport

# KISS Protocol Constants
KISS_FEND = 0xC0  # Frame End
KISS_FESC = 0xDB  # Frame Escape
KISS_TFEND = 0xDC  # Transposed Frame End
KISS_TFESC = 0xDD  # Transposed Frame Escape

KISS_MASK_PORT = 0xF0
KISS_MASK_CMD = 0x0F
KISS_CMD_DATA = 0x00

ADDRESS_SIZE = 2
MAX_FRAME_SIZE = 512
RX_BUFFER_SIZE = 64
TX_BUFFER_SIZE = 64
DEFAULT_BAUDRATE = 115200
DEFAULT_TIMEOUT = 1.0

logger = logging.getLogger("KissMeshTransport")


def encode_kiss_frame(data: bytes, kiss_port: int = 0, cmd: int = KISS_CMD_DATA) -> bytes:
    """Wrap `data` in FEND delimiters with FEND/FESC escaped."""
    cmd_byte = ((kiss_port << 4) & KISS_MASK_PORT) | (cmd & KISS_MASK_CMD)
    frame = bytearray([KISS_FEND, cmd_byte])
    for byte in data:
        if byte == KISS_FEND:
            frame.extend([KISS_FESC, KISS_TFEND])
        elif byte == KISS_FESC:
            frame.extend([KISS_FESC, KISS_TFESC])
        else:
            frame.append(byte)
    frame.append(KISS_FEND)
    return bytes(frame)


class KissDecoder:
    """Byte-at-a-time KISS deframer; completed frames collect in `frames`."""

    def __init__(self):
        self.buffer = bytearray()
        self.in_frame = False
        self.escaped = False
        self.frames: Deque[bytes] = deque()
        self.frame_errors = 0

    def feed(self, data: bytes) -> None:
        for byte in data:
            self._decode_byte(byte)

    def _decode_byte(self, byte: int) -> None:
        if byte == KISS_FEND:
            if self.in_frame and len(self.buffer) > 1:
                self.frames.append(bytes(self.buffer))
            self.buffer.clear()
            self.in_frame = True
            self.escaped = False

        elif byte == KISS_FESC:
            if self.in_frame:
                self.escaped = True

        elif self.escaped:
            if byte == KISS_TFEND:
                self.buffer.append(KISS_FEND)
            elif byte == KISS_TFESC:
                self.buffer.append(KISS_FESC)
            else:
                self.frame_errors += 1
                logger.warning(f"Invalid KISS escape sequence: 0x{byte:02X}")
            self.escaped = False

        elif self.in_frame:
            self.buffer.append(byte)


class KissMeshTransport(MeshTransport):
    """
    Full-duplex KISS link with reader and writer threads.

    Received frames wait in a thread-safe deque until poll() hands them to the
    rx callback on the event loop.
    """

    def __init__(
        self,
        port: str,
        baudrate: int = DEFAULT_BAUDRATE,
        timeout: float = DEFAULT_TIMEOUT,
        kiss_port: int = 0,
    ):
        super().__init__()
        self.port = port
        self.baudrate = baudrate
        self.timeout = timeout
        self.kiss_port = kiss_port & 0x0F

        self.serial_conn: Optional[serial.Serial] = None
        self.is_connected = False

        self.decoder = KissDecoder()
        self.rx_queue: Deque[Tuple[bytes, int]] = deque()
        self.tx_buffer: Deque[bytes] = deque()

        self.rx_thread: Optional[threading.Thread] = None
        self.tx_thread: Optional[threading.Thread] = None
        self.stop_event = threading.Event()

        self.stats = {
            "frames_sent": 0,
            "frames_received": 0,
            "bytes_sent": 0,
            "bytes_received": 0,
            "buffer_overruns": 0,
        }

    def connect(self) -> None:
        try:
            self.serial_conn = serial.Serial(
                port=self.port,
                baudrate=self.baudrate,
                timeout=self.timeout,
                bytesize=serial.EIGHTBITS,
                parity=serial.PARITY_NONE,
                stopbits=serial.STOPBITS_ONE,
            )
        except serial.SerialException as e:
            raise TransportError(f"Failed to open {self.port}: {e}") from e

        self.is_connected = True
        self.stop_event.clear()

        self.rx_thread = threading.Thread(target=self._rx_worker, daemon=True)
        self.tx_thread = threading.Thread(target=self._tx_worker, daemon=True)
        self.rx_thread.start()
        self.tx_thread.start()

        logger.info(f"KISS serial connected to {self.port} at {self.baudrate} baud")

    def disconnect(self) -> None:
        self.is_connected = False
        self.stop_event.set()

        if self.rx_thread and self.rx_thread.is_alive():
            self.rx_thread.join(timeout=2.0)
        if self.tx_thread and self.tx_thread.is_alive():
            self.tx_thread.join(timeout=2.0)

        if self.serial_conn and self.serial_conn.is_open:
            self.serial_conn.close()

        logger.info(f"KISS serial disconnected from {self.port}")

    async def start(self) -> None:
        if not self.is_connected:
            self.connect()

    async def stop(self) -> None:
        self.disconnect()

    def get_stats(self) -> Dict[str, Any]:
        return self.stats.copy()

    async def send(self, data: bytes, dest: int) -> None:
        if not self.is_connected:
            raise TransportError(f"KISS link {self.port} not connected")
        body = struct.pack(">H", dest) + bytes(data)
        if len(body) > MAX_FRAME_SIZE:
            raise TransportError(f"Frame too large for KISS link: {len(body)}/{MAX_FRAME_SIZE}")
        if len(self.tx_buffer) >= TX_BUFFER_SIZE:
            self.stats["buffer_overruns"] += 1
            raise TransportError("TX buffer overrun")
        self.tx_buffer.append(encode_kiss_frame(body, self.kiss_port))

    def _process_received_frames(self) -> None:
        while self.decoder.frames:
            raw = self.decoder.frames.popleft()
            cmd_byte = raw[0]
            port = (cmd_byte & KISS_MASK_PORT) >> 4
            cmd = cmd_byte & KISS_MASK_CMD
            if port != self.kiss_port:
                continue
            if cmd != KISS_CMD_DATA:
                logger.debug(f"Received KISS command: cmd=0x{cmd:02X}, data={raw[1:].hex()}")
                continue

            body = raw[1:]
            if len(body) <= ADDRESS_SIZE:
                logger.warning(f"KISS data frame too short for address: {len(body)} bytes")
                continue
            if len(self.rx_queue) >= RX_BUFFER_SIZE:
                self.stats["buffer_overruns"] += 1
                logger.warning("RX buffer overrun")
                continue

            (src,) = struct.unpack(">H", body[:ADDRESS_SIZE])
            self.stats["frames_received"] += 1
            self.stats["bytes_received"] += len(body)
            self.rx_queue.append((bytes(body[ADDRESS_SIZE:]), src))

    def _rx_worker(self):
        """Background thread for receiving data"""
        while not self.stop_event.is_set() and self.is_connected:
            try:
                if self.serial_conn and self.serial_conn.in_waiting > 0:
                    self.decoder.feed(self.serial_conn.read(self.serial_conn.in_waiting))
                    self._process_received_frames()
                else:
                    self.stop_event.wait(0.01)
            except serial.SerialException as e:
                if self.is_connected:
                    logger.error(f"RX worker error: {e}")
                break

    def _tx_worker(self):
        """Background thread for sending data"""
        while not self.stop_event.is_set() and self.is_connected:
            try:
                if self.tx_buffer:
                    frame = self.tx_buffer.popleft()
                    if self.serial_conn and self.serial_conn.is_open:
                        self.serial_conn.write(frame)
                        self.serial_conn.flush()
                        self.stats["frames_sent"] += 1
                        self.stats["bytes_sent"] += len(frame)
                    else:
                        logger.warning("Serial connection not open or not available")
                else:
                    self.stop_event.wait(0.01)
            except serial.SerialException as e:
                if self.is_connected:
                    logger.error(f"TX worker error: {e}")
                break

    async def poll(self) -> int:
        delivered = 0
        while self.rx_queue:
            data, src = self.rx_queue.popleft()
            if self._rx_callback:
                self._rx_callback(data, src)
            delivered += 1
        return delivered
