"""
Thread-style UDP mesh transport.

Nodes exchange one envelope per UDP datagram on port 9000. A node id is the
Thread RLOC16; its IPv6 routing locator is the mesh-local prefix followed by
the interface id ``0000:00ff:fe00:<rloc16>``. The source id of a received
datagram is the low 16 bits of the peer address.
"""

import asyncio
import ipaddress
import logging
import socket
from collections import deque
from typing import Deque, Optional, Tuple

from ..protocol.constants import MAX_NODE_ID, MESH_UDP_PORT
from ..protocol.errors import TransportError
from .base import MeshTransport

logger = logging.getLogger("UdpMeshTransport")

RLOC_IID_BASE = 0x0000_00FF_FE00_0000
DEFAULT_MAX_PENDING = 64


class _MeshDatagramProtocol(asyncio.DatagramProtocol):
    def __init__(self, owner: "UdpMeshTransport"):
        self.owner = owner

    def datagram_received(self, data: bytes, addr) -> None:
        self.owner._enqueue(data, addr[0])

    def error_received(self, exc: Exception) -> None:
        logger.warning(f"UDP socket error: {exc}")


class UdpMeshTransport(MeshTransport):
    def __init__(
        self,
        mesh_prefix: str = "fd00::",
        bind_host: str = "::",
        port: int = MESH_UDP_PORT,
        max_pending: int = DEFAULT_MAX_PENDING,
    ):
        super().__init__()
        self.network = ipaddress.IPv6Network(f"{mesh_prefix}/64", strict=False)
        self.bind_host = bind_host
        self.port = port
        self.max_pending = max(1, max_pending)
        self._pending: Deque[Tuple[bytes, int]] = deque()
        self._transport: Optional[asyncio.DatagramTransport] = None
        self.stats = {"rx": 0, "tx": 0, "overruns": 0}

    def node_address(self, node_id: int) -> str:
        """IPv6 routing locator for a 16-bit node id."""
        if not (0 <= node_id <= MAX_NODE_ID):
            raise TransportError(f"node id out of range: {node_id}")
        base = int(self.network.network_address)
        return str(ipaddress.IPv6Address(base | RLOC_IID_BASE | node_id))

    @staticmethod
    def node_id_from_address(host: str) -> int:
        """Low 16 bits of an IPv6 (or IPv4) address, scope id stripped."""
        return int(ipaddress.ip_address(host.split("%", 1)[0])) & MAX_NODE_ID

    def _enqueue(self, data: bytes, host: str) -> None:
        if len(self._pending) >= self.max_pending:
            self.stats["overruns"] += 1
            logger.warning(f"RX overrun, dropping {len(data)} byte datagram from {host}")
            return
        try:
            src = self.node_id_from_address(host)
        except ValueError:
            logger.warning(f"Datagram from unparseable address {host!r} dropped")
            return
        self.stats["rx"] += 1
        logger.debug(f"RX {len(data)} bytes from RLOC 0x{src:04x}")
        self._pending.append((bytes(data), src))

    async def start(self) -> None:
        if self._transport is not None:
            return
        loop = asyncio.get_running_loop()
        self._transport, _ = await loop.create_datagram_endpoint(
            lambda: _MeshDatagramProtocol(self),
            local_addr=(self.bind_host, self.port),
            family=socket.AF_INET6,
        )
        logger.info(f"UDP socket bound to [{self.bind_host}]:{self.port}")

    async def stop(self) -> None:
        if self._transport is not None:
            self._transport.close()
            self._transport = None
            logger.info("UDP socket closed")

    async def send(self, data: bytes, dest: int) -> None:
        if self._transport is None:
            raise TransportError("UDP transport not started")
        address = self.node_address(dest)
        try:
            self._transport.sendto(bytes(data), (address, self.port))
        except OSError as e:
            raise TransportError(f"UDP send to 0x{dest:04x} failed: {e}") from e
        self.stats["tx"] += 1
        logger.debug(f"TX {len(data)} bytes to RLOC 0x{dest:04x}")

    async def poll(self) -> int:
        delivered = 0
        while self._pending:
            data, src = self._pending.popleft()
            if self._rx_callback:
                self._rx_callback(data, src)
            delivered += 1
        return delivered
