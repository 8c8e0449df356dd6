from __future__ import annotations

import asyncio
import logging
from typing import Optional

from ..bus.base import BusClient
from ..hardware.base import MeshTransport
from ..protocol import (
    BusError,
    FrameCodec,
    RelayCommand,
    SchemaError,
    TopicPatternMismatchError,
)
from ..protocol.constants import (
    CONTROL_TOPIC_PREFIX,
    POLL_INTERVAL,
    QOS_AT_LEAST_ONCE,
    SENSOR_TOPIC_PREFIX,
)
from ..protocol.topics import command_subscription, parse_command_topic
from .dispatcher import MAX_PENDING_FRAMES, Dispatcher
from .events import GatewayEvents
from .handlers import TelemetryForwardHandler

logger = logging.getLogger("Gateway")


class Gateway:
    """Bidirectional router between the mesh and the message bus.

    Mesh -> bus: telemetry frames from node N are published on
    ``<sensor prefix>/N``. Bus -> mesh: relay commands published on
    ``<control prefix>/N`` are framed and sent to node N. The two directions
    share nothing but the transport and bus handles.
    """

    def __init__(
        self,
        transport: MeshTransport,
        bus: BusClient,
        *,
        codec: Optional[FrameCodec] = None,
        sensor_topic_prefix: str = SENSOR_TOPIC_PREFIX,
        control_topic_prefix: str = CONTROL_TOPIC_PREFIX,
        qos: int = QOS_AT_LEAST_ONCE,
        poll_interval: float = POLL_INTERVAL,
        max_pending: int = MAX_PENDING_FRAMES,
        event_service=None,
    ) -> None:
        self.transport = transport
        self.bus = bus
        self.control_topic_prefix = control_topic_prefix
        self.qos = qos
        self.event_service = event_service

        self.dispatcher = Dispatcher(
            transport,
            codec=codec,
            poll_interval=poll_interval,
            max_pending=max_pending,
            event_service=event_service,
        )
        self.telemetry_handler = TelemetryForwardHandler(
            bus, topic_prefix=sensor_topic_prefix, qos=qos, event_service=event_service
        )
        self.dispatcher.register_handler(self.telemetry_handler)

        self._bus_queue: asyncio.Queue[tuple[str, bytes]] = asyncio.Queue(maxsize=max_pending)
        self.bus.set_message_callback(self._on_bus_message)
        self._tasks: list[asyncio.Task] = []

    # ------------------------------------------------------------------
    # Bus -> mesh
    # ------------------------------------------------------------------

    def _on_bus_message(self, topic: str, payload: bytes) -> None:
        try:
            self._bus_queue.put_nowait((topic, bytes(payload)))
        except asyncio.QueueFull:
            logger.warning(f"Bus inbound queue full, dropping message on {topic}")

    async def handle_bus_message(self, topic: str, payload: bytes) -> bool:
        """Forward one control message to the mesh. Returns True if it was sent."""
        try:
            node_id = parse_command_topic(topic, self.control_topic_prefix)
            command = RelayCommand.decode(payload)
        except (TopicPatternMismatchError, SchemaError) as e:
            logger.warning(f"Dropping control message on {topic}: {e}")
            await self._publish(GatewayEvents.MESSAGE_DROPPED, {"topic": topic, "reason": str(e)})
            return False

        if not await self.dispatcher.send_payload(command.encode(), node_id):
            await self._publish(
                GatewayEvents.MESSAGE_DROPPED, {"topic": topic, "reason": "send failed"}
            )
            return False

        logger.info(f"Forwarded relay {command.relay} state {command.state} to node {node_id}")
        await self._publish(
            GatewayEvents.COMMAND_FORWARDED,
            {"dest": node_id, "relay": command.relay, "state": command.state},
        )
        return True

    async def run_bus_forever(self) -> None:
        """Consume the bus inbound queue (call this in an asyncio task)."""
        while True:
            topic, payload = await self._bus_queue.get()
            try:
                await self.handle_bus_message(topic, payload)
            finally:
                self._bus_queue.task_done()

    # ------------------------------------------------------------------
    # Lifecycle
    # ------------------------------------------------------------------

    async def start(self) -> None:
        """Open the transport, subscribe to control topics and spawn the loops."""
        await self.transport.start()
        try:
            await self.bus.subscribe(command_subscription(self.control_topic_prefix), qos=self.qos)
        except BusError as e:
            # applied again by the bus client once it connects
            logger.warning(f"Initial subscribe failed: {e}")

        self._tasks = [
            asyncio.create_task(self.bus.run_forever(), name="bus"),
            asyncio.create_task(self.dispatcher.poll_forever(), name="mesh-poll"),
            asyncio.create_task(self.dispatcher.run_forever(), name="mesh-rx"),
            asyncio.create_task(self.run_bus_forever(), name="bus-rx"),
        ]
        logger.info("Gateway started")

    async def run(self) -> None:
        """Start and block until one of the loops exits or the task is cancelled."""
        await self.start()
        try:
            await asyncio.gather(*self._tasks)
        finally:
            await self.stop()

    async def stop(self) -> None:
        await self.bus.stop()
        for task in self._tasks:
            task.cancel()
        await asyncio.gather(*self._tasks, return_exceptions=True)
        self._tasks = []
        await self.transport.stop()
        logger.info("Gateway stopped")

    async def _publish(self, event_type: str, data: dict) -> None:
        if self.event_service:
            await self.event_service.publish(event_type, data)
