from __future__ import annotations

import asyncio
import logging
from typing import Optional

from ..hardware.base import MeshTransport, RelayActuator, SensorReader
from ..protocol import FrameCodec
from ..protocol.constants import (
    HUB_ADDRESS,
    MOVING_AVERAGE_WINDOW,
    POLL_INTERVAL,
    TELEMETRY_INTERVAL,
)
from .dispatcher import Dispatcher
from .handlers import RelayCommandHandler
from .sensor import SensorProducer


class _EndpointNode:
    """Shared lifecycle of the mesh-side endpoints.

    Subclasses add their own loops to `_loops()`; start() opens the
    transport and runs them until cancelled.
    """

    def __init__(
        self,
        transport: MeshTransport,
        *,
        codec: Optional[FrameCodec] = None,
        poll_interval: float = POLL_INTERVAL,
        event_service=None,
        logger: Optional[logging.Logger] = None,
    ) -> None:
        self.transport = transport
        self.event_service = event_service
        self.logger = logger or logging.getLogger(self.__class__.__name__)
        self.dispatcher = Dispatcher(
            transport, codec=codec, poll_interval=poll_interval, event_service=event_service
        )
        self._tasks: list[asyncio.Task] = []

    def _loops(self) -> list:
        return [self.dispatcher.poll_forever(), self.dispatcher.run_forever()]

    async def start(self) -> None:
        """Run the node until cancelled."""
        await self.transport.start()
        self.logger.info("Node started")
        self._tasks = [asyncio.create_task(loop) for loop in self._loops()]
        try:
            await asyncio.gather(*self._tasks)
        finally:
            await self.stop()

    async def stop(self) -> None:
        for task in self._tasks:
            task.cancel()
        await asyncio.gather(*self._tasks, return_exceptions=True)
        self._tasks = []
        await self.transport.stop()
        self.logger.info("Node stopped")


class ActuatorNode(_EndpointNode):
    """Mesh node driving a relay bank from relay commands."""

    def __init__(self, transport: MeshTransport, relay: RelayActuator, **kwargs) -> None:
        super().__init__(transport, **kwargs)
        self.relay = relay
        self.handler = RelayCommandHandler(
            relay, self.dispatcher.send_payload, event_service=self.event_service
        )
        self.dispatcher.register_handler(self.handler)


class SensorNode(_EndpointNode):
    """Mesh node reporting smoothed telemetry to the hub.

    Inbound frames have no handler here and are dropped by the dispatcher.
    """

    def __init__(
        self,
        transport: MeshTransport,
        sensors: SensorReader,
        *,
        window: int = MOVING_AVERAGE_WINDOW,
        hub_address: int = HUB_ADDRESS,
        interval: float = TELEMETRY_INTERVAL,
        **kwargs,
    ) -> None:
        super().__init__(transport, **kwargs)
        self.producer = SensorProducer(
            sensors,
            self.dispatcher.send_payload,
            window=window,
            hub_address=hub_address,
            interval=interval,
            event_service=self.event_service,
        )

    def _loops(self) -> list:
        return super()._loops() + [self.producer.run_forever()]
