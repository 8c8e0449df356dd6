import logging
from typing import Optional

from ...bus.base import BusClient
from ...protocol import BusError, SchemaError, TelemetryReport, is_acknowledgement
from ...protocol.constants import QOS_AT_LEAST_ONCE, SENSOR_TOPIC_PREFIX
from ...protocol.topics import telemetry_topic
from ..events import GatewayEvents
from .base import BaseHandler


class TelemetryForwardHandler(BaseHandler):
    """Publish telemetry arriving from the mesh to `<prefix>/<src>` on the bus.

    The payload is validated as a telemetry report but published verbatim.
    Acknowledgements from actuator nodes are logged and not forwarded.
    """

    def __init__(
        self,
        bus: BusClient,
        *,
        topic_prefix: str = SENSOR_TOPIC_PREFIX,
        qos: int = QOS_AT_LEAST_ONCE,
        event_service=None,
    ):
        self.bus = bus
        self.topic_prefix = topic_prefix
        self.qos = qos
        self.event_service = event_service
        self.logger = logging.getLogger("TelemetryHandler")

    async def __call__(self, payload: bytes, src: int) -> Optional[TelemetryReport]:
        if is_acknowledgement(payload):
            self.logger.info(f"Acknowledgement from node {src}: {payload.decode('utf-8')}")
            await self._publish(GatewayEvents.ACK_RECEIVED, {"src": src})
            return None

        try:
            report = TelemetryReport.decode(payload)
        except SchemaError as e:
            self.logger.warning(f"Dropping invalid telemetry from {src}: {e}")
            await self._publish(GatewayEvents.MESSAGE_DROPPED, {"src": src, "reason": str(e)})
            return None

        topic = telemetry_topic(src, self.topic_prefix)
        try:
            await self.bus.publish(topic, payload, qos=self.qos)
        except BusError as e:
            self.logger.warning(f"Dropping telemetry from {src}: {e}")
            await self._publish(GatewayEvents.MESSAGE_DROPPED, {"src": src, "reason": str(e)})
            return None

        self.logger.debug(f"Forwarded telemetry from {src} to {topic}")
        await self._publish(GatewayEvents.TELEMETRY_PUBLISHED, {"src": src, "topic": topic})
        return report

    async def _publish(self, event_type: str, data: dict) -> None:
        if self.event_service:
            await self.event_service.publish(event_type, data)
