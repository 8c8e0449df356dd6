import asyncio
import logging
import math
from dataclasses import replace
from typing import Awaitable, Callable, Optional

from ..hardware.base import SensorReader
from ..protocol import SchemaError, SensorReadError, TelemetryReport
from ..protocol.constants import HUB_ADDRESS, MOVING_AVERAGE_WINDOW, TELEMETRY_INTERVAL
from .events import GatewayEvents
from .filters import MovingAverage

SendFn = Callable[[bytes, int], Awaitable[bool]]


class SensorProducer:
    """Periodic telemetry source of a sensor node.

    Each tick reads every sensor, smooths the temperature through a moving
    average and sends one telemetry report to the hub. A failed read skips
    the whole report and leaves the filter untouched.
    """

    def __init__(
        self,
        sensors: SensorReader,
        send_fn: SendFn,
        *,
        window: int = MOVING_AVERAGE_WINDOW,
        hub_address: int = HUB_ADDRESS,
        interval: float = TELEMETRY_INTERVAL,
        event_service=None,
    ):
        self.sensors = sensors
        self.send_fn = send_fn
        self.hub_address = hub_address
        self.interval = interval
        self.event_service = event_service
        self.temperature_filter = MovingAverage(window)
        self.logger = logging.getLogger("SensorProducer")

    @staticmethod
    def _finite(name: str, value: float) -> float:
        if isinstance(value, float) and not math.isfinite(value):
            raise SensorReadError(name, f"non-finite reading {value}")
        return value

    def sample(self) -> TelemetryReport:
        """Read all sensors into a report. Raises SensorReadError."""
        temperature = self._finite("temperature", self.sensors.read_temperature())
        humidity = self._finite("humidity", self.sensors.read_humidity())
        co2 = self.sensors.read_co2()
        light = self.sensors.read_light()
        motion = self.sensors.read_motion()
        leak = self.sensors.read_leak()

        try:
            raw = TelemetryReport(
                temperature=temperature,
                humidity=humidity,
                co2=co2,
                light=light,
                motion=motion,
                leak=leak,
            )
        except SchemaError as e:
            raise SensorReadError(e.field or "report", str(e)) from e
        return replace(raw, temperature=self.temperature_filter.update(raw.temperature))

    async def tick(self) -> Optional[TelemetryReport]:
        try:
            report = self.sample()
        except SensorReadError as e:
            self.logger.warning(f"Skipping telemetry report: {e}")
            if self.event_service:
                await self.event_service.publish(
                    GatewayEvents.SENSOR_READ_FAILED, {"sensor": e.sensor, "reason": e.reason}
                )
            return None

        if not await self.send_fn(report.encode(), self.hub_address):
            self.logger.warning("Telemetry report not sent, will try again next interval")
            return None

        self.logger.debug(f"Sent telemetry: {report.to_dict()}")
        if self.event_service:
            await self.event_service.publish(GatewayEvents.TELEMETRY_SENT, report.to_dict())
        return report

    async def run_forever(self) -> None:
        while True:
            await self.tick()
            await asyncio.sleep(self.interval)
