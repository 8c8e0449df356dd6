#!/usr/bin/env python3
"""
Run a sensor node with simulated sensors, reporting to the hub every interval.
"""

import asyncio
import random

from common import create_transport, load, logger, parse_args

from meshgate import FrameCodec, SensorNode
from meshgate.hardware.base import SensorReader


class SimulatedSensors(SensorReader):
    """Random-walk readings in plausible indoor ranges."""

    def __init__(self):
        self.temperature = 21.0

    def read_temperature(self) -> float:
        self.temperature += random.uniform(-0.5, 0.5)
        return round(self.temperature, 2)

    def read_humidity(self) -> float:
        return round(random.uniform(35.0, 55.0), 1)

    def read_co2(self) -> int:
        return random.randint(400, 1200)

    def read_light(self) -> int:
        return random.randint(0, 800)

    def read_motion(self) -> bool:
        return random.random() < 0.1

    def read_leak(self) -> bool:
        return False


async def main() -> None:
    config = load(parse_args("meshgate sensor node"))

    node = SensorNode(
        create_transport(config.transport),
        SimulatedSensors(),
        window=config.sensor.window,
        hub_address=config.sensor.hub_address,
        interval=config.sensor.interval,
        codec=FrameCodec(config.frame.max_frame_size),
        poll_interval=config.gateway.poll_interval,
    )
    logger.info(f"Reporting to hub {config.sensor.hub_address} every {config.sensor.interval}s")
    await node.start()


if __name__ == "__main__":
    try:
        asyncio.run(main())
    except KeyboardInterrupt:
        print("\nStopped")
