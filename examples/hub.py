#!/usr/bin/env python3
"""
Run the hub: forward mesh telemetry to MQTT and MQTT relay commands to the mesh.

Publish a command with e.g.:
    mosquitto_pub -t home/control/42 -m '{"relay":1,"state":1}'
"""

import asyncio

from common import create_bus_client, create_transport, load, logger, parse_args

from meshgate import FrameCodec, Gateway
from meshgate.node.events import EventService, LoggingEventSubscriber


async def main() -> None:
    args = parse_args("meshgate hub")
    config = load(args)

    events = EventService()
    if args.debug:
        events.subscribe_all(LoggingEventSubscriber())

    gateway = Gateway(
        create_transport(config.transport),
        create_bus_client(config),
        codec=FrameCodec(config.frame.max_frame_size),
        sensor_topic_prefix=config.gateway.sensor_topic_prefix,
        control_topic_prefix=config.gateway.control_topic_prefix,
        qos=config.mqtt.qos,
        poll_interval=config.gateway.poll_interval,
        event_service=events,
    )
    logger.info("Starting hub, press Ctrl+C to stop")
    await gateway.run()


if __name__ == "__main__":
    try:
        asyncio.run(main())
    except KeyboardInterrupt:
        print("\nStopped")
