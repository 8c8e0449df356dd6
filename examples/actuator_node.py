#!/usr/bin/env python3
"""
Run an actuator node: switch GPIO relays on relay commands and acknowledge them.
"""

import asyncio

from common import create_transport, load, logger, parse_args

from meshgate import ActuatorNode, FrameCodec
from meshgate.hardware.relay import GPIORelayBank


async def main() -> None:
    config = load(parse_args("meshgate actuator node"))

    relay = GPIORelayBank(config.actuator.relay_pins, gpio_chip=config.actuator.gpio_chip)
    node = ActuatorNode(
        create_transport(config.transport),
        relay,
        codec=FrameCodec(config.frame.max_frame_size),
        poll_interval=config.gateway.poll_interval,
    )
    logger.info(f"Relays ready on pins {config.actuator.relay_pins}")
    try:
        await node.start()
    finally:
        relay.close()


if __name__ == "__main__":
    try:
        asyncio.run(main())
    except KeyboardInterrupt:
        print("\nStopped")
