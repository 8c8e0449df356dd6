#!/usr/bin/env python3
"""
Common utilities for meshgate examples.

Shared setup for the hub and node scripts: logging, config loading and
construction of the configured mesh transport and MQTT client.
"""

import argparse
import logging
import os
import sys

# Set up logging
logging.basicConfig(
    level=logging.INFO, format="%(asctime)s - %(name)s - %(levelname)s - %(message)s"
)
logger = logging.getLogger(__name__)

# Add the src directory to the path so we can import meshgate
sys.path.insert(0, os.path.join(os.path.dirname(__file__), "..", "src"))

from meshgate.bus import MqttBusClient
from meshgate.config import Config, TransportConfig, load_config
from meshgate.hardware.base import MeshTransport


def parse_args(description: str) -> argparse.Namespace:
    parser = argparse.ArgumentParser(description=description)
    parser.add_argument("--config", "-c", default="meshgate.json", help="JSON config file")
    parser.add_argument("--debug", action="store_true", help="enable debug logging")
    args = parser.parse_args()
    if args.debug:
        logging.getLogger().setLevel(logging.DEBUG)
    return args


def load(args: argparse.Namespace) -> Config:
    config = load_config(args.config)
    logger.info(f"Transport: {config.transport.type}")
    return config


def create_transport(config: TransportConfig) -> MeshTransport:
    """Create the mesh transport selected by `config.type`."""
    if config.type == "ws":
        from meshgate.hardware.ws_transport import WsMeshTransport

        logger.info(f"Using WebSocket bridge at {config.ws_url}")
        return WsMeshTransport(config.ws_url)

    if config.type == "kiss":
        from meshgate.hardware.kiss_transport import KissMeshTransport

        logger.info(f"Using KISS serial link on {config.serial_port} @ {config.baudrate}")
        return KissMeshTransport(config.serial_port, baudrate=config.baudrate)

    from meshgate.hardware.udp_transport import UdpMeshTransport

    logger.info(f"Using UDP mesh on [{config.bind_host}]:{config.port} prefix {config.mesh_prefix}")
    return UdpMeshTransport(
        mesh_prefix=config.mesh_prefix, bind_host=config.bind_host, port=config.port
    )


def create_bus_client(config: Config) -> MqttBusClient:
    mqtt = config.mqtt
    logger.info(f"MQTT broker {mqtt.host}:{mqtt.port} as {mqtt.client_id}")
    return MqttBusClient(
        mqtt.host,
        mqtt.port,
        client_id=mqtt.client_id,
        username=mqtt.username,
        password=mqtt.password,
        ca_certs=mqtt.ca_certs,
        certfile=mqtt.certfile,
        keyfile=mqtt.keyfile,
        reconnect_delay=mqtt.reconnect_delay,
    )
