"""
Runtime configuration for the hub and the node endpoints.

Every section is a dataclass with defaults that match a stock deployment;
``load_config()`` overlays a JSON file on top of them. Unknown keys are
ignored so one file can be shared between the hub and its nodes.
"""

import json
import logging
from dataclasses import asdict, dataclass, field, fields
from pathlib import Path
from typing import Any, Dict, Optional, Union

from .protocol.constants import (
    CONTROL_TOPIC_PREFIX,
    DEFAULT_MAX_FRAME_SIZE,
    HUB_ADDRESS,
    MAX_NODE_ID,
    MESH_UDP_PORT,
    MIN_FRAME_SIZE,
    MOVING_AVERAGE_WINDOW,
    POLL_INTERVAL,
    QOS_AT_LEAST_ONCE,
    QOS_EXACTLY_ONCE,
    SENSOR_TOPIC_PREFIX,
    TELEMETRY_INTERVAL,
)

logger = logging.getLogger("Config")

TRANSPORT_TYPES = ("udp", "ws", "kiss")


def _check_port(name: str, port: Any) -> None:
    if isinstance(port, bool) or not isinstance(port, int) or not (0 < port <= 65535):
        raise ValueError(f"{name} out of range: {port!r}")


def _known(cls, data: Dict[str, Any]) -> Dict[str, Any]:
    if not isinstance(data, dict):
        raise ValueError(f"{cls.__name__} section must be an object, got {type(data).__name__}")
    names = {f.name for f in fields(cls)}
    return {k: v for k, v in data.items() if k in names}


class _Section:
    @classmethod
    def from_dict(cls, data: Dict[str, Any]):
        return cls(**_known(cls, data))

    def to_dict(self) -> Dict[str, Any]:
        return asdict(self)


@dataclass
class FrameConfig(_Section):
    max_frame_size: int = DEFAULT_MAX_FRAME_SIZE

    def __post_init__(self):
        if not isinstance(self.max_frame_size, int) or self.max_frame_size < MIN_FRAME_SIZE:
            raise ValueError(f"max_frame_size must be an int >= {MIN_FRAME_SIZE}")


@dataclass
class TransportConfig(_Section):
    type: str = "udp"
    bind_host: str = "::"
    port: int = MESH_UDP_PORT
    mesh_prefix: str = "fd00::"
    ws_url: str = "ws://192.168.0.33:81"
    serial_port: str = "/dev/ttyUSB0"
    baudrate: int = 115200

    def __post_init__(self):
        if self.type not in TRANSPORT_TYPES:
            raise ValueError(f"transport type must be one of {TRANSPORT_TYPES}, got {self.type!r}")
        _check_port("transport port", self.port)


@dataclass
class MqttConfig(_Section):
    host: str = "localhost"
    port: int = 8883
    client_id: str = "meshgate-hub"
    username: Optional[str] = None
    password: Optional[str] = None
    ca_certs: Optional[str] = None
    certfile: Optional[str] = None
    keyfile: Optional[str] = None
    qos: int = QOS_AT_LEAST_ONCE
    reconnect_delay: float = 5.0

    def __post_init__(self):
        if self.qos not in range(QOS_EXACTLY_ONCE + 1):
            raise ValueError(f"qos must be 0, 1 or 2, got {self.qos}")
        _check_port("MQTT port", self.port)


@dataclass
class GatewayConfig(_Section):
    sensor_topic_prefix: str = SENSOR_TOPIC_PREFIX
    control_topic_prefix: str = CONTROL_TOPIC_PREFIX
    poll_interval: float = POLL_INTERVAL

    def __post_init__(self):
        if self.poll_interval <= 0:
            raise ValueError("poll_interval must be positive")


@dataclass
class SensorConfig(_Section):
    interval: float = TELEMETRY_INTERVAL
    window: int = MOVING_AVERAGE_WINDOW
    hub_address: int = HUB_ADDRESS

    def __post_init__(self):
        if self.interval <= 0:
            raise ValueError("interval must be positive")
        if self.window < 1:
            raise ValueError("window must be at least 1")
        if not (0 <= self.hub_address <= MAX_NODE_ID):
            raise ValueError(f"hub_address out of range: {self.hub_address}")


@dataclass
class ActuatorConfig(_Section):
    relay_pins: Dict[int, int] = field(default_factory=lambda: {1: 5, 2: 18})
    gpio_chip: str = "/dev/gpiochip0"

    def __post_init__(self):
        # JSON object keys are always strings
        try:
            self.relay_pins = {int(k): int(v) for k, v in self.relay_pins.items()}
        except (AttributeError, TypeError, ValueError) as e:
            raise ValueError(f"relay_pins must map channel numbers to pins: {e}")


@dataclass
class Config:
    frame: FrameConfig = field(default_factory=FrameConfig)
    transport: TransportConfig = field(default_factory=TransportConfig)
    mqtt: MqttConfig = field(default_factory=MqttConfig)
    gateway: GatewayConfig = field(default_factory=GatewayConfig)
    sensor: SensorConfig = field(default_factory=SensorConfig)
    actuator: ActuatorConfig = field(default_factory=ActuatorConfig)

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "Config":
        if not isinstance(data, dict):
            raise ValueError(f"configuration must be an object, got {type(data).__name__}")
        kwargs = {}
        for f in fields(cls):
            if f.name in data:
                kwargs[f.name] = f.default_factory.from_dict(data[f.name])
        unknown = set(data) - {f.name for f in fields(cls)}
        if unknown:
            logger.debug(f"Ignoring unknown config sections: {sorted(unknown)}")
        return cls(**kwargs)

    def to_dict(self) -> Dict[str, Any]:
        return asdict(self)


def load_config(path: Optional[Union[str, Path]] = None) -> Config:
    """Load configuration from a JSON file; defaults when the file is absent."""
    if path is None:
        return Config()
    path = Path(path)
    if not path.exists():
        logger.info(f"No config file at {path}, using defaults")
        return Config()
    try:
        data = json.loads(path.read_text(encoding="utf-8"))
    except json.JSONDecodeError as e:
        raise ValueError(f"Invalid JSON in {path}: {e}")
    config = Config.from_dict(data)
    logger.info(f"Loaded config from {path}")
    return config
