"""
Mesh protocol layer - envelope codec, message schema and topic mapping
"""

from .constants import (
    ACK_STATUS_OK,
    CHECKSUM_SIZE,
    CONTROL_TOPIC_PREFIX,
    CRC8_INIT,
    CRC8_POLY,
    DEFAULT_MAX_FRAME_SIZE,
    HUB_ADDRESS,
    MAX_NODE_ID,
    MESH_UDP_PORT,
    MIN_FRAME_SIZE,
    QOS_AT_LEAST_ONCE,
    QOS_AT_MOST_ONCE,
    QOS_EXACTLY_ONCE,
    RELAY_CHANNELS,
    SENSOR_TOPIC_PREFIX,
)
from .crc8 import crc8
from .errors import (
    BusError,
    ChecksumMismatchError,
    FrameError,
    FrameTooShortError,
    MeshGateError,
    OversizeFrameError,
    SchemaError,
    SensorReadError,
    TopicPatternMismatchError,
    TransportError,
)
from .frame import FrameCodec, decode_frame, encode_frame
from .schema import Acknowledgement, RelayCommand, TelemetryReport, is_acknowledgement
from .topics import command_subscription, command_topic, parse_command_topic, telemetry_topic

__all__ = [
    # Codec
    "crc8",
    "FrameCodec",
    "encode_frame",
    "decode_frame",
    # Schema
    "TelemetryReport",
    "RelayCommand",
    "Acknowledgement",
    "is_acknowledgement",
    # Topics
    "telemetry_topic",
    "command_topic",
    "command_subscription",
    "parse_command_topic",
    # Errors
    "MeshGateError",
    "FrameError",
    "FrameTooShortError",
    "ChecksumMismatchError",
    "OversizeFrameError",
    "SchemaError",
    "TopicPatternMismatchError",
    "SensorReadError",
    "TransportError",
    "BusError",
    # Constants
    "ACK_STATUS_OK",
    "CHECKSUM_SIZE",
    "CONTROL_TOPIC_PREFIX",
    "CRC8_INIT",
    "CRC8_POLY",
    "DEFAULT_MAX_FRAME_SIZE",
    "HUB_ADDRESS",
    "MAX_NODE_ID",
    "MESH_UDP_PORT",
    "MIN_FRAME_SIZE",
    "QOS_AT_LEAST_ONCE",
    "QOS_AT_MOST_ONCE",
    "QOS_EXACTLY_ONCE",
    "RELAY_CHANNELS",
    "SENSOR_TOPIC_PREFIX",
]
