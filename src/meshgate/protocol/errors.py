"""
Exception hierarchy for the gateway and node endpoints.

Library code raises these; the handlers and run loops catch them, log a
warning and drop the offending message.
"""

from typing import Optional


class MeshGateError(Exception):
    """Base class for every error raised by meshgate."""


class FrameError(MeshGateError):
    """An envelope could not be packed or unpacked."""


class FrameTooShortError(FrameError):
    def __init__(self, length: int):
        super().__init__(f"frame too short: {length} bytes (need at least 2)")
        self.length = length


class ChecksumMismatchError(FrameError):
    def __init__(self, expected: int, received: int):
        super().__init__(f"CRC mismatch (got 0x{received:02X}, expected 0x{expected:02X})")
        self.expected = expected
        self.received = received


class OversizeFrameError(FrameError):
    def __init__(self, size: int, limit: int):
        super().__init__(f"frame too large: {size} > {limit} bytes")
        self.size = size
        self.limit = limit


class SchemaError(MeshGateError):
    """A payload is not a valid telemetry report, relay command or acknowledgement."""

    def __init__(self, message: str, field: Optional[str] = None):
        super().__init__(message)
        self.field = field


class TopicPatternMismatchError(MeshGateError):
    def __init__(self, topic: str):
        super().__init__(f"topic does not match control pattern: {topic!r}")
        self.topic = topic


class SensorReadError(MeshGateError):
    """A sensor collaborator failed to produce a usable reading."""

    def __init__(self, sensor: str, reason: str = "read failed"):
        super().__init__(f"{sensor}: {reason}")
        self.sensor = sensor
        self.reason = reason


class TransportError(MeshGateError):
    """The mesh transport refused or failed to send a frame."""


class BusError(MeshGateError):
    """The message bus client is unavailable or rejected an operation."""
