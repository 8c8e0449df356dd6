"""
Message shapes carried inside the envelope.

Three JSON objects travel over the mesh:

- Telemetry Report (sensor -> hub):
  {"temperature":21.5,"humidity":40.2,"co2":415,"light":120,"motion":false,"leak":false}
- Relay Command (hub -> actuator): {"relay":1,"state":1}
- Acknowledgement (actuator -> hub): {"status":0}

Decoding is strict. A payload is accepted only when every required field is
present and of the expected kind; anything else raises SchemaError and the
caller drops the message without side effects.
"""

from __future__ import annotations

import json
import math
from dataclasses import asdict, dataclass
from typing import Any, Dict, Union

from .constants import ACK_STATUS_OK, RELAY_CHANNELS, UINT8_MAX, UINT16_MAX
from .errors import SchemaError

Payload = Union[bytes, bytearray, str]


class FieldValidationUtils:
    """Strict field checks shared by all message shapes."""

    @staticmethod
    def require_field(data: Dict[str, Any], name: str) -> Any:
        if name not in data:
            raise SchemaError(f"missing field '{name}'", name)
        return data[name]

    @staticmethod
    def validate_float(name: str, value: Any) -> float:
        # bool is an int subclass; JSON true/false must not pass as a number
        if isinstance(value, bool) or not isinstance(value, (int, float)):
            raise SchemaError(f"field '{name}' must be a number, got {type(value).__name__}", name)
        value = float(value)
        if not math.isfinite(value):
            raise SchemaError(f"field '{name}' must be finite, got {value}", name)
        return value

    @staticmethod
    def validate_uint(name: str, value: Any, maximum: int) -> int:
        if isinstance(value, bool) or not isinstance(value, (int, float)):
            raise SchemaError(f"field '{name}' must be an integer, got {type(value).__name__}", name)
        if isinstance(value, float):
            if not value.is_integer():
                raise SchemaError(f"field '{name}' must be an integer, got {value}", name)
            value = int(value)
        if not (0 <= value <= maximum):
            raise SchemaError(f"field '{name}' out of range (0-{maximum}): {value}", name)
        return value

    @staticmethod
    def validate_bool(name: str, value: Any) -> bool:
        if not isinstance(value, bool):
            raise SchemaError(f"field '{name}' must be a boolean, got {type(value).__name__}", name)
        return value


def load_object(payload: Payload) -> Dict[str, Any]:
    """Parse a UTF-8 JSON payload that must hold a single object."""
    if isinstance(payload, (bytes, bytearray)):
        try:
            payload = bytes(payload).decode("utf-8")
        except UnicodeDecodeError as e:
            raise SchemaError(f"payload is not valid UTF-8: {e}")
    try:
        data = json.loads(payload)
    except json.JSONDecodeError as e:
        raise SchemaError(f"payload is not valid JSON: {e}")
    if not isinstance(data, dict):
        raise SchemaError(f"payload must be a JSON object, got {type(data).__name__}")
    return data


def dump_object(data: Dict[str, Any]) -> bytes:
    """Compact JSON, fields in insertion order, never NaN/Infinity."""
    return json.dumps(data, separators=(",", ":"), allow_nan=False).encode("utf-8")


def is_acknowledgement(payload: Payload) -> bool:
    """True when `payload` has the acknowledgement shape (only a `status` key)."""
    try:
        data = load_object(payload)
    except SchemaError:
        return False
    return set(data) == {"status"}


@dataclass(frozen=True)
class TelemetryReport:
    """Periodic sensor snapshot; all six fields are always present."""

    temperature: float
    humidity: float
    co2: int
    light: int
    motion: bool
    leak: bool

    def __post_init__(self):
        v = FieldValidationUtils
        object.__setattr__(self, "temperature", v.validate_float("temperature", self.temperature))
        object.__setattr__(self, "humidity", v.validate_float("humidity", self.humidity))
        object.__setattr__(self, "co2", v.validate_uint("co2", self.co2, UINT16_MAX))
        object.__setattr__(self, "light", v.validate_uint("light", self.light, UINT16_MAX))
        object.__setattr__(self, "motion", v.validate_bool("motion", self.motion))
        object.__setattr__(self, "leak", v.validate_bool("leak", self.leak))

    def to_dict(self) -> Dict[str, Any]:
        return asdict(self)

    def encode(self) -> bytes:
        return dump_object(self.to_dict())

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "TelemetryReport":
        req = FieldValidationUtils.require_field
        return cls(
            temperature=req(data, "temperature"),
            humidity=req(data, "humidity"),
            co2=req(data, "co2"),
            light=req(data, "light"),
            motion=req(data, "motion"),
            leak=req(data, "leak"),
        )

    @classmethod
    def decode(cls, payload: Payload) -> "TelemetryReport":
        return cls.from_dict(load_object(payload))


@dataclass(frozen=True)
class RelayCommand:
    """Switch one relay channel on or off."""

    relay: int
    state: int

    def __post_init__(self):
        relay = FieldValidationUtils.validate_uint("relay", self.relay, UINT8_MAX)
        if relay not in RELAY_CHANNELS:
            raise SchemaError(f"unknown relay channel {relay}", "relay")
        object.__setattr__(self, "relay", relay)
        object.__setattr__(
            self, "state", FieldValidationUtils.validate_uint("state", self.state, UINT8_MAX)
        )

    @property
    def is_on(self) -> bool:
        return self.state != 0

    def to_dict(self) -> Dict[str, Any]:
        return {"relay": self.relay, "state": self.state}

    def encode(self) -> bytes:
        return dump_object(self.to_dict())

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "RelayCommand":
        req = FieldValidationUtils.require_field
        return cls(relay=req(data, "relay"), state=req(data, "state"))

    @classmethod
    def decode(cls, payload: Payload) -> "RelayCommand":
        return cls.from_dict(load_object(payload))


@dataclass(frozen=True)
class Acknowledgement:
    """Actuator reply; only status 0 (success) is defined."""

    status: int = ACK_STATUS_OK

    def __post_init__(self):
        object.__setattr__(
            self, "status", FieldValidationUtils.validate_uint("status", self.status, UINT8_MAX)
        )

    @property
    def ok(self) -> bool:
        return self.status == ACK_STATUS_OK

    def to_dict(self) -> Dict[str, Any]:
        return {"status": self.status}

    def encode(self) -> bytes:
        return dump_object(self.to_dict())

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "Acknowledgement":
        return cls(status=FieldValidationUtils.require_field(data, "status"))

    @classmethod
    def decode(cls, payload: Payload) -> "Acknowledgement":
        return cls.from_dict(load_object(payload))
