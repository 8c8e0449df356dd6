"""
meshgate - framing-and-translation gateway between a low-power mesh and MQTT
Sensor and actuator nodes on the mesh, one hub bridging them to the bus.
"""

__version__ = "1.0.0"

from .config import Config, load_config
from .node.gateway import Gateway
from .node.node import ActuatorNode, SensorNode
from .protocol.frame import FrameCodec
from .protocol.schema import Acknowledgement, RelayCommand, TelemetryReport

__all__ = [
    # Core API
    "Gateway",
    "ActuatorNode",
    "SensorNode",
    "FrameCodec",
    "TelemetryReport",
    "RelayCommand",
    "Acknowledgement",
    # Configuration
    "Config",
    "load_config",
    # Version
    "__version__",
]
