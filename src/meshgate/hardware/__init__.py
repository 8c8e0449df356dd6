"""
Hardware abstraction layer for meshgate: mesh transports and relay outputs
"""

from .base import MeshTransport, RelayActuator, SensorReader
from .udp_transport import UdpMeshTransport

# Conditional import for WsMeshTransport (requires websockets)
try:
    from .ws_transport import WsMeshTransport

    _WS_AVAILABLE = True
except ImportError:
    _WS_AVAILABLE = False
    WsMeshTransport = None

# Conditional import for KissMeshTransport (requires pyserial)
try:
    from .kiss_transport import KissMeshTransport

    _KISS_AVAILABLE = True
except ImportError:
    _KISS_AVAILABLE = False
    KissMeshTransport = None

# Conditional import for GPIORelayBank (requires python-periphery)
try:
    from .relay import GPIORelayBank

    _GPIO_AVAILABLE = True
except ImportError:
    _GPIO_AVAILABLE = False
    GPIORelayBank = None

__all__ = ["MeshTransport", "RelayActuator", "SensorReader", "UdpMeshTransport"]

if _WS_AVAILABLE:
    __all__.append("WsMeshTransport")

if _KISS_AVAILABLE:
    __all__.append("KissMeshTransport")

if _GPIO_AVAILABLE:
    __all__.append("GPIORelayBank")
