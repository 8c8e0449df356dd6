# protocol/constants.py
"""Wire-level constants shared by the sensor node, actuator node and hub."""

# ---------------------------------------------------------------------------
# Envelope layout
# ---------------------------------------------------------------------------
CRC8_POLY = 0x8C  # reflected 0x31 (Dallas/Maxim)
CRC8_INIT = 0x00
CHECKSUM_SIZE = 1
MIN_FRAME_SIZE = 2  # at least one payload byte + checksum
DEFAULT_MAX_FRAME_SIZE = 256  # hub receive buffer

# ---------------------------------------------------------------------------
# Addressing
# ---------------------------------------------------------------------------
HUB_ADDRESS = 0x00
MAX_NODE_ID = 0xFFFF  # 16-bit short address (Thread RLOC16)
MESH_UDP_PORT = 9000

# ---------------------------------------------------------------------------
# Bus topics and QoS
# ---------------------------------------------------------------------------
SENSOR_TOPIC_PREFIX = "home/sensors"
CONTROL_TOPIC_PREFIX = "home/control"

QOS_AT_MOST_ONCE = 0
QOS_AT_LEAST_ONCE = 1
QOS_EXACTLY_ONCE = 2

# ---------------------------------------------------------------------------
# Message fields
# ---------------------------------------------------------------------------
RELAY_CHANNELS = (1, 2)
RELAY_STATE_OFF = 0
RELAY_STATE_ON = 1
ACK_STATUS_OK = 0

UINT8_MAX = 0xFF
UINT16_MAX = 0xFFFF

# ---------------------------------------------------------------------------
# Timing and smoothing
# ---------------------------------------------------------------------------
MOVING_AVERAGE_WINDOW = 5
TELEMETRY_INTERVAL = 10.0  # seconds between sensor reports
POLL_INTERVAL = 0.01  # seconds between transport polls
