"""Deterministic mapping between mesh node ids and bus topics."""

import re

from .constants import CONTROL_TOPIC_PREFIX, MAX_NODE_ID, SENSOR_TOPIC_PREFIX
from .errors import TopicPatternMismatchError


def _validate_node_id(node_id: int) -> int:
    if isinstance(node_id, bool) or not isinstance(node_id, int):
        raise ValueError(f"node_id must be an int, got {type(node_id).__name__}")
    if not (0 <= node_id <= MAX_NODE_ID):
        raise ValueError(f"node_id out of range (0-{MAX_NODE_ID}): {node_id}")
    return node_id


def telemetry_topic(node_id: int, prefix: str = SENSOR_TOPIC_PREFIX) -> str:
    """Topic a node's telemetry is published on, e.g. ``home/sensors/7``."""
    return f"{prefix}/{_validate_node_id(node_id)}"


def command_topic(node_id: int, prefix: str = CONTROL_TOPIC_PREFIX) -> str:
    """Topic commands for a node arrive on, e.g. ``home/control/42``."""
    return f"{prefix}/{_validate_node_id(node_id)}"


def command_subscription(prefix: str = CONTROL_TOPIC_PREFIX) -> str:
    """Wildcard pattern covering every node's command topic."""
    return f"{prefix}/#"


def parse_command_topic(topic: str, prefix: str = CONTROL_TOPIC_PREFIX) -> int:
    """Extract the node id from ``<prefix>/<integer>``.

    Raises:
        TopicPatternMismatchError: If the topic has any other shape or the id
            does not fit in 16 bits.
    """
    match = re.fullmatch(re.escape(prefix) + r"/([0-9]+)", topic)
    if match is None:
        raise TopicPatternMismatchError(topic)
    node_id = int(match.group(1))
    if node_id > MAX_NODE_ID:
        raise TopicPatternMismatchError(topic)
    return node_id
