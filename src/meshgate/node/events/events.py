"""
Gateway and node event names published on the EventService.
"""


class GatewayEvents:
    """Standard event types for gateway and node endpoints."""

    # Hub, mesh -> bus
    TELEMETRY_PUBLISHED = "gateway.telemetry.published"
    ACK_RECEIVED = "gateway.ack.received"

    # Hub, bus -> mesh
    COMMAND_FORWARDED = "gateway.command.forwarded"

    # Any endpoint
    MESSAGE_DROPPED = "gateway.message.dropped"

    # Actuator node
    RELAY_SWITCHED = "node.relay.switched"
    ACK_SENT = "node.ack.sent"

    # Sensor node
    TELEMETRY_SENT = "node.telemetry.sent"
    SENSOR_READ_FAILED = "node.sensor.read_failed"
