"""
Node layer - dispatcher, handlers and the gateway/endpoint runtimes
"""

from .dispatcher import Dispatcher
from .events import EventService, EventSubscriber, GatewayEvents, LoggingEventSubscriber
from .filters import MovingAverage
from .gateway import Gateway
from .handlers import BaseHandler, RelayCommandHandler, TelemetryForwardHandler
from .node import ActuatorNode, SensorNode
from .sensor import SensorProducer

__all__ = [
    "Dispatcher",
    "Gateway",
    "ActuatorNode",
    "SensorNode",
    "SensorProducer",
    "MovingAverage",
    "BaseHandler",
    "RelayCommandHandler",
    "TelemetryForwardHandler",
    "EventService",
    "EventSubscriber",
    "LoggingEventSubscriber",
    "GatewayEvents",
]
