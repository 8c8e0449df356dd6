"""
Gateway event system - event service and event definitions
"""

from .event_service import EventService, EventSubscriber, LoggingEventSubscriber
from .events import GatewayEvents

__all__ = [
    "EventService",
    "EventSubscriber",
    "LoggingEventSubscriber",
    "GatewayEvents",
]
