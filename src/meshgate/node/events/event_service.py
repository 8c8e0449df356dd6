"""
Event broadcasting for gateway and node endpoints.

Handlers publish what happened to each message (forwarded, dropped, relay
switched, ...) so applications and tests can observe traffic without
touching the transport or the bus.
"""

import asyncio
import logging
from abc import ABC, abstractmethod
from typing import Any, Dict, List, Optional, Set


class EventSubscriber(ABC):
    """Abstract base class for event subscribers."""

    @abstractmethod
    async def handle_event(self, event_type: str, data: Dict[str, Any]) -> None:
        """Handle an event with the given type and data."""
        pass


class EventService:
    """
    Fan-out of gateway events to per-type and global subscribers.

    A failing subscriber is logged and never affects the others or the
    message path that published the event.
    """

    def __init__(self, logger: Optional[logging.Logger] = None):
        self.logger = logger or logging.getLogger("GatewayEventService")
        self._subscribers: Dict[str, List[EventSubscriber]] = {}
        self._global_subscribers: List[EventSubscriber] = []
        self._pending_tasks: Set[asyncio.Task] = set()

    def subscribe(self, event_type: str, subscriber: EventSubscriber) -> None:
        self._subscribers.setdefault(event_type, []).append(subscriber)
        self.logger.debug(f"Subscribed {subscriber.__class__.__name__} to {event_type}")

    def subscribe_all(self, subscriber: EventSubscriber) -> None:
        self._global_subscribers.append(subscriber)
        self.logger.debug(f"Added global subscriber {subscriber.__class__.__name__}")

    def unsubscribe(self, event_type: str, subscriber: EventSubscriber) -> None:
        subscribers = self._subscribers.get(event_type, [])
        if subscriber in subscribers:
            subscribers.remove(subscriber)
            self.logger.debug(f"Unsubscribed {subscriber.__class__.__name__} from {event_type}")

    def unsubscribe_all(self, subscriber: EventSubscriber) -> None:
        if subscriber in self._global_subscribers:
            self._global_subscribers.remove(subscriber)
            self.logger.debug(f"Removed global subscriber {subscriber.__class__.__name__}")

    async def _notify(self, subscriber: EventSubscriber, event_type: str, data: Dict[str, Any]):
        try:
            await subscriber.handle_event(event_type, data)
        except Exception as e:
            self.logger.error(f"Error in subscriber {subscriber.__class__.__name__}: {e}")

    async def publish(self, event_type: str, data: Dict[str, Any]) -> None:
        self.logger.debug(f"Publishing event: {event_type}")
        for subscriber in list(self._subscribers.get(event_type, [])):
            await self._notify(subscriber, event_type, data)
        for subscriber in list(self._global_subscribers):
            await self._notify(subscriber, event_type, data)

    def publish_sync(self, event_type: str, data: Dict[str, Any]) -> None:
        """Publish from synchronous code (schedules a task on the running loop)."""
        task = asyncio.get_running_loop().create_task(self.publish(event_type, data))
        self._pending_tasks.add(task)
        task.add_done_callback(self._pending_tasks.discard)


class LoggingEventSubscriber(EventSubscriber):
    """Logs every event; handy with subscribe_all() while debugging a deployment."""

    def __init__(self, logger: Optional[logging.Logger] = None):
        self.logger = logger or logging.getLogger("GatewayEventLogger")

    async def handle_event(self, event_type: str, data: Dict[str, Any]) -> None:
        self.logger.info(f"Event: {event_type} - {data}")
