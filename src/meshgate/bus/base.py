from abc import ABC, abstractmethod
from typing import Awaitable, Callable, Optional, Union

from ..protocol.constants import QOS_AT_LEAST_ONCE

MessageCallback = Callable[[str, bytes], Union[Awaitable[None], None]]


class BusClient(ABC):
    """Publish/subscribe bus as seen by the gateway.

    Connection and TLS lifecycle belong to the implementation; the gateway
    only publishes, subscribes and receives.
    """

    def __init__(self):
        self._message_callback: Optional[MessageCallback] = None

    def set_message_callback(self, callback: MessageCallback) -> None:
        """Register `callback(topic, payload)` for inbound subscribed messages."""
        self._message_callback = callback

    @abstractmethod
    async def publish(self, topic: str, payload: bytes, qos: int = QOS_AT_LEAST_ONCE) -> None:
        """Publish without awaiting delivery confirmation. Raises BusError."""
        pass

    @abstractmethod
    async def subscribe(self, pattern: str, qos: int = QOS_AT_LEAST_ONCE) -> None:
        """Subscribe now (if connected) and again after every reconnect."""
        pass

    @abstractmethod
    async def run_forever(self) -> None:
        """Maintain the connection and deliver inbound messages."""
        pass

    @abstractmethod
    async def stop(self) -> None:
        pass
