import asyncio
import logging
from typing import Any, Dict, Optional, Set

import aiomqtt
from aiomqtt import MqttError

from ..protocol.constants import QOS_AT_LEAST_ONCE
from ..protocol.errors import BusError
from .base import BusClient

logger = logging.getLogger("MqttBusClient")


def _payload_bytes(payload: Any) -> bytes:
    if payload is None:
        return b""
    if isinstance(payload, (bytes, bytearray)):
        return bytes(payload)
    return str(payload).encode("utf-8")


class MqttBusClient(BusClient):
    """MQTT bus client with reconnect and re-subscribe.

    run_forever() owns the connection: it connects, re-applies every recorded
    subscription, then hands each inbound message to the message callback.
    On connection loss it waits `reconnect_delay` seconds and starts over.
    """

    def __init__(
        self,
        host: str = "localhost",
        port: int = 8883,
        *,
        client_id: Optional[str] = None,
        username: Optional[str] = None,
        password: Optional[str] = None,
        ca_certs: Optional[str] = None,
        certfile: Optional[str] = None,
        keyfile: Optional[str] = None,
        reconnect_delay: float = 5.0,
        max_inflight: int = 256,
    ):
        super().__init__()
        self.host = host
        self.port = port
        self.client_id = client_id
        self.username = username
        self.password = password
        self.reconnect_delay = reconnect_delay
        self.max_inflight = max_inflight

        self.tls_params = None
        if ca_certs or certfile:
            self.tls_params = aiomqtt.TLSParameters(
                ca_certs=ca_certs, certfile=certfile, keyfile=keyfile
            )

        self._client: Optional[aiomqtt.Client] = None
        self._subscriptions: Dict[str, int] = {}
        self._stop_event = asyncio.Event()
        self._session_task: Optional[asyncio.Task] = None
        self._publish_tasks: Set[asyncio.Task] = set()
        self.connected = False
        self.last_error: Optional[str] = None

    def _create_client(self) -> aiomqtt.Client:
        return aiomqtt.Client(
            self.host,
            port=self.port,
            identifier=self.client_id,
            username=self.username,
            password=self.password,
            tls_params=self.tls_params,
        )

    async def publish(self, topic: str, payload: bytes, qos: int = QOS_AT_LEAST_ONCE) -> None:
        """Hand the message to the broker connection without waiting for PUBACK.

        Delivery failures after hand-off are logged, not raised.
        """
        client = self._client
        if client is None or not self.connected:
            raise BusError(f"MQTT broker {self.host}:{self.port} not connected")
        if len(self._publish_tasks) >= self.max_inflight:
            raise BusError(f"{len(self._publish_tasks)} publishes awaiting broker confirmation")

        task = asyncio.create_task(client.publish(topic, payload=bytes(payload), qos=qos))
        self._publish_tasks.add(task)
        task.add_done_callback(lambda t: self._publish_done(t, topic))
        logger.debug(f"PUB {topic} ({len(payload)} bytes, qos={qos})")

    def _publish_done(self, task: asyncio.Task, topic: str) -> None:
        self._publish_tasks.discard(task)
        if task.cancelled():
            return
        error = task.exception()
        if error is not None:
            self.last_error = str(error)
            logger.warning(f"MQTT publish to {topic} failed: {error}")

    @property
    def inflight(self) -> int:
        return len(self._publish_tasks)

    async def subscribe(self, pattern: str, qos: int = QOS_AT_LEAST_ONCE) -> None:
        self._subscriptions[pattern] = qos
        if self._client is not None and self.connected:
            try:
                await self._client.subscribe(pattern, qos=qos)
            except MqttError as e:
                raise BusError(f"MQTT subscribe to {pattern} failed: {e}") from e
            logger.info(f"Subscribed to {pattern} (qos={qos})")

    async def _deliver(self, topic: str, payload: bytes) -> None:
        callback = self._message_callback
        if callback is None:
            logger.debug(f"No message callback, ignoring message on {topic}")
            return
        result = callback(topic, payload)
        if asyncio.iscoroutine(result):
            await result

    async def _run_session(self, client: aiomqtt.Client) -> None:
        for pattern, qos in self._subscriptions.items():
            await client.subscribe(pattern, qos=qos)
            logger.info(f"Subscribed to {pattern} (qos={qos})")

        async for message in client.messages:
            topic = message.topic.value
            payload = _payload_bytes(message.payload)
            logger.debug(f"RX {topic}: {payload!r}")
            await self._deliver(topic, payload)

    async def run_forever(self) -> None:
        self._stop_event.clear()
        while not self._stop_event.is_set():
            try:
                logger.info(f"Connecting to MQTT broker {self.host}:{self.port}")
                async with self._create_client() as client:
                    self._client = client
                    self.connected = True
                    self.last_error = None
                    session = asyncio.create_task(self._run_session(client))
                    self._session_task = session
                    try:
                        await asyncio.wait({session})
                    finally:
                        if not session.done():
                            session.cancel()
                            await asyncio.gather(session, return_exceptions=True)
                        self._session_task = None
                        self.connected = False
                        self._client = None
                    # stop() cancels the session; errors are re-raised here
                    if not session.cancelled():
                        session.result()
            except MqttError as e:
                self.last_error = str(e)
                logger.warning(f"MQTT error {e}; retrying in {self.reconnect_delay}s")

            if self._stop_event.is_set():
                break
            try:
                await asyncio.wait_for(self._stop_event.wait(), timeout=self.reconnect_delay)
            except asyncio.TimeoutError:
                continue

    async def stop(self) -> None:
        self._stop_event.set()
        if self._session_task is not None:
            self._session_task.cancel()
        for task in list(self._publish_tasks):
            task.cancel()
