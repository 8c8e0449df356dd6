import logging
from typing import Awaitable, Callable, Optional

from ...hardware.base import RelayActuator
from ...protocol import Acknowledgement, RelayCommand, SchemaError
from ..events import GatewayEvents
from .base import BaseHandler

SendFn = Callable[[bytes, int], Awaitable[bool]]


class RelayCommandHandler(BaseHandler):
    """Apply relay commands on an actuator node and acknowledge them.

    The relay is switched before the acknowledgement is sent. A payload that
    is not a valid relay command has no side effect and gets no reply.
    """

    def __init__(self, relay: RelayActuator, send_fn: SendFn, event_service=None):
        self.relay = relay
        self.send_fn = send_fn
        self.event_service = event_service
        self.logger = logging.getLogger("RelayHandler")

    async def __call__(self, payload: bytes, src: int) -> Optional[RelayCommand]:
        try:
            command = RelayCommand.decode(payload)
        except SchemaError as e:
            self.logger.warning(f"Dropping invalid relay command from {src}: {e}")
            await self._publish(
                GatewayEvents.MESSAGE_DROPPED, {"src": src, "reason": str(e)}
            )
            return None

        self.relay.set(command.relay, command.is_on)
        self.logger.info(
            f"Relay {command.relay} -> {'ON' if command.is_on else 'OFF'} (from {src})"
        )
        await self._publish(
            GatewayEvents.RELAY_SWITCHED,
            {"src": src, "relay": command.relay, "state": command.state},
        )

        if await self.send_fn(Acknowledgement().encode(), src):
            await self._publish(GatewayEvents.ACK_SENT, {"dest": src})
        return command

    async def _publish(self, event_type: str, data: dict) -> None:
        if self.event_service:
            await self.event_service.publish(event_type, data)
