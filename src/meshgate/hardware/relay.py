import logging
from typing import Dict, Optional

from .base import RelayActuator
from .gpio_manager import GPIOPinManager

logger = logging.getLogger("GPIORelayBank")

DEFAULT_RELAY_PINS = {1: 5, 2: 18}


class GPIORelayBank(RelayActuator):
    """Relay channels driven by GPIO output lines, all switched off at start."""

    def __init__(
        self,
        relay_pins: Optional[Dict[int, int]] = None,
        *,
        gpio_chip: str = "/dev/gpiochip0",
        pin_manager: Optional[GPIOPinManager] = None,
    ):
        self.relay_pins = dict(relay_pins or DEFAULT_RELAY_PINS)
        self.pins = pin_manager or GPIOPinManager(gpio_chip)
        self.states: Dict[int, bool] = {}

        for channel, pin in self.relay_pins.items():
            if self.pins.setup_output_pin(pin, initial_value=False):
                self.states[channel] = False
            else:
                logger.error(f"Relay {channel} unavailable (GPIO {pin} setup failed)")

    def set(self, channel: int, on: bool) -> None:
        pin = self.relay_pins.get(channel)
        if pin is None:
            logger.warning(f"Unknown relay channel {channel}, ignoring")
            return

        ok = self.pins.set_pin_high(pin) if on else self.pins.set_pin_low(pin)
        if ok:
            self.states[channel] = on
            logger.info(f"Relay {channel} -> {'ON' if on else 'OFF'}")
        else:
            logger.warning(f"Relay {channel} could not be switched {'ON' if on else 'OFF'}")

    def close(self) -> None:
        self.pins.cleanup_all()
