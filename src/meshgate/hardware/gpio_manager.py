"""
GPIO output lines for relay banks on Linux SBCs
Drives pins through the character device interface of python-periphery
"""

import glob
import logging
from typing import Dict

from periphery import GPIO, GPIOError

logger = logging.getLogger("GPIOPinManager")


class GPIOPinManager:
    """Owns the output lines of one GPIO chip, keyed by line number"""

    def __init__(self, gpio_chip: str = "/dev/gpiochip0"):
        """`gpio_chip` is a character device path, or "auto" for the first one found."""
        self._gpio_chip = self._resolve_gpio_chip(gpio_chip)
        self._pins: Dict[int, GPIO] = {}

        logger.debug(f"Using GPIO chip {self._gpio_chip}")

    def _resolve_gpio_chip(self, gpio_chip: str) -> str:
        """Pick the lowest-numbered chip for "auto"."""
        if gpio_chip == "auto":
            chips = sorted(glob.glob("/dev/gpiochip*"))
            if chips:
                logger.info(f"Auto-detected GPIO chips: {chips}, using {chips[0]}")
                return chips[0]
            else:
                logger.warning("No GPIO chips found, defaulting to /dev/gpiochip0")
                return "/dev/gpiochip0"
        return gpio_chip

    def _open(self, pin_number: int, direction: str) -> GPIO:
        return GPIO(self._gpio_chip, pin_number, direction)

    def setup_output_pin(self, pin_number: int, initial_value: bool = False) -> bool:
        """Claim `pin_number` as an output driven to `initial_value`; False if unavailable."""
        if pin_number == -1:
            return False

        if pin_number in self._pins:
            self.cleanup_pin(pin_number)

        try:
            gpio = self._open(pin_number, "out")
            gpio.write(initial_value)
        except (GPIOError, OSError) as e:
            error_msg = str(e).lower()
            if "busy" in error_msg:
                logger.error(f"GPIO pin {pin_number} is already in use by another process: {e}")
            elif "permission denied" in error_msg:
                logger.error(
                    f"Permission denied for GPIO pin {pin_number}: {e} "
                    "(add user to gpio group: sudo usermod -a -G gpio $USER)"
                )
            else:
                logger.error(f"Failed to setup output pin {pin_number}: {e}")
            return False

        self._pins[pin_number] = gpio
        logger.debug(f"Output pin {pin_number} configured (initial={initial_value})")
        return True

    def _write(self, pin_number: int, value: bool) -> bool:
        if pin_number not in self._pins:
            logger.warning(f"Pin {pin_number} is not configured")
            return False
        gpio = self._pins[pin_number]
        try:
            if gpio.direction != "out":
                logger.warning(f"Pin {pin_number} is not configured as output")
                return False
            gpio.write(value)
            return True
        except (GPIOError, OSError) as e:
            logger.warning(f"Failed to set pin {pin_number} {'HIGH' if value else 'LOW'}: {e}")
            return False

    def set_pin_high(self, pin_number: int) -> bool:
        """Set output pin to HIGH"""
        return self._write(pin_number, True)

    def set_pin_low(self, pin_number: int) -> bool:
        """Set output pin to LOW"""
        return self._write(pin_number, False)

    def cleanup_pin(self, pin_number: int) -> None:
        """Clean up a specific pin"""
        gpio = self._pins.pop(pin_number, None)
        if gpio is None:
            return
        try:
            gpio.close()
            logger.debug(f"Pin {pin_number} cleaned up")
        except (GPIOError, OSError) as e:
            logger.warning(f"Failed to cleanup pin {pin_number}: {e}")

    def cleanup_all(self) -> None:
        """Clean up all managed pins"""
        for pin_number in list(self._pins):
            self.cleanup_pin(pin_number)
        logger.debug("All GPIO pins cleaned up")
