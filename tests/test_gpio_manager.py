from unittest.mock import MagicMock

import pytest
from periphery import GPIOError

from meshgate.hardware import gpio_manager
from meshgate.hardware.gpio_manager import GPIOPinManager


@pytest.fixture
def fake_gpio(monkeypatch):
    lines = {}

    def factory(chip, pin, direction):
        line = MagicMock()
        line.direction = direction
        lines[pin] = line
        return line

    monkeypatch.setattr(gpio_manager, "GPIO", factory)
    return lines


def test_output_pin_written_low_at_setup(fake_gpio):
    pins = GPIOPinManager("/dev/gpiochip1")
    assert pins.setup_output_pin(5, initial_value=False)
    fake_gpio[5].write.assert_called_once_with(False)


def test_set_high_and_low(fake_gpio):
    pins = GPIOPinManager()
    pins.setup_output_pin(18)
    assert pins.set_pin_high(18)
    assert pins.set_pin_low(18)
    assert [c.args for c in fake_gpio[18].write.call_args_list] == [(False,), (True,), (False,)]


def test_unconfigured_pin(fake_gpio):
    assert GPIOPinManager().set_pin_high(7) is False


def test_disabled_pin(fake_gpio):
    assert GPIOPinManager().setup_output_pin(-1) is False
    assert fake_gpio == {}


def test_setup_failure(monkeypatch):
    def busy(chip, pin, direction):
        raise GPIOError(16, "Device or resource busy")

    monkeypatch.setattr(gpio_manager, "GPIO", busy)
    assert GPIOPinManager().setup_output_pin(5) is False


def test_cleanup_all(fake_gpio):
    pins = GPIOPinManager()
    pins.setup_output_pin(5)
    pins.setup_output_pin(18)
    pins.cleanup_all()
    fake_gpio[5].close.assert_called_once()
    fake_gpio[18].close.assert_called_once()
    assert pins.set_pin_high(5) is False


def test_auto_chip_detection(monkeypatch):
    monkeypatch.setattr(gpio_manager.glob, "glob", lambda pattern: ["/dev/gpiochip4", "/dev/gpiochip0"])
    assert GPIOPinManager("auto")._gpio_chip == "/dev/gpiochip0"
