from abc import ABC, abstractmethod
from typing import Callable, Optional

RxCallback = Callable[[bytes, int], None]


class MeshTransport(ABC):
    """One mesh message in, one mesh message out, addressed by 16-bit node id."""

    def __init__(self):
        self._rx_callback: Optional[RxCallback] = None

    def set_rx_callback(self, callback: RxCallback) -> None:
        """Register `callback(data, src)` for frames delivered by poll()."""
        self._rx_callback = callback

    @abstractmethod
    async def start(self) -> None:
        """Open the underlying link."""
        pass

    @abstractmethod
    async def stop(self) -> None:
        """Close the underlying link."""
        pass

    @abstractmethod
    async def send(self, data: bytes, dest: int) -> None:
        """Transmit one frame to `dest`. Raises TransportError on failure."""
        pass

    @abstractmethod
    async def poll(self) -> int:
        """Deliver pending received frames to the rx callback; return how many."""
        pass


class RelayActuator(ABC):
    @abstractmethod
    def set(self, channel: int, on: bool) -> None:
        """Switch a relay channel. Synchronous and infallible for the caller."""
        pass


class SensorReader(ABC):
    """Sensor collaborators of a sensor node.

    Each read may raise SensorReadError; a NaN float is treated the same way
    by the producer.
    """

    @abstractmethod
    def read_temperature(self) -> float:
        """Temperature in degrees Celsius."""
        pass

    @abstractmethod
    def read_humidity(self) -> float:
        """Relative humidity in %RH."""
        pass

    @abstractmethod
    def read_co2(self) -> int:
        """CO2 concentration in ppm."""
        pass

    @abstractmethod
    def read_light(self) -> int:
        """Illuminance in lux."""
        pass

    @abstractmethod
    def read_motion(self) -> bool:
        pass

    @abstractmethod
    def read_leak(self) -> bool:
        pass
