"""Signal smoothing applied to telemetry before it is framed."""

from typing import List, Optional

from ..protocol.constants import MOVING_AVERAGE_WINDOW


class MovingAverage:
    """Fixed-window running mean over a circular buffer.

    Until the window fills, the mean is taken over the samples seen so far
    (the denominator grows 1, 2, ... window). After that each new sample
    evicts the oldest one and the mean is always ``sum / window``.

    Example:
        ```python
        avg = MovingAverage(5)
        [avg.update(x) for x in (10, 20, 30, 40, 50, 0)]
        # [10.0, 15.0, 20.0, 25.0, 30.0, 28.0]
        ```
    """

    __slots__ = ("_window", "_buffer", "_index", "_count", "_sum")

    def __init__(self, window: int = MOVING_AVERAGE_WINDOW):
        if window < 1:
            raise ValueError(f"window must be at least 1, got {window}")
        self._window = window
        self._buffer: List[float] = [0.0] * window
        self._index = 0
        self._count = 0
        self._sum = 0.0

    @property
    def window(self) -> int:
        return self._window

    @property
    def count(self) -> int:
        return self._count

    @property
    def value(self) -> Optional[float]:
        if self._count == 0:
            return None
        return self._sum / self._count

    def update(self, sample: float) -> float:
        sample = float(sample)
        if self._count < self._window:
            self._count += 1
        else:
            self._sum -= self._buffer[self._index]
        self._buffer[self._index] = sample
        self._sum += sample
        self._index = (self._index + 1) % self._window
        return self._sum / self._count

    def reset(self) -> None:
        self._buffer = [0.0] * self._window
        self._index = 0
        self._count = 0
        self._sum = 0.0

    def __repr__(self) -> str:
        return f"MovingAverage(window={self._window}, count={self._count}, value={self.value})"
