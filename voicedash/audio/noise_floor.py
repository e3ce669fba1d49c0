"""Rolling ambient-noise estimate built from recent energy readings."""

import logging
from collections import deque
from typing import Tuple

from .levels import round_half_up

logger = logging.getLogger(__name__)

DEFAULT_WINDOW_SIZE = 120  # 2 seconds at 60 ticks per second


class NoiseFloorEstimator:
    """Keeps the last few energy readings and snapshots their mean on request.

    The baseline is only refreshed by recalibrate(); between calls it keeps
    the value from the last recalibration, starting at 0.
    """

    def __init__(self, window_size: int = DEFAULT_WINDOW_SIZE):
        if window_size <= 0:
            raise ValueError(f"window_size must be positive, got {window_size}")
        self.window_size = window_size
        self._window = deque(maxlen=window_size)
        self._baseline = 0

    @property
    def baseline(self) -> int:
        return self._baseline

    @property
    def readings(self) -> Tuple[int, ...]:
        return tuple(self._window)

    def __len__(self) -> int:
        return len(self._window)

    def push(self, reading: int) -> None:
        """Append a reading, evicting the oldest once the window is full."""
        self._window.append(reading)

    def clear(self) -> None:
        self._window.clear()

    def recalibrate(self) -> int:
        """Replace the baseline with the mean of the window; keep it if the window is empty."""
        if not self._window:
            logger.debug("Noise window empty, keeping baseline %d", self._baseline)
            return self._baseline

        self._baseline = round_half_up(sum(self._window) / len(self._window))
        logger.info(f"New baseline established: {self._baseline}")
        return self._baseline
