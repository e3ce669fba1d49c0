"""Display-rate energy sampler feeding the noise floor and level calculator."""

import asyncio
import logging
import time
from datetime import datetime
from typing import Callable, Optional, Sequence

import numpy as np

from ..models.audio import AudioStats, DisplayLevels
from ..models.speaker import Speaker
from .levels import SpeakerLevelCalculator, round_half_up
from .noise_floor import NoiseFloorEstimator

logger = logging.getLogger(__name__)


def calculate_level(bins: Sequence[int]) -> int:
    """Average byte energy (0-255) of a frequency snapshot as a 0-100 level."""
    values = np.asarray(bins, dtype=np.float64)
    if values.size == 0:
        return 0
    return round_half_up(values.mean() / 255.0 * 100.0)


class AudioEnergySampler:
    """Samples the capture once per display frame.

    Each tick reduces a frequency snapshot to one reading, pushes it into the
    noise window, and reports background / guest levels for whoever is
    currently speaking.
    """

    def __init__(self,
                 capture,
                 noise_floor: NoiseFloorEstimator,
                 active_speaker: Callable[[], Optional[Speaker]],
                 levels_callback: Callable[[DisplayLevels], None],
                 calculator: Optional[SpeakerLevelCalculator] = None,
                 tick_hz: float = 60.0):
        """Initialize sampler.

        Args:
            capture: Capture capability exposing snapshot(handle)
            noise_floor: Estimator receiving every reading
            active_speaker: Read accessor for the currently speaking identity
            levels_callback: Receives the DisplayLevels computed on each tick
            calculator: Level policy (defaults to SpeakerLevelCalculator)
            tick_hz: Ticks per second
        """
        if tick_hz <= 0:
            raise ValueError(f"tick_hz must be positive, got {tick_hz}")
        self.capture = capture
        self.noise_floor = noise_floor
        self.active_speaker = active_speaker
        self.levels_callback = levels_callback
        self.calculator = calculator or SpeakerLevelCalculator()
        self.tick_hz = tick_hz

        self._task: Optional[asyncio.Task] = None
        self.start_time: Optional[datetime] = None
        self.total_ticks = 0
        self.last_reading = 0

    @property
    def is_sampling(self) -> bool:
        return self._task is not None and not self._task.done()

    def start(self, handle) -> None:
        """Schedule the tick loop on the running event loop for an acquired capture handle."""
        if self.is_sampling:
            logger.warning("Sampler already running")
            return

        logger.info(f"Starting energy sampler at {self.tick_hz:.0f} Hz")
        self.start_time = datetime.now()
        self.total_ticks = 0
        self._task = asyncio.get_running_loop().create_task(self._tick_loop(handle))
        self._task.set_name("AudioEnergySampler")

    def stop(self) -> None:
        """Cancel the tick loop. Safe to call when not running."""
        if self._task is None:
            return
        task, self._task = self._task, None
        task.cancel()
        logger.info(f"Energy sampler stopped after {self.total_ticks} ticks")

    def tick(self, handle) -> DisplayLevels:
        """Take one sample and publish the resulting levels."""
        reading = calculate_level(self.capture.snapshot(handle))
        self.noise_floor.push(reading)
        self.total_ticks += 1
        self.last_reading = reading

        speaker = self.active_speaker()
        baseline = self.noise_floor.baseline
        levels = self.calculator.compute_levels(reading, baseline, speaker)
        if speaker is not None and speaker.is_distinguished:
            logger.debug({
                "current_level": reading,
                "baseline": baseline,
                "differential": levels.speaker_level,
                "speaker": speaker.label,
            })
        self.levels_callback(levels)
        return levels

    async def _tick_loop(self, handle) -> None:
        period = 1.0 / self.tick_hz
        next_tick = time.monotonic()
        try:
            while True:
                self.tick(handle)
                next_tick += period
                delay = next_tick - time.monotonic()
                if delay < 0:
                    # Fell behind; resync instead of bursting to catch up
                    next_tick = time.monotonic()
                    delay = 0
                await asyncio.sleep(delay)
        except asyncio.CancelledError:
            raise
        except Exception as e:
            logger.error(f"Energy sampler stopped on error: {e}", exc_info=True)

    def get_stats(self) -> AudioStats:
        duration = 0.0
        if self.start_time:
            duration = (datetime.now() - self.start_time).total_seconds()
        return AudioStats(
            is_sampling=self.is_sampling,
            duration_seconds=duration,
            tick_hz=self.tick_hz,
            total_ticks=self.total_ticks,
            window_size=len(self.noise_floor),
            last_reading=self.last_reading,
        )
