"""Byte frequency analysis of PCM samples.

Mirrors what a browser AnalyserNode reports from getByteFrequencyData: a
Blackman-windowed FFT, exponential smoothing against the previous frame, and
magnitudes in decibels mapped linearly from [min_decibels, max_decibels] onto
[0, 255].
"""

import logging
from typing import Optional

import numpy as np

logger = logging.getLogger(__name__)


class FrequencyAnalyser:
    """Stateful analyser producing one byte per frequency bin."""

    def __init__(self,
                 fft_size: int = 256,
                 smoothing: float = 0.8,
                 min_decibels: float = -100.0,
                 max_decibels: float = -30.0):
        if fft_size < 2 or fft_size & (fft_size - 1):
            raise ValueError(f"fft_size must be a power of two, got {fft_size}")
        if min_decibels >= max_decibels:
            raise ValueError("min_decibels must be below max_decibels")
        if not 0.0 <= smoothing < 1.0:
            raise ValueError(f"smoothing must be in [0, 1), got {smoothing}")

        self.fft_size = fft_size
        self.smoothing = smoothing
        self.min_decibels = min_decibels
        self.max_decibels = max_decibels
        self._window = np.blackman(fft_size)
        self._previous: Optional[np.ndarray] = None

    @property
    def bin_count(self) -> int:
        return self.fft_size // 2

    def reset(self) -> None:
        self._previous = None

    def byte_frequency_data(self, samples: np.ndarray) -> np.ndarray:
        """Analyse the most recent fft_size float samples in [-1, 1]."""
        frame = np.zeros(self.fft_size, dtype=np.float64)
        tail = np.asarray(samples, dtype=np.float64)[-self.fft_size:]
        frame[self.fft_size - tail.size:] = tail

        magnitudes = np.abs(np.fft.rfft(frame * self._window))[:self.bin_count] / self.fft_size
        if self._previous is not None:
            magnitudes = self.smoothing * self._previous + (1.0 - self.smoothing) * magnitudes
        self._previous = magnitudes

        with np.errstate(divide='ignore'):
            decibels = 20.0 * np.log10(magnitudes)
        scale = 255.0 / (self.max_decibels - self.min_decibels)
        scaled = np.floor((decibels - self.min_decibels) * scale)
        return np.clip(np.nan_to_num(scaled, neginf=0.0), 0, 255).astype(np.uint8)
