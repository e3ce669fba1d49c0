"""Audio-related data models."""

from dataclasses import dataclass


@dataclass
class AudioStats:
    """Energy sampler statistics."""
    is_sampling: bool
    duration_seconds: float
    tick_hz: float
    total_ticks: int
    window_size: int
    last_reading: int


@dataclass(frozen=True)
class DisplayLevels:
    """Background and guest-speaker levels for one sampler tick, both in [0, 100]."""
    background_level: int = 0
    speaker_level: int = 0
