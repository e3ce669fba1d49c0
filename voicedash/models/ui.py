"""UI-related data models."""

from dataclasses import dataclass
from typing import Optional, Tuple

from .speaker import Speaker
from .transcription import TranscriptEntry


@dataclass(frozen=True)
class DashboardSnapshot:
    """Read-only view of a listening session for the presentation layer."""
    active_speaker: Optional[Speaker] = None
    known_speakers: Tuple[Speaker, ...] = ()
    transcript: Tuple[TranscriptEntry, ...] = ()
    background_level: int = 0
    speaker_level: int = 0
    baseline: int = 0
    is_listening: bool = False
