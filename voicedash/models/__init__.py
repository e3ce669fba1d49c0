"""Data models for the VoiceDash application."""

from .audio import AudioStats, DisplayLevels
from .events import (
    AudioEvent,
    CancellationReason,
    CanceledEvent,
    SessionEvent,
    UtteranceEvent,
)
from .speaker import Speaker, SpeakerRole, SpeakerClassifier
from .transcription import TranscriptEntry
from .ui import DashboardSnapshot

__all__ = [
    "AudioStats",
    "DisplayLevels",
    "AudioEvent",
    "CancellationReason",
    "CanceledEvent",
    "SessionEvent",
    "UtteranceEvent",
    "Speaker",
    "SpeakerRole",
    "SpeakerClassifier",
    "TranscriptEntry",
    "DashboardSnapshot",
]
