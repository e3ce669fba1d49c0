"""Transcription module for VoiceDash."""

from .base import AbstractTranscriptionBackend, TranscriptionEvent, TranscriptionStartError
from .google_backend import GoogleDiarizationBackend, utterances_from_result
from .publisher import (
    TranscriptionPublisher,
    UTTERANCE_TOPIC,
    CANCELED_TOPIC,
    SESSION_TOPIC,
)

__all__ = [
    "AbstractTranscriptionBackend",
    "TranscriptionEvent",
    "TranscriptionStartError",
    "GoogleDiarizationBackend",
    "utterances_from_result",
    "TranscriptionPublisher",
    "UTTERANCE_TOPIC",
    "CANCELED_TOPIC",
    "SESSION_TOPIC",
]
