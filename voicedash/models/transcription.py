"""Transcription-related data models."""

from dataclasses import dataclass, field
from datetime import datetime

from .speaker import Speaker


@dataclass(frozen=True)
class TranscriptEntry:
    """A single line of the running transcript."""
    speaker: Speaker
    text: str
    timestamp: datetime = field(default_factory=datetime.now)
