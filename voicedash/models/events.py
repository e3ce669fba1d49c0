"""Event models for pub/sub audio and transcription processing."""

from dataclasses import dataclass, field
from datetime import datetime
from enum import Enum
from typing import Optional, Any, Dict


@dataclass
class AudioEvent:
    """Audio chunk event with metadata."""
    chunk_id: str
    audio_data: bytes
    timestamp: float  # Unix timestamp when chunk was captured
    sequence_number: int
    sample_rate: int = 16000
    channels: int = 1
    chunk_duration_ms: Optional[int] = None
    final: bool = False  # True if this is the final chunk for the session

    def __post_init__(self):
        """Calculate chunk duration if not provided."""
        if self.chunk_duration_ms is None and self.audio_data:
            # 16-bit audio (2 bytes per sample)
            bytes_per_second = self.sample_rate * self.channels * 2
            duration_seconds = len(self.audio_data) / bytes_per_second
            self.chunk_duration_ms = int(duration_seconds * 1000)


@dataclass(frozen=True)
class UtteranceEvent:
    """One recognized speech segment. speaker_id is empty when diarization gave no speaker."""
    speaker_id: str
    text: str
    timestamp: datetime = field(default_factory=datetime.now)


class CancellationReason(Enum):
    """Why a transcription session ended without being stopped."""
    ERROR = "error"
    END_OF_STREAM = "end_of_stream"
    CANCELLED_BY_USER = "cancelled_by_user"


@dataclass(frozen=True)
class CanceledEvent:
    """Transcription session canceled event."""
    reason: CancellationReason
    error_code: Optional[str] = None
    error_detail: Optional[str] = None
    timestamp: datetime = field(default_factory=datetime.now)


@dataclass
class SessionEvent:
    """Transcription session lifecycle event."""
    event_id: str
    event_type: str  # "started", "stopped"
    timestamp: datetime = field(default_factory=datetime.now)
    metadata: Dict[str, Any] = field(default_factory=dict)
