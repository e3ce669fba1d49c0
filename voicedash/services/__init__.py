"""Services layer for VoiceDash application logic."""

from .listening_session import ListeningSession
from .speaker_activity import SpeakerActivityStateMachine
from .transcript_log import TranscriptLog

__all__ = [
    "ListeningSession",
    "SpeakerActivityStateMachine",
    "TranscriptLog",
]
