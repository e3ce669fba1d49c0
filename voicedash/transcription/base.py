"""Abstract base class for diarized transcription backends."""

from abc import ABC, abstractmethod
from typing import Callable, Union
import logging

from ..models.events import UtteranceEvent, CanceledEvent, SessionEvent

logger = logging.getLogger(__name__)

TranscriptionEvent = Union[UtteranceEvent, CanceledEvent, SessionEvent]


class TranscriptionStartError(RuntimeError):
    """The transcription service could not be started."""


class AbstractTranscriptionBackend(ABC):
    """A streaming, speaker-diarizing speech-to-text service.

    Backends deliver UtteranceEvent, CanceledEvent and SessionEvent objects
    through event_callback, one at a time, possibly from a worker thread.
    """

    def __init__(self, event_callback: Callable[[TranscriptionEvent], None], language: str = "en-US"):
        """Initialize backend with event sink and language preference."""
        self.event_callback = event_callback
        self.language = language

    @abstractmethod
    def start(self, language: str) -> None:
        """Start transcribing.

        Raises:
            TranscriptionStartError: if the service cannot be started
        """
        pass

    @abstractmethod
    def stop(self) -> None:
        """Stop transcribing and release the connection. Safe to call when not started."""
        pass

    @property
    @abstractmethod
    def is_running(self) -> bool:
        pass
