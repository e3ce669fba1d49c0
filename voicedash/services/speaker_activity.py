"""Tracks who is speaking right now from the diarized transcription stream."""

import logging
from typing import Any, Dict, Optional, Tuple

from ..audio.noise_floor import NoiseFloorEstimator
from ..models.events import UtteranceEvent, CanceledEvent, CancellationReason, SessionEvent
from ..models.speaker import Speaker, SpeakerClassifier
from .transcript_log import TranscriptLog

logger = logging.getLogger(__name__)

DEFAULT_EXPIRY_SECONDS = 3.0


class SpeakerActivityStateMachine:
    """Idle / Active(speaker) state driven by transcription events.

    Every utterance makes its speaker active and restarts the expiry. Each
    write bumps a generation counter and the scheduled expiry carries the
    generation it was created for, so an expiry that was superseded cannot
    clear a newer speaker even if its cancellation raced with firing.

    The scheduler is anything with asyncio's call_later(delay, callback, *args)
    returning a handle with cancel(); in a session it is the event loop.
    """

    def __init__(self,
                 noise_floor: NoiseFloorEstimator,
                 transcript: TranscriptLog,
                 scheduler=None,
                 classifier: Optional[SpeakerClassifier] = None,
                 expiry_seconds: float = DEFAULT_EXPIRY_SECONDS):
        """Initialize state machine.

        Args:
            noise_floor: Recalibrated whenever the distinguished speaker talks
            transcript: Receives every non-empty utterance
            scheduler: Provides call_later() for the speaking expiry; may be bound later
            classifier: Resolves raw speaker ids into Speakers
            expiry_seconds: How long a speaker stays active after their last utterance
        """
        self.noise_floor = noise_floor
        self.transcript = transcript
        self.scheduler = scheduler
        self.classifier = classifier or SpeakerClassifier()
        self.expiry_seconds = expiry_seconds

        self._active_speaker: Optional[Speaker] = None
        self._known_speakers: Dict[Speaker, None] = {}
        self._generation = 0
        self._expiry_handle: Optional[Any] = None

    @property
    def active_speaker(self) -> Optional[Speaker]:
        return self._active_speaker

    @property
    def known_speakers(self) -> Tuple[Speaker, ...]:
        return tuple(self._known_speakers)

    @property
    def is_idle(self) -> bool:
        return self._active_speaker is None

    def on_utterance(self, event: UtteranceEvent) -> None:
        """Handle one recognized segment."""
        text = event.text
        if not text or not text.strip():
            return

        speaker = self.classifier.classify(event.speaker_id)
        logger.info(f"Speaker detected: {speaker.label}")

        if speaker not in self._known_speakers:
            self._known_speakers[speaker] = None
        self.transcript.append(speaker, text)

        # Baseline must describe the room before this utterance lands
        if speaker.is_distinguished:
            self.noise_floor.recalibrate()

        self._set_active(speaker)

    def on_canceled(self, event: CanceledEvent) -> None:
        logger.warning(f"CANCELED: Reason={event.reason.name}")
        if event.reason is CancellationReason.ERROR:
            logger.error(f"CANCELED: ErrorCode={event.error_code}")
            logger.error(f"CANCELED: ErrorDetails={event.error_detail}")

    def on_session_event(self, event: SessionEvent) -> None:
        if event.event_type == "started":
            logger.info("Transcription session started")
        elif event.event_type == "stopped":
            logger.info("Transcription session stopped")
        else:
            logger.debug(f"Unhandled session event: {event.event_type}")

    def bind(self, scheduler) -> None:
        """Use a new scheduler for expiries; a speaker left active by an earlier run is cleared."""
        self._cancel_expiry()
        self._generation += 1
        self.scheduler = scheduler
        self._active_speaker = None

    def shutdown(self) -> None:
        """Cancel any pending expiry so nothing fires after teardown."""
        self._generation += 1
        self._cancel_expiry()

    def _set_active(self, speaker: Speaker) -> None:
        self._cancel_expiry()
        self._generation += 1
        self._active_speaker = speaker
        self._expiry_handle = self.scheduler.call_later(
            self.expiry_seconds, self._expire, self._generation
        )

    def _cancel_expiry(self) -> None:
        if self._expiry_handle is not None:
            self._expiry_handle.cancel()
            self._expiry_handle = None

    def _expire(self, generation: int) -> None:
        if generation != self._generation:
            return
        logger.debug("Resetting current speaker")
        self._active_speaker = None
        self._expiry_handle = None
