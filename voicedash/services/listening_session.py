"""Listening session: owns the capture, transcription and level state for one start-to-stop run."""

import asyncio
import logging
from contextlib import ExitStack
from typing import Optional

from pubsub import pub

from ..audio.audio_pub import AudioPublisher
from ..audio.capture import MicrophoneCapture
from ..audio.levels import SpeakerLevelCalculator
from ..audio.noise_floor import NoiseFloorEstimator, DEFAULT_WINDOW_SIZE
from ..audio.sampler import AudioEnergySampler
from ..config import VoiceDashConfig
from ..models.audio import DisplayLevels
from ..models.speaker import SpeakerClassifier
from ..models.ui import DashboardSnapshot
from ..transcription.base import AbstractTranscriptionBackend
from ..transcription.google_backend import GoogleDiarizationBackend
from ..transcription.publisher import (
    TranscriptionPublisher,
    UTTERANCE_TOPIC,
    CANCELED_TOPIC,
    SESSION_TOPIC,
)
from .speaker_activity import SpeakerActivityStateMachine, DEFAULT_EXPIRY_SECONDS
from .transcript_log import TranscriptLog

logger = logging.getLogger(__name__)


class ListeningSession:
    """Wires the energy sampler and the speaker-activity state machine together.

    Everything runs on one asyncio loop: sampler ticks, expiry timers and
    transcription event handlers. start() and stop() must be awaited from
    that loop.
    """

    def __init__(self,
                 capture,
                 backend: AbstractTranscriptionBackend,
                 publisher: TranscriptionPublisher,
                 language: str = "en-US",
                 classifier: Optional[SpeakerClassifier] = None,
                 expiry_seconds: float = DEFAULT_EXPIRY_SECONDS,
                 noise_window: int = DEFAULT_WINDOW_SIZE,
                 tick_hz: float = 60.0):
        """Initialize listening session.

        Args:
            capture: Capture capability (acquire / snapshot / release)
            backend: Transcription backend publishing through publisher
            publisher: Delivers backend events onto the session loop
            language: Language tag passed to the backend on start
            classifier: Resolves speaker ids and the distinguished speaker
            expiry_seconds: Active-speaker expiry
            noise_window: Number of readings kept for the baseline
            tick_hz: Sampler rate
        """
        self.capture = capture
        self.backend = backend
        self.publisher = publisher
        self.language = language

        self.noise_floor = NoiseFloorEstimator(window_size=noise_window)
        self.transcript = TranscriptLog()
        self.classifier = classifier or SpeakerClassifier()
        self.expiry_seconds = expiry_seconds
        # Outlives start/stop so known speakers carry over a restart
        self.state_machine = SpeakerActivityStateMachine(
            noise_floor=self.noise_floor,
            transcript=self.transcript,
            classifier=self.classifier,
            expiry_seconds=expiry_seconds,
        )
        self.sampler = AudioEnergySampler(
            capture=capture,
            noise_floor=self.noise_floor,
            active_speaker=self._read_active_speaker,
            levels_callback=self._on_levels,
            calculator=SpeakerLevelCalculator(),
            tick_hz=tick_hz,
        )

        self.levels = DisplayLevels()
        self.is_listening = False
        self._resources: Optional[ExitStack] = None

    @classmethod
    def from_config(cls, config: VoiceDashConfig) -> "ListeningSession":
        """Build a session on the default microphone and Google Speech-to-Text."""
        audio_publisher = AudioPublisher()
        sample_rate = config.get('audio.sample_rate', 16000)
        capture = MicrophoneCapture(
            callback=audio_publisher.publish_audio_event,
            sample_rate=sample_rate,
            chunk_size=config.get('audio.chunk_size', 1024),
            channels=config.get('audio.channels', 1),
            fft_size=config.get('audio.fft_size', 256),
            smoothing=config.get('audio.smoothing', 0.8),
            min_decibels=config.get('audio.min_decibels', -100.0),
            max_decibels=config.get('audio.max_decibels', -30.0),
        )
        publisher = TranscriptionPublisher()
        backend = GoogleDiarizationBackend(
            credentials_path=config.get_google_credentials_path(),
            event_callback=publisher.get_callback(),
            audio_topic=audio_publisher.topic,
            sample_rate=sample_rate,
            language=config.get_language(),
            enable_automatic_punctuation=config.get('google_cloud.enable_automatic_punctuation', True),
            min_speaker_count=config.get('google_cloud.min_speaker_count', 1),
            max_speaker_count=config.get('google_cloud.max_speaker_count', 6),
        )
        classifier = SpeakerClassifier(
            distinguished_label=config.get_distinguished_speaker(),
            label_prefix=config.get('speakers.label_prefix', 'Speaker '),
            unknown_id=config.get('speakers.unknown_id', 'unknown'),
        )
        return cls(
            capture=capture,
            backend=backend,
            publisher=publisher,
            language=config.get_language(),
            classifier=classifier,
            expiry_seconds=config.get('speakers.expiry_seconds', DEFAULT_EXPIRY_SECONDS),
            noise_window=config.get('audio.noise_window', DEFAULT_WINDOW_SIZE),
            tick_hz=config.get('audio.tick_hz', 60.0),
        )

    async def start(self) -> None:
        """Acquire the microphone, start transcription and begin sampling.

        Raises:
            AcquisitionError: the microphone could not be opened
            TranscriptionStartError: the transcription service could not start
        """
        if self._resources is not None:
            logger.warning("Session already listening")
            return

        loop = asyncio.get_running_loop()
        logger.info("Starting listening session...")

        with ExitStack() as stack:
            handle = self.capture.acquire()
            stack.callback(self.capture.release, handle)

            state_machine = self.state_machine
            state_machine.bind(loop)
            self._subscribe(state_machine)
            stack.callback(self._unsubscribe, state_machine)
            self.publisher.attach(loop)
            stack.callback(self.publisher.detach)

            self.backend.start(self.language)
            stack.callback(self.backend.stop)

            self.sampler.start(handle)
            stack.callback(self.sampler.stop)
            stack.callback(state_machine.shutdown)

            self._resources = stack.pop_all()

        self.is_listening = True
        logger.info("Transcription started successfully")

    async def stop(self) -> None:
        """Halt sampling, stop transcription and release the microphone.

        Every release runs even if an earlier one fails; the failure is
        re-raised once all of them have run. Stopping a session that never
        started does nothing.
        """
        if self._resources is None:
            logger.debug("Stop requested with no active session")
            return

        resources, self._resources = self._resources, None
        self.is_listening = False
        logger.info("Stopping listening session...")
        try:
            resources.close()
        except Exception as e:
            logger.error(f"Error while releasing session resources: {e}")
            raise
        logger.info("Listening session stopped")

    def snapshot(self) -> DashboardSnapshot:
        return DashboardSnapshot(
            active_speaker=self.state_machine.active_speaker,
            known_speakers=self.state_machine.known_speakers,
            transcript=self.transcript.entries,
            background_level=self.levels.background_level,
            speaker_level=self.levels.speaker_level,
            baseline=self.noise_floor.baseline,
            is_listening=self.is_listening,
        )

    def _read_active_speaker(self):
        return self.state_machine.active_speaker

    def _on_levels(self, levels: DisplayLevels) -> None:
        self.levels = levels

    def _subscribe(self, state_machine: SpeakerActivityStateMachine) -> None:
        pub.subscribe(state_machine.on_utterance, UTTERANCE_TOPIC)
        pub.subscribe(state_machine.on_canceled, CANCELED_TOPIC)
        pub.subscribe(state_machine.on_session_event, SESSION_TOPIC)

    def _unsubscribe(self, state_machine: SpeakerActivityStateMachine) -> None:
        for listener, topic in ((state_machine.on_utterance, UTTERANCE_TOPIC),
                                (state_machine.on_canceled, CANCELED_TOPIC),
                                (state_machine.on_session_event, SESSION_TOPIC)):
            if pub.isSubscribed(listener, topic):
                pub.unsubscribe(listener, topic)
