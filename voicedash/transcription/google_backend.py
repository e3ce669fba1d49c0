"""Google Speech-to-Text streaming backend with speaker diarization."""

import queue
import threading
import logging
import uuid
from itertools import groupby
from typing import Callable, Iterator, List, Optional

from pubsub import pub
from google.cloud import speech
from google.api_core import exceptions as gax_exceptions
from google.auth import exceptions as auth_exceptions
from google.oauth2 import service_account

from .base import AbstractTranscriptionBackend, TranscriptionEvent, TranscriptionStartError
from ..audio.audio_pub import AUDIO_TOPIC
from ..models.events import AudioEvent, UtteranceEvent, CanceledEvent, CancellationReason, SessionEvent

logger = logging.getLogger(__name__)


def speaker_id_for_tag(speaker_tag: int) -> str:
    """Google numbers speakers 1..N; 0 means no speaker was assigned."""
    return f"Guest-{speaker_tag}" if speaker_tag else ""


def utterances_from_result(result, words_seen: int = 0) -> List[UtteranceEvent]:
    """Split a final recognition result into one utterance per run of same-speaker words.

    With diarization on, every streaming response repeats all words since the
    start of the audio. Only the words after the first ``words_seen`` are new.
    """
    if not result.alternatives:
        return []
    alternative = result.alternatives[0]
    all_words = list(alternative.words)
    words = all_words[words_seen:]

    if all_words and not words:
        return []
    if not words or not any(word.speaker_tag for word in words):
        return [UtteranceEvent(speaker_id="", text=alternative.transcript)]

    utterances = []
    for speaker_tag, run in groupby(words, key=lambda word: word.speaker_tag):
        text = " ".join(word.word for word in run)
        utterances.append(UtteranceEvent(speaker_id=speaker_id_for_tag(speaker_tag), text=text))
    return utterances


class GoogleDiarizationBackend(AbstractTranscriptionBackend):
    """Streams microphone chunks from the audio topic to Google Speech-to-Text."""

    def __init__(self,
                 credentials_path: Optional[str],
                 event_callback: Callable[[TranscriptionEvent], None],
                 audio_topic: str = AUDIO_TOPIC,
                 sample_rate: int = 16000,
                 language: str = "en-US",
                 enable_automatic_punctuation: bool = True,
                 min_speaker_count: int = 1,
                 max_speaker_count: int = 6):
        """Initialize Google diarization backend.

        Args:
            credentials_path: Path to Google Cloud service account JSON file
            event_callback: Sink for utterance, cancellation and session events
            audio_topic: Pub/sub topic carrying AudioEvent chunks from the microphone
            sample_rate: Sample rate of the published 16-bit PCM
            language: Default language code (e.g., 'en-US', 'es-ES')
            enable_automatic_punctuation: Enable automatic punctuation
            min_speaker_count: Lower bound hint for diarization
            max_speaker_count: Upper bound hint for diarization
        """
        super().__init__(event_callback, language)
        self.credentials_path = credentials_path
        self.audio_topic = audio_topic
        self.sample_rate = sample_rate
        self.enable_automatic_punctuation = enable_automatic_punctuation
        self.min_speaker_count = min_speaker_count
        self.max_speaker_count = max_speaker_count
        self.service_name = "Google Speech-to-Text"

        self.client: Optional[speech.SpeechClient] = None
        self.audio_queue: "queue.Queue[Optional[bytes]]" = queue.Queue()
        self.stop_event = threading.Event()
        self.stream_thread: Optional[threading.Thread] = None
        self.session_id: Optional[str] = None
        self.words_seen = 0

    @property
    def is_running(self) -> bool:
        return self.stream_thread is not None and self.stream_thread.is_alive()

    def build_streaming_config(self, language: str) -> speech.StreamingRecognitionConfig:
        config = speech.RecognitionConfig(
            encoding=speech.RecognitionConfig.AudioEncoding.LINEAR16,
            sample_rate_hertz=self.sample_rate,
            language_code=language,
            enable_automatic_punctuation=self.enable_automatic_punctuation,
            diarization_config=speech.SpeakerDiarizationConfig(
                enable_speaker_diarization=True,
                min_speaker_count=self.min_speaker_count,
                max_speaker_count=self.max_speaker_count,
            ),
        )
        return speech.StreamingRecognitionConfig(config=config, interim_results=False)

    def start(self, language: Optional[str] = None) -> None:
        if self.is_running:
            logger.warning("Transcription already running")
            return

        language = language or self.language
        if not self.credentials_path:
            raise TranscriptionStartError("Google credentials path is required")

        logger.info(f"Loading Google credentials from: {self.credentials_path}")
        try:
            credentials = service_account.Credentials.from_service_account_file(self.credentials_path)
            self.client = speech.SpeechClient(credentials=credentials)
        except (OSError, ValueError, auth_exceptions.GoogleAuthError) as e:
            logger.error(f"Error starting transcription: {e}")
            raise TranscriptionStartError(f"Could not start {self.service_name}: {e}") from e

        logger.info(f"Starting transcription ({language}) for project {credentials.project_id}")
        streaming_config = self.build_streaming_config(language)

        self.stop_event.clear()
        self.audio_queue = queue.Queue()
        self.session_id = uuid.uuid4().hex
        self.words_seen = 0
        pub.subscribe(self.on_audio_chunk, self.audio_topic)

        self.stream_thread = threading.Thread(
            target=self._stream_continuously, args=(streaming_config,), daemon=True
        )
        self.stream_thread.name = "GoogleDiarizationThread"
        self.stream_thread.start()

    def stop(self) -> None:
        if self.stream_thread is None:
            logger.debug("Transcription not running")
            return

        logger.info("Stopping transcription")
        self.stop_event.set()
        if pub.isSubscribed(self.on_audio_chunk, self.audio_topic):
            pub.unsubscribe(self.on_audio_chunk, self.audio_topic)
        self.audio_queue.put(None)

        if self.stream_thread.is_alive():
            self.stream_thread.join(timeout=5.0)
            if self.stream_thread.is_alive():
                logger.warning("Transcription thread did not stop cleanly")
        self.stream_thread = None
        self.client = None

    def on_audio_chunk(self, event: AudioEvent) -> None:
        """Receive a microphone chunk from the audio topic (capture thread)."""
        if not self.stop_event.is_set():
            self.audio_queue.put(event.audio_data)

    def _request_stream(self) -> Iterator[speech.StreamingRecognizeRequest]:
        while True:
            chunk = self.audio_queue.get()
            if chunk is None:
                return
            yield speech.StreamingRecognizeRequest(audio_content=chunk)

    def _emit_session_event(self, event_type: str) -> None:
        logger.info(f"Session {event_type}")
        self.event_callback(SessionEvent(event_id=self.session_id or "", event_type=event_type))

    def _stream_continuously(self, streaming_config: speech.StreamingRecognitionConfig) -> None:
        """Internal method: streaming recognition loop in background thread."""
        self._emit_session_event("started")
        try:
            responses = self.client.streaming_recognize(streaming_config, self._request_stream())
            for response in responses:
                for result in response.results:
                    if not result.is_final:
                        continue
                    utterances = utterances_from_result(result, self.words_seen)
                    if result.alternatives:
                        self.words_seen = max(self.words_seen, len(result.alternatives[0].words))
                    for utterance in utterances:
                        self.event_callback(utterance)

            if not self.stop_event.is_set():
                self.event_callback(CanceledEvent(reason=CancellationReason.END_OF_STREAM))
        except gax_exceptions.GoogleAPICallError as e:
            logger.error(f"Google STT streaming error: {e}")
            code = e.code.name if hasattr(e.code, "name") else str(e.code)
            self.event_callback(CanceledEvent(
                reason=CancellationReason.ERROR,
                error_code=code,
                error_detail=e.message,
            ))
        finally:
            self._emit_session_event("stopped")
