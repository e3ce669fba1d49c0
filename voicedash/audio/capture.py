"""Microphone capture with on-demand frequency snapshots and chunk publishing."""

import pyaudio
import time
import logging
from dataclasses import dataclass, field
from threading import Thread, Event, Lock
from typing import Optional, Callable
from datetime import datetime

import numpy as np

from ..models.events import AudioEvent
from .analyser import FrequencyAnalyser


logger = logging.getLogger(__name__)


class AcquisitionError(RuntimeError):
    """The microphone could not be opened (permission denied, no device, ...)."""


@dataclass
class CaptureHandle:
    """An open microphone stream and the thread draining it."""
    pyaudio_instance: pyaudio.PyAudio
    stream: pyaudio.Stream
    analyser: FrequencyAnalyser
    samples: np.ndarray
    lock: Lock = field(default_factory=Lock)
    stop_event: Event = field(default_factory=Event)
    reader_thread: Optional[Thread] = None
    start_time: datetime = field(default_factory=datetime.now)
    total_chunks: int = 0


class MicrophoneCapture:
    """Opens the default input device and keeps the latest samples for analysis."""

    def __init__(
        self,
        callback: Optional[Callable[[AudioEvent], None]] = None,
        sample_rate: int = 16000,
        chunk_size: int = 1024,
        channels: int = 1,
        fft_size: int = 256,
        smoothing: float = 0.8,
        min_decibels: float = -100.0,
        max_decibels: float = -30.0,
        format: int = pyaudio.paInt16,
    ):
        """Initialize microphone capture with specified parameters.

        Args:
            callback: Receives every raw chunk as an AudioEvent (e.g. for transcription)
            sample_rate: Audio sample rate (16kHz for Google Speech compatibility)
            chunk_size: Size of each audio chunk in samples
            channels: Number of audio channels (1 for mono)
            fft_size: Samples per frequency snapshot; yields fft_size // 2 bins
            smoothing: Temporal smoothing between consecutive snapshots
            min_decibels: Level mapped to byte 0
            max_decibels: Level mapped to byte 255
            format: Audio format (16-bit signed int)
        """
        self.audio_event_callback = callback
        self.sample_rate = sample_rate
        self.chunk_size = chunk_size
        self.channels = channels
        self.fft_size = fft_size
        self.smoothing = smoothing
        self.min_decibels = min_decibels
        self.max_decibels = max_decibels
        self.format = format

    def acquire(self) -> CaptureHandle:
        """Open the input stream and start draining it in a background thread.

        Raises:
            AcquisitionError: if the device cannot be opened
        """
        pyaudio_instance = pyaudio.PyAudio()
        try:
            stream = pyaudio_instance.open(
                format=self.format,
                channels=self.channels,
                rate=self.sample_rate,
                input=True,
                frames_per_buffer=self.chunk_size,
                stream_callback=None
            )
        except (OSError, IOError) as e:
            pyaudio_instance.terminate()
            logger.error(f"Error accessing microphone: {e}")
            raise AcquisitionError(f"Could not open microphone: {e}") from e

        logger.info(f"Audio stream opened: {self.sample_rate}Hz, "
                    f"{self.chunk_size} samples/chunk")

        handle = CaptureHandle(
            pyaudio_instance=pyaudio_instance,
            stream=stream,
            analyser=FrequencyAnalyser(
                fft_size=self.fft_size,
                smoothing=self.smoothing,
                min_decibels=self.min_decibels,
                max_decibels=self.max_decibels,
            ),
            samples=np.zeros(self.fft_size, dtype=np.float32),
        )
        handle.reader_thread = Thread(target=self._record_continuously, args=(handle,), daemon=True)
        handle.reader_thread.name = "MicrophoneCaptureThread"
        handle.reader_thread.start()
        return handle

    def snapshot(self, handle: CaptureHandle) -> np.ndarray:
        """Byte energy (0-255) per frequency bin for the most recent samples."""
        with handle.lock:
            samples = handle.samples.copy()
        return handle.analyser.byte_frequency_data(samples)

    def release(self, handle: CaptureHandle) -> None:
        """Stop the reader thread and close the stream."""
        logger.info("Releasing microphone")
        handle.stop_event.set()

        if handle.reader_thread and handle.reader_thread.is_alive():
            handle.reader_thread.join(timeout=2.0)
            if handle.reader_thread.is_alive():
                logger.warning("Capture thread did not stop cleanly")

        try:
            handle.stream.stop_stream()
            handle.stream.close()
        finally:
            handle.pyaudio_instance.terminate()
        logger.info(f"Microphone released. Total chunks: {handle.total_chunks}")

    def _record_continuously(self, handle: CaptureHandle) -> None:
        """Internal method: continuous read loop in background thread."""
        while not handle.stop_event.is_set():
            try:
                audio_chunk = handle.stream.read(
                    self.chunk_size,
                    exception_on_overflow=False
                )
            except (OSError, IOError) as e:
                logger.error(f"Microphone read failed: {e}")
                break

            handle.total_chunks += 1
            self._store_samples(handle, audio_chunk)
            if self.audio_event_callback:
                self._publish_audio_event(handle, audio_chunk)

    def _store_samples(self, handle: CaptureHandle, audio_chunk: bytes) -> None:
        pcm = np.frombuffer(audio_chunk, dtype=np.int16)
        if self.channels > 1:
            pcm = pcm.reshape(-1, self.channels).mean(axis=1)
        latest = pcm.astype(np.float32) / 32768.0
        with handle.lock:
            handle.samples = np.concatenate((handle.samples, latest))[-self.fft_size:]

    def _publish_audio_event(self, handle: CaptureHandle, audio_chunk: bytes) -> None:
        audio_event = AudioEvent(
            chunk_id=f"chunk_{handle.total_chunks}",
            audio_data=audio_chunk,
            timestamp=time.time(),
            sequence_number=handle.total_chunks,
            sample_rate=self.sample_rate,
            channels=self.channels,
            final=handle.stop_event.is_set()
        )
        self.audio_event_callback(audio_event)
