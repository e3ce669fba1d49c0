"""Pytest configuration and fixtures for VoiceDash tests."""

import pytest
import tempfile
import logging
from pathlib import Path
from unittest.mock import Mock, patch
import numpy as np
import yaml
from pubsub import pub

from voicedash.audio.capture import AcquisitionError
from voicedash.transcription.base import AbstractTranscriptionBackend, TranscriptionStartError


# Configure logging for tests
logging.basicConfig(level=logging.INFO)
logger = logging.getLogger(__name__)


def pytest_configure(config):
    config.addinivalue_line("markers", "unit: fast isolated tests")
    config.addinivalue_line("markers", "integration: tests wiring several components on a real event loop")
    config.addinivalue_line("markers", "slow: tests that sleep in real time")
    config.addinivalue_line("markers", "hardware: tests that need a real microphone")


@pytest.fixture(autouse=True)
def reset_pubsub():
    """Drop listeners left behind by a test."""
    yield
    pub.unsubAll()


@pytest.fixture
def temp_data_dir():
    """Create temporary directory for test data."""
    with tempfile.TemporaryDirectory() as temp_dir:
        yield temp_dir


@pytest.fixture
def sample_audio_chunk():
    """Generate a sample audio chunk for testing."""
    # 1024 samples of 16-bit audio (sine wave)
    sample_rate = 16000
    duration = 1024 / sample_rate
    freq = 440  # A4 note

    t = np.linspace(0, duration, 1024, False)
    wave_data = np.sin(2 * np.pi * freq * t)

    audio_data = (wave_data * 32767).astype(np.int16)
    return audio_data.tobytes()


@pytest.fixture
def mock_pyaudio():
    """Mock PyAudio for testing without actual audio hardware."""
    with patch('pyaudio.PyAudio') as mock_pyaudio_class:
        mock_pyaudio_instance = Mock()
        mock_stream = Mock()

        # Configure mock stream
        mock_stream.read.return_value = b'\x00' * 2048  # Silent audio
        mock_stream.stop_stream.return_value = None
        mock_stream.close.return_value = None

        # Configure mock PyAudio instance
        mock_pyaudio_instance.open.return_value = mock_stream
        mock_pyaudio_instance.terminate.return_value = None
        mock_pyaudio_instance.get_sample_size.return_value = 2

        mock_pyaudio_class.return_value = mock_pyaudio_instance

        yield {
            'class': mock_pyaudio_class,
            'instance': mock_pyaudio_instance,
            'stream': mock_stream
        }


@pytest.fixture
def config_file(temp_data_dir):
    """Write a minimal voicedash.yaml and return its path."""
    creds = Path(temp_data_dir) / "credentials.json"
    creds.write_text("{}")
    config = {
        "google_cloud": {"credentials_path": "credentials.json", "language": "en-GB"},
        "audio": {"tick_hz": 30, "noise_window": 60},
        "speakers": {"distinguished": "Speaker Guest-2", "expiry_seconds": 1.5},
        "logging": {"level": "DEBUG", "file_path": "logs/voicedash.log"},
    }
    path = Path(temp_data_dir) / "voicedash.yaml"
    path.write_text(yaml.safe_dump(config))
    return str(path)


class FakeTimerHandle:
    def __init__(self, when, callback, args):
        self.when = when
        self.callback = callback
        self.args = args
        self.cancelled = False

    def cancel(self):
        self.cancelled = True


class FakeScheduler:
    """Manual clock exposing the call_later() subset of an event loop."""

    def __init__(self):
        self.now = 0.0
        self.timers = []

    def call_later(self, delay, callback, *args):
        handle = FakeTimerHandle(self.now + delay, callback, args)
        self.timers.append(handle)
        return handle

    def advance(self, seconds):
        target = self.now + seconds
        while True:
            due = [t for t in self.timers if not t.cancelled and t.when <= target]
            if not due:
                break
            timer = min(due, key=lambda t: t.when)
            self.timers.remove(timer)
            self.now = timer.when
            timer.callback(*timer.args)
        self.now = target

    @property
    def pending(self):
        return [t for t in self.timers if not t.cancelled]


@pytest.fixture
def scheduler():
    return FakeScheduler()


class FakeCapture:
    """Capture capability returning a fixed frequency snapshot."""

    def __init__(self, bins=None):
        self.bins = np.full(128, 102, dtype=np.uint8) if bins is None else bins
        self.fail_acquire = False
        self.fail_release = False
        self.acquired = 0
        self.released = 0
        self.snapshots = 0

    def acquire(self):
        if self.fail_acquire:
            raise AcquisitionError("Permission denied")
        self.acquired += 1
        return object()

    def snapshot(self, handle):
        self.snapshots += 1
        return self.bins

    def release(self, handle):
        self.released += 1
        if self.fail_release:
            raise OSError("device vanished")


@pytest.fixture
def fake_capture():
    return FakeCapture()


class FakeBackend(AbstractTranscriptionBackend):
    """Transcription backend driven by the test through emit()."""

    def __init__(self, event_callback):
        super().__init__(event_callback)
        self.fail_start = False
        self.started_with = []
        self.stopped = 0
        self._running = False

    @property
    def is_running(self):
        return self._running

    def start(self, language):
        if self.fail_start:
            raise TranscriptionStartError("bad credentials")
        self.started_with.append(language)
        self._running = True

    def stop(self):
        self.stopped += 1
        self._running = False

    def emit(self, event):
        self.event_callback(event)


@pytest.fixture
def fake_backend_cls():
    return FakeBackend
