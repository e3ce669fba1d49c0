"""Audio capture and level estimation module."""

from .capture import MicrophoneCapture, CaptureHandle, AcquisitionError
from .analyser import FrequencyAnalyser
from .audio_pub import AudioPublisher, AUDIO_TOPIC
from .noise_floor import NoiseFloorEstimator
from .levels import SpeakerLevelCalculator
from .sampler import AudioEnergySampler, calculate_level

__all__ = [
    'MicrophoneCapture',
    'CaptureHandle',
    'AcquisitionError',
    'FrequencyAnalyser',
    'AudioPublisher',
    'AUDIO_TOPIC',
    'NoiseFloorEstimator',
    'SpeakerLevelCalculator',
    'AudioEnergySampler',
    'calculate_level',
]
