"""Live speaker-level and diarized transcript dashboard."""

__version__ = "0.1.0"
