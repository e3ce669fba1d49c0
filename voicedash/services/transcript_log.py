"""Append-only record of who said what."""

import logging
from typing import Iterator, List, Tuple

from ..models.speaker import Speaker
from ..models.transcription import TranscriptEntry

logger = logging.getLogger(__name__)


class TranscriptLog:
    """Ordered transcript. Entries are never reordered or modified once appended."""

    def __init__(self):
        self._entries: List[TranscriptEntry] = []

    def append(self, speaker: Speaker, text: str) -> TranscriptEntry:
        entry = TranscriptEntry(speaker=speaker, text=text)
        self._entries.append(entry)
        logger.debug(f"Transcript[{len(self._entries)}] {speaker.label}: {text}")
        return entry

    @property
    def entries(self) -> Tuple[TranscriptEntry, ...]:
        return tuple(self._entries)

    def __len__(self) -> int:
        return len(self._entries)

    def __iter__(self) -> Iterator[TranscriptEntry]:
        return iter(self.entries)
