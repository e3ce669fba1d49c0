"""Speaker identity models.

Every diarized speaker is classified exactly once, when its utterance arrives,
as either the distinguished (guest) speaker or some other party. Downstream
code branches on the role rather than comparing labels.
"""

from dataclasses import dataclass
from enum import Enum


class SpeakerRole(Enum):
    DISTINGUISHED = "distinguished"
    OTHER = "other"


@dataclass(frozen=True)
class Speaker:
    """A display label plus its role."""
    label: str
    role: SpeakerRole = SpeakerRole.OTHER

    @property
    def is_distinguished(self) -> bool:
        return self.role is SpeakerRole.DISTINGUISHED

    def __str__(self) -> str:
        return self.label


class SpeakerClassifier:
    """Turns raw speaker ids from the transcription service into Speakers."""

    def __init__(self,
                 distinguished_label: str = "Speaker Guest-1",
                 label_prefix: str = "Speaker ",
                 unknown_id: str = "unknown"):
        self.distinguished_label = distinguished_label
        self.label_prefix = label_prefix
        self.unknown_id = unknown_id

    def classify(self, speaker_id: str) -> Speaker:
        label = f"{self.label_prefix}{speaker_id or self.unknown_id}"
        if label == self.distinguished_label:
            return Speaker(label, SpeakerRole.DISTINGUISHED)
        return Speaker(label, SpeakerRole.OTHER)
