"""Background / guest-speaker level computation."""

import math
from typing import Optional

from ..models.audio import DisplayLevels
from ..models.speaker import Speaker


def round_half_up(value: float) -> int:
    """Round .5 away from zero for positive values (2.5 -> 3), unlike round()."""
    return int(math.floor(value + 0.5))


class SpeakerLevelCalculator:
    """Splits the live reading into background and guest-speaker parts.

    While the guest speaks, the last calibrated baseline stands in for the
    background and whatever the live reading adds on top of it is attributed
    to the guest. Otherwise the live reading is all background.
    """

    def compute_levels(self,
                       current_reading: int,
                       baseline: int,
                       active_speaker: Optional[Speaker]) -> DisplayLevels:
        if active_speaker is not None and active_speaker.is_distinguished:
            return DisplayLevels(
                background_level=baseline,
                speaker_level=max(0, current_reading - baseline),
            )
        return DisplayLevels(background_level=current_reading, speaker_level=0)
