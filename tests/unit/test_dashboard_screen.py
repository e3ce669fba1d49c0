"""Unit tests for the terminal dashboard."""

import pytest
from rich.console import Console

from voicedash.models.speaker import Speaker, SpeakerRole
from voicedash.models.transcription import TranscriptEntry
from voicedash.models.ui import DashboardSnapshot
from voicedash.ui.dashboard_screen import DashboardScreen, level_bar, speaker_style


GUEST = Speaker("Speaker Guest-1", SpeakerRole.DISTINGUISHED)
HOST = Speaker("Speaker Guest-2", SpeakerRole.OTHER)


def render_text(snapshot):
    console = Console(record=True, width=120, height=30)
    console.print(DashboardScreen().render(snapshot))
    return console.export_text()


@pytest.mark.unit
class TestDashboardScreen:

    def test_idle_snapshot(self):
        text = render_text(DashboardSnapshot())

        assert "No one speaking" in text
        assert "STOPPED" in text
        assert "Waiting for speech" in text

    def test_active_snapshot(self):
        snapshot = DashboardSnapshot(
            active_speaker=GUEST,
            known_speakers=(GUEST, HOST),
            transcript=(TranscriptEntry(GUEST, "hello there"), TranscriptEntry(HOST, "welcome")),
            background_level=40,
            speaker_level=30,
            baseline=40,
            is_listening=True,
        )

        text = render_text(snapshot)

        assert "LISTENING" in text
        assert "Speaker Guest-1: hello there" in text
        assert "Speaker Guest-2: welcome" in text
        assert "Speaker Guest-2" in text

    def test_level_bar(self):
        assert level_bar(50).plain == "█" * 10 + "░" * 10
        assert level_bar(0, baseline=100).plain.endswith("│")

    def test_speaker_style(self):
        assert speaker_style(GUEST) == "bold green"
        assert speaker_style(HOST) == "bold red"
        assert speaker_style(None) == "grey62"
