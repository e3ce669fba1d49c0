"""Terminal dashboard rendering a listening session snapshot."""

import logging
from typing import Optional

from rich.align import Align
from rich.console import Group
from rich.layout import Layout
from rich.panel import Panel
from rich.table import Table
from rich.text import Text

from ..models.speaker import Speaker
from ..models.ui import DashboardSnapshot

logger = logging.getLogger(__name__)

BAR_WIDTH = 20
TRANSCRIPT_LINES = 12


def speaker_style(speaker: Optional[Speaker]) -> str:
    if speaker is None:
        return "grey62"
    return "bold green" if speaker.is_distinguished else "bold red"


def level_bar(level: int, baseline: Optional[int] = None) -> Text:
    """0-100 level as a bar, with a marker at the baseline when given."""
    filled = level * BAR_WIDTH // 100
    cells = ["█" if i < filled else "░" for i in range(BAR_WIDTH)]
    if baseline is not None:
        marker = min(BAR_WIDTH - 1, baseline * BAR_WIDTH // 100)
        cells[marker] = "│"
    return Text("".join(cells))


class DashboardScreen:
    """Builds the dashboard layout from a DashboardSnapshot."""

    def __init__(self, title: str = "VoiceDash - Voice Analytics Dashboard"):
        self.title = title

    def create_layout(self) -> Layout:
        layout = Layout()
        layout.split_column(
            Layout(name="header", size=3),
            Layout(name="main", ratio=1),
        )
        layout["main"].split_row(
            Layout(name="levels_panel", ratio=1),
            Layout(name="history_panel", ratio=2),
        )
        return layout

    def render(self, snapshot: DashboardSnapshot) -> Layout:
        layout = self.create_layout()
        self.update_header(layout, snapshot)
        self.update_levels_panel(layout, snapshot)
        self.update_history_panel(layout, snapshot)
        return layout

    def update_header(self, layout: Layout, snapshot: DashboardSnapshot) -> None:
        status_text = "● LISTENING" if snapshot.is_listening else "■ STOPPED"
        status_style = "bold red" if snapshot.is_listening else "bold yellow"
        header_text = Text.assemble(
            (self.title, "bold blue"), "  |  ", (status_text, status_style)
        )
        layout["header"].update(Panel(Align.center(header_text), style="bright_blue"))

    def update_levels_panel(self, layout: Layout, snapshot: DashboardSnapshot) -> None:
        speaker = snapshot.active_speaker
        speaking = Text(speaker.label if speaker else "No one speaking", style=speaker_style(speaker))

        levels = Table(show_header=True, header_style="bold magenta")
        levels.add_column("Level", style="cyan")
        levels.add_column("Meter")
        levels.add_column("Value", justify="right")
        levels.add_row("Speaker", level_bar(snapshot.speaker_level), str(snapshot.speaker_level))
        levels.add_row(
            "Background",
            level_bar(snapshot.background_level, snapshot.baseline),
            str(snapshot.background_level),
        )
        levels.add_row("Baseline", level_bar(snapshot.baseline), str(snapshot.baseline))

        layout["levels_panel"].update(Panel(
            Group(Align.center(speaking), levels),
            title="Levels",
            border_style="green",
        ))

    def update_history_panel(self, layout: Layout, snapshot: DashboardSnapshot) -> None:
        speakers = Text("  ").join(
            Text(speaker.label, style=speaker_style(speaker)) for speaker in snapshot.known_speakers
        )

        lines = Text()
        for entry in snapshot.transcript[-TRANSCRIPT_LINES:]:
            lines.append(f"{entry.speaker.label}: ", style=speaker_style(entry.speaker))
            lines.append(f"{entry.text}\n")
        if not snapshot.transcript:
            lines = Text("Waiting for speech...", style="dim white italic")

        layout["history_panel"].update(Panel(
            Group(speakers, Text(""), lines),
            title="Conversation History",
            border_style="blue",
        ))
