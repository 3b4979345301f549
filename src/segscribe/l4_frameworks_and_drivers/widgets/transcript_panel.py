"""Transcript panel — scrolling RichLog of transcribed segments."""

from __future__ import annotations

import pyperclip
from textual.widgets import RichLog

from segscribe.l1_entities.transcript import TranscriptionResult, format_wall_time


class TranscriptPanel(RichLog):
    """Auto-scrolling transcript display using RichLog."""

    DEFAULT_CSS = """
    TranscriptPanel {
        border: solid $primary;
        scrollbar-size: 1 1;
    }
    TranscriptPanel:focus {
        border: solid $accent;
    }
    """

    def __init__(self, title: str = 'Transcript', **kwargs) -> None:
        super().__init__(highlight=True, markup=True, wrap=True, auto_scroll=True, **kwargs)
        self.border_title = title
        self._lines: list[str] = []

    @property
    def lines_text(self) -> list[str]:
        return list(self._lines)

    def append_result(self, result: TranscriptionResult) -> None:
        """Write one merged segment; blank results leave the log untouched."""
        if not result.text:
            return
        timestamp = format_wall_time(result.wall_start)
        self._lines.append(f'[{timestamp}] {result.text}')
        self.write(f'[dim]\\[{timestamp}][/dim] {result.text}')

    def reset(self) -> None:
        self._lines.clear()
        self.clear()


def copy_to_clipboard(text: str) -> bool:
    """Copy *text* to the system clipboard. Returns False when there is nothing to copy."""
    if not text:
        return False
    pyperclip.copy(text)
    return True
