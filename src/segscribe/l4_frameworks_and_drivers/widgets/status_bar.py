"""Status bar — bottom bar showing pipeline state, capture time, level meter and keybinding hints."""

from __future__ import annotations

import math
import time
from collections import deque

from rich.cells import cell_len
from textual.reactive import reactive
from textual.widgets import Static

from segscribe.l1_entities.pipeline_state import PipelineState

_WAVE_CHARS = '▁▂▃▄▅▆▇█'

# dB-scaled level meter: maps -60 dB (silence) to -11 dB (loud) across 8 bars.
_DB_FLOOR = -60.0
_DB_RANGE = 49.0  # -60 to -11
_LEVEL_HISTORY = 10

_STATE_LABELS = {
    PipelineState.IDLE: '○ Idle',
    PipelineState.CAPTURING: '● Rec',
    PipelineState.AWAITING_TRANSCRIPTION: '⟳ Transcribing',
    PipelineState.CAPTURING_AND_AWAITING: '● Rec + ⟳ Transcribing',
    PipelineState.ERROR: '✗ Error',
}


def _rms_to_char(rms: float) -> str:
    if rms < 1e-7:
        return _WAVE_CHARS[0]
    db = 20.0 * math.log10(rms)
    idx = int((db - _DB_FLOOR) / _DB_RANGE * 7)
    return _WAVE_CHARS[min(max(idx, 0), 7)]


class StatusBar(Static):
    """Bottom status bar with pipeline state, segment counter and keybinding hints."""

    DEFAULT_CSS = """
    StatusBar {
        dock: bottom;
        height: auto;
        background: $surface;
        color: $text;
        padding: 0 1;
        overflow: hidden hidden;
    }
    """

    pipeline_state: reactive[PipelineState] = reactive(PipelineState.IDLE)
    model_status: reactive[str] = reactive('')
    model_name: reactive[str] = reactive('')
    segment_count: reactive[int] = reactive(0)
    last_active: reactive[bool] = reactive(True)
    keybinding_hints: reactive[str] = reactive('')

    def __init__(self, **kwargs) -> None:
        super().__init__(**kwargs)
        self._capture_started: float | None = None
        self._captured_total = 0.0
        self._level_history: deque[float] = deque([0.0] * _LEVEL_HISTORY, maxlen=_LEVEL_HISTORY)

    def watch_pipeline_state(self, old: PipelineState, new: PipelineState) -> None:
        """Accumulate capture time across start/stop cycles."""
        now = time.monotonic()
        if new.is_capturing and not old.is_capturing:
            self._capture_started = now
        elif old.is_capturing and not new.is_capturing and self._capture_started is not None:
            self._captured_total += now - self._capture_started
            self._capture_started = None

    def push_levels(self, levels: list[float]) -> None:
        """Push a closed segment's per-chunk levels into the rolling meter."""
        self._level_history.extend(levels)
        self.refresh()

    def reset_capture_clock(self) -> None:
        self._captured_total = 0.0
        self._capture_started = time.monotonic() if self.pipeline_state.is_capturing else None
        self.segment_count = 0
        self.refresh()

    def _format_elapsed(self, now: float) -> str:
        elapsed = self._captured_total
        if self._capture_started is not None:
            elapsed += now - self._capture_started
        hours = int(elapsed // 3600)
        minutes = int((elapsed % 3600) // 60)
        secs = int(elapsed % 60)
        return f'{hours:02d}:{minutes:02d}:{secs:02d}'

    def status_label(self) -> str:
        if self.model_status == 'loading_model':
            return f'⟳ Loading {self.model_name}…' if self.model_name else '⟳ Loading model'
        if self.model_status == 'error':
            return '✗ Error'
        return _STATE_LABELS[self.pipeline_state]

    def render(self) -> str:
        now = time.monotonic()

        left_parts = [self.status_label(), f'seg {self.segment_count}', self._format_elapsed(now)]
        if self.pipeline_state.is_capturing:
            wave = ''.join(_rms_to_char(v) for v in self._level_history)
            left_parts.append(wave if self.last_active else f'{wave} (silent)')
        if self.model_name and self.model_status != 'loading_model':
            left_parts.append(self.model_name)
        left = ' │ '.join(left_parts)

        content_width = (self.size.width or 80) - 2

        hints = self.keybinding_hints
        if hints:
            hints_width = cell_len(hints.replace(r'\[', '['))
            gap = content_width - cell_len(left) - hints_width
            if gap >= 2:
                left = left + ' ' * gap + hints
        return left
