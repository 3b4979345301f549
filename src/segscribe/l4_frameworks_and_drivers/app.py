"""TranscribeApp — live segmented transcription TUI."""

from __future__ import annotations

import logging

from textual.app import App as TextualApp
from textual.app import ComposeResult
from textual.binding import Binding
from textual.widgets import Static

from segscribe.l1_entities.errors import EngineUnavailableError
from segscribe.l1_entities.pipeline_state import PipelineState
from segscribe.l2_use_cases.pipeline_notices import PipelineNotice
from segscribe.l4_frameworks_and_drivers.container import DependencyContainer
from segscribe.l4_frameworks_and_drivers.logging_setup import LOG_FILENAME
from segscribe.l4_frameworks_and_drivers.messages import (
    ModelStatus,
    PipelineErrorRaised,
    PipelineStateChanged,
    SegmentLevels,
    TranscriptReset,
    TranscriptUpdated,
    notice_to_message,
)
from segscribe.l4_frameworks_and_drivers.widgets.status_bar import StatusBar
from segscribe.l4_frameworks_and_drivers.widgets.transcript_panel import TranscriptPanel, copy_to_clipboard

log = logging.getLogger('segscribe.app')


class TranscribeApp(TextualApp):
    """Microphone → segment → whisper TUI. All pipeline work runs off the UI thread."""

    CSS = """
    #header {
        dock: top;
        height: 1;
        background: $primary;
        color: $text;
    }
    #transcript-panel {
        height: 1fr;
    }
    #latest-segment {
        height: auto;
        min-height: 1;
        padding: 0 1;
        color: $text-muted;
    }
    """

    BINDINGS = [
        Binding('r', 'start_capture', 'Start', priority=True),
        Binding('s', 'stop_capture', 'Stop', priority=True),
        Binding('c', 'clear_transcript', 'Clear', priority=True),
        Binding('x', 'reset_pipeline', 'Reset', show=False),
        Binding('y', 'copy_transcript', 'Copy', show=False),
        Binding('q', 'quit_app', 'Quit', priority=True),
    ]

    def __init__(self, container: DependencyContainer, autostart: bool = True, **kwargs) -> None:
        super().__init__(**kwargs)
        self._container = container
        self._orchestrator = container.orchestrator
        self._autostart = autostart
        self._model_ready = False
        self._pending_quit = False

    def compose(self) -> ComposeResult:
        rc = self._container.config.recognizer
        yield Static(f'  segscribe | language: {rc.language}', id='header')
        yield TranscriptPanel(id='transcript-panel')
        yield Static('', id='latest-segment')
        yield StatusBar(id='status-bar')

    def _hints_for_state(self, state: PipelineState) -> str:
        if not self._model_ready:
            return r'\[q] quit'
        if state is PipelineState.ERROR:
            return r'\[x] reset  \[c] clear  \[y] copy  \[q] quit'
        if state.is_capturing:
            return r'\[s] stop  \[c] clear  \[y] copy  \[q] quit'
        return r'\[r] start  \[c] clear  \[y] copy  \[q] quit'

    def _update_hints(self) -> None:
        try:
            bar = self.query_one('#status-bar', StatusBar)
            bar.keybinding_hints = self._hints_for_state(self._orchestrator.state)
        except Exception:  # noqa: S110 -- TUI race guard; widget may not exist during startup  # pragma: no cover
            pass

    def on_mount(self) -> None:
        self._orchestrator.set_listener(self._forward_notice)
        self._update_hints()
        self.set_interval(0.5, self._refresh_status_bar)
        self._start_engine()

    def _refresh_status_bar(self) -> None:
        try:
            self.query_one('#status-bar', StatusBar).refresh()
        except Exception:  # noqa: S110 -- TUI race guard; widget may not exist during teardown  # pragma: no cover
            pass

    def _forward_notice(self, notice: PipelineNotice) -> None:
        """Runs on the orchestrator thread; post_message is thread-safe."""
        message = notice_to_message(notice)
        if message is not None:
            self.post_message(message)

    # --- Engine worker ---

    def _start_engine(self) -> None:  # pragma: no cover -- thin thread launcher; patched out in tests
        self.run_worker(self._engine_thread, thread=True, group='engine')

    def _engine_thread(self) -> None:
        self.post_message(ModelStatus('loading_model', self._container.config.recognizer.model))
        try:
            model = self._container.load_model()
        except EngineUnavailableError as e:
            log.error('Model load failed: %s', e)
            self.post_message(ModelStatus('error'))
            self.post_message(PipelineErrorRaised(str(e), fatal=True))
            return
        self.post_message(ModelStatus('model_ready', model))
        self._orchestrator.start_loop()
        if self._autostart:
            self._orchestrator.start()

    # --- Message Handlers ---

    def on_model_status(self, message: ModelStatus) -> None:
        bar = self.query_one('#status-bar', StatusBar)
        bar.model_status = message.status
        if message.model:
            bar.model_name = message.model
        self._model_ready = message.status == 'model_ready'
        self._update_hints()

    def on_pipeline_state_changed(self, message: PipelineStateChanged) -> None:
        bar = self.query_one('#status-bar', StatusBar)
        bar.pipeline_state = message.state
        self._update_hints()
        if self._pending_quit and message.state in (PipelineState.IDLE, PipelineState.ERROR):
            self.exit()

    def on_transcript_updated(self, message: TranscriptUpdated) -> None:
        panel = self.query_one('#transcript-panel', TranscriptPanel)
        panel.append_result(message.result)
        latest = self.query_one('#latest-segment', Static)
        latest.update(message.result.text or '…')
        if message.result.text:
            self.query_one('#status-bar', StatusBar).segment_count += 1

    def on_transcript_reset(self, message: TranscriptReset) -> None:
        self.query_one('#transcript-panel', TranscriptPanel).reset()
        self.query_one('#latest-segment', Static).update('')
        self.query_one('#status-bar', StatusBar).reset_capture_clock()

    def on_segment_levels(self, message: SegmentLevels) -> None:
        bar = self.query_one('#status-bar', StatusBar)
        bar.last_active = message.active
        bar.push_levels(message.levels)

    def on_pipeline_error_raised(self, message: PipelineErrorRaised) -> None:
        if message.fatal:
            self.notify(
                f'Pipeline halted: {message.error}\n(press x to reset; see {LOG_FILENAME})',
                severity='error',
                timeout=12,
            )
        else:
            self.notify(f'Segment failed: {message.error}', severity='warning', timeout=4)

    # --- Actions ---

    def action_start_capture(self) -> None:
        if not self._model_ready:
            self.notify('Model not ready yet', severity='warning', timeout=2)
            return
        if self._orchestrator.state is PipelineState.ERROR:
            self.notify('Pipeline is in error state, press x to reset', severity='warning', timeout=3)
            return
        self._orchestrator.start()

    def action_stop_capture(self) -> None:
        if not self._orchestrator.state.is_capturing:
            return
        self._orchestrator.stop()
        self.notify('Stopping, finishing last segment...', timeout=3)

    def action_clear_transcript(self) -> None:
        self._orchestrator.clear()

    def action_reset_pipeline(self) -> None:
        if self._orchestrator.state is not PipelineState.ERROR:
            return
        self._orchestrator.reset()
        self.notify('Pipeline reset', timeout=2)

    def action_copy_transcript(self) -> None:
        if copy_to_clipboard(self._orchestrator.current_transcript()):
            self.notify('Transcript copied', timeout=2)
        else:
            self.notify('No transcript to copy', severity='warning', timeout=2)

    def action_quit_app(self) -> None:
        state = self._orchestrator.state
        if self._pending_quit or not (state.is_capturing or state.is_awaiting):
            self.exit()
            return
        self._pending_quit = True
        self._orchestrator.stop()
        self.notify('Finishing last segment before quitting... (q again to force)', timeout=5)
