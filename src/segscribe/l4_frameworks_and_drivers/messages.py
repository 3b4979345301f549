"""Textual Message subclasses — contracts between the pipeline threads and the App."""

from __future__ import annotations

from textual.message import Message

from segscribe.l1_entities.pipeline_state import PipelineState
from segscribe.l1_entities.transcript import TranscriptionResult
from segscribe.l2_use_cases.pipeline_notices import (
    PipelineNotice,
    SegmentClosed,
    SegmentFailed,
    SegmentMerged,
    StateChanged,
    TranscriptCleared,
)


class PipelineStateChanged(Message):
    """Posted when the orchestrator moves between PipelineState values."""

    def __init__(self, state: PipelineState) -> None:
        super().__init__()
        self.state = state


class TranscriptUpdated(Message):
    """Posted after a segment result was merged into the running transcript."""

    def __init__(self, result: TranscriptionResult, transcript: str) -> None:
        super().__init__()
        self.result = result
        self.transcript = transcript


class TranscriptReset(Message):
    """Posted after clear() emptied the transcript."""


class SegmentLevels(Message):
    """Posted when a segment window closes, with per-100ms RMS levels."""

    def __init__(self, levels: list[float], active: bool) -> None:
        super().__init__()
        self.levels = levels
        self.active = active


class PipelineErrorRaised(Message):
    """Posted for segment-scoped (fatal=False) and pipeline-halting (fatal=True) errors."""

    def __init__(self, error: str, fatal: bool = False) -> None:
        super().__init__()
        self.error = error
        self.fatal = fatal


class ModelStatus(Message):
    """Posted by the engine worker: 'loading_model', 'model_ready' or 'error'."""

    def __init__(self, status: str, model: str = '') -> None:
        super().__init__()
        self.status = status
        self.model = model


def notice_to_message(notice: PipelineNotice) -> Message | None:
    """Translate an orchestrator notice into the matching Textual message."""
    if isinstance(notice, StateChanged):
        return PipelineStateChanged(notice.state)
    if isinstance(notice, SegmentMerged):
        return TranscriptUpdated(notice.result, notice.transcript)
    if isinstance(notice, TranscriptCleared):
        return TranscriptReset()
    if isinstance(notice, SegmentClosed):
        return SegmentLevels(list(notice.levels), notice.active)
    if isinstance(notice, SegmentFailed):
        return PipelineErrorRaised(f'{type(notice.error).__name__}: {notice.error}', fatal=notice.fatal)
    return None
