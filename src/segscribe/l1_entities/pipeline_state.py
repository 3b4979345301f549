"""L1 entity: lifecycle state of the transcription pipeline."""

from __future__ import annotations

import enum


class PipelineState(enum.Enum):
    IDLE = 'idle'
    CAPTURING = 'capturing'
    AWAITING_TRANSCRIPTION = 'awaiting_transcription'
    CAPTURING_AND_AWAITING = 'capturing_and_awaiting'
    ERROR = 'error'

    @property
    def is_capturing(self) -> bool:
        return self in (PipelineState.CAPTURING, PipelineState.CAPTURING_AND_AWAITING)

    @property
    def is_awaiting(self) -> bool:
        return self in (PipelineState.AWAITING_TRANSCRIPTION, PipelineState.CAPTURING_AND_AWAITING)


def derive_state(*, capturing: bool, awaiting: bool, failed: bool) -> PipelineState:
    """Collapse the orchestrator's flags into one observable state."""
    if failed:
        return PipelineState.ERROR
    if capturing and awaiting:
        return PipelineState.CAPTURING_AND_AWAITING
    if capturing:
        return PipelineState.CAPTURING
    if awaiting:
        return PipelineState.AWAITING_TRANSCRIPTION
    return PipelineState.IDLE
