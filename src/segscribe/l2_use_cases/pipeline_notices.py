"""Notices posted by the orchestrator to whoever drives it (TUI, CLI, tests)."""

from __future__ import annotations

from dataclasses import dataclass, field

from segscribe.l1_entities.audio_features import AudioFeatures
from segscribe.l1_entities.pipeline_state import PipelineState
from segscribe.l1_entities.transcript import TranscriptionResult


@dataclass(frozen=True)
class StateChanged:
    state: PipelineState
    previous: PipelineState


@dataclass(frozen=True)
class SegmentClosed:
    """A segment window closed and was measured by the activity gate."""

    sequence: int
    sample_count: int
    active: bool
    features: AudioFeatures
    levels: list[float] = field(default_factory=list)
    is_final: bool = False


@dataclass(frozen=True)
class SegmentMerged:
    result: TranscriptionResult
    transcript: str


@dataclass(frozen=True)
class SegmentFailed:
    """A segment-scoped or fatal error. The transcript merged so far is untouched."""

    sequence: int | None
    error: Exception
    fatal: bool = False


@dataclass(frozen=True)
class TranscriptCleared:
    pass


PipelineNotice = StateChanged | SegmentClosed | SegmentMerged | SegmentFailed | TranscriptCleared
