"""Headless runner — replay a WAV file through the live pipeline, no TUI."""

from __future__ import annotations

import sys
from pathlib import Path

from segscribe.l1_entities.config import AppConfig
from segscribe.l1_entities.errors import EngineUnavailableError, FormatError
from segscribe.l1_entities.transcript import format_wall_time
from segscribe.l2_use_cases.pipeline_notices import PipelineNotice, SegmentFailed, SegmentMerged
from segscribe.l2_use_cases.ports.recognizer import Recognizer
from segscribe.l3_interface_adapters.gateways.wav_file_audio_source import WavFileAudioSource
from segscribe.l4_frameworks_and_drivers.container import DependencyContainer

# Slack on top of the file duration before giving up on EOF.
_REPLAY_GRACE = 10.0


def _err(msg: str) -> None:
    print(msg, file=sys.stderr, flush=True)


def _report(notice: PipelineNotice) -> None:
    if isinstance(notice, SegmentMerged) and notice.result.text:
        _err(f'  [{format_wall_time(notice.result.wall_start)}] {notice.result.text}')
    elif isinstance(notice, SegmentFailed):
        if notice.fatal:
            label = 'Fatal'
        elif notice.sequence is None:
            label = 'Capture frame dropped'
        else:
            label = f'Segment #{notice.sequence} failed'
        _err(f'  {label}: {type(notice.error).__name__}: {notice.error}')


def run_headless(
    audio_path: Path,
    config: AppConfig,
    recognizer: Recognizer | None = None,
    source: WavFileAudioSource | None = None,
) -> str:
    """Transcribe *audio_path* segment by segment at real-time pace; returns the transcript."""
    source = source or WavFileAudioSource(audio_path)
    _err(f'Loading audio: {audio_path}')
    try:
        duration = source.validate()
    except (FileNotFoundError, FormatError) as exc:
        _err(f'Error: {exc}')
        raise SystemExit(1) from exc
    _err(f'Duration: {format_wall_time(duration)}')

    container = DependencyContainer(config, audio_source=source, recognizer=recognizer)
    try:
        model = container.load_model()
    except EngineUnavailableError as exc:
        _err(f'Error loading model: {exc}')
        container.close()
        raise SystemExit(1) from exc
    _err(f'Whisper model: {model}  language: {config.recognizer.language}')

    orchestrator = container.orchestrator
    orchestrator.set_listener(_report)
    orchestrator.start_loop()
    try:
        _err('Transcribing...')
        orchestrator.start()
        if not source.finished.wait(timeout=duration + _REPLAY_GRACE):
            _err('Warning: audio replay did not finish in time; stopping early')
        # Each queued segment may take up to the recognizer timeout.
        budget = config.pipeline.recognizer_timeout * (orchestrator.pending_count + 2)
        if not orchestrator.stop(wait=True, timeout=budget).is_set():
            _err('Warning: gave up waiting for pending segments')
        if orchestrator.last_error is not None:
            _err(f'Last error: {type(orchestrator.last_error).__name__}: {orchestrator.last_error}')
        transcript = orchestrator.current_transcript()
    finally:
        container.close()

    if not transcript:
        _err('No speech detected in the audio file.')
    else:
        segments = sum(1 for r in orchestrator.accumulator.results() if r.text)
        _err(f'\nTranscription complete — {segments} segments.')
    return transcript
