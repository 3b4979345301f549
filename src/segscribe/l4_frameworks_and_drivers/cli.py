"""CLI entry point for segscribe."""

from __future__ import annotations

import sys
from pathlib import Path

import click

from segscribe import __version__


def _build_overrides(language, model, segment_ms) -> dict:
    overrides: dict = {}
    if language:
        overrides.setdefault('recognizer', {})['language'] = language
    if model:
        overrides.setdefault('recognizer', {})['model'] = model
    if segment_ms:
        overrides.setdefault('pipeline', {})['segment_duration_ms'] = segment_ms
    return overrides


@click.command()
@click.option(
    '-c',
    '--config',
    'config_path',
    default=None,
    type=click.Path(exists=True),
    help='Path to YAML config file.',
)
@click.option(
    '-l',
    '--language',
    default=None,
    help="Recognition language code (e.g. 'zh', 'en').",
)
@click.option(
    '--segment-ms',
    default=None,
    type=click.IntRange(min=1),
    help='Segment window length in milliseconds.',
)
@click.option(
    '-m',
    '--model',
    default=None,
    help="Whisper model name or path (e.g. 'base', 'small').",
)
@click.option(
    '-f',
    '--audio-file',
    'audio_file',
    default=None,
    type=click.Path(exists=True, dir_okay=False),
    help='Replay a 16 kHz mono WAV file through the pipeline and print the transcript (no TUI).',
)
@click.version_option(version=__version__)
def cli(config_path, language, segment_ms, model, audio_file):
    """segscribe -- segmented live microphone transcription."""
    from pydantic import ValidationError  # noqa: PLC0415 -- deferred: not needed for --help

    from segscribe.l3_interface_adapters.gateways.yaml_config_loader import (  # noqa: PLC0415 -- deferred: yaml stack not loaded on --help
        YamlConfigLoader,
    )
    from segscribe.l4_frameworks_and_drivers.config import (  # noqa: PLC0415 -- deferred: not needed for --help
        build_app_config,
    )
    from segscribe.l4_frameworks_and_drivers.logging_setup import (  # noqa: PLC0415 -- deferred: not needed for --help
        setup_file_logging,
    )

    overrides = _build_overrides(language, model, segment_ms)
    try:
        raw = YamlConfigLoader().load_raw(config_path, overrides=overrides if overrides else None)
        config = build_app_config(raw)
    except FileNotFoundError as e:
        click.echo(f'Error: {e}', err=True)
        sys.exit(1)
    except ValidationError as e:
        click.echo(f'Error: invalid configuration\n{e}', err=True)
        sys.exit(1)

    setup_file_logging(Path(config.logging.directory), config.logging.level)

    if audio_file:
        from segscribe.l4_frameworks_and_drivers.headless_runner import (  # noqa: PLC0415 -- deferred: headless mode only, not loaded for TUI path
            run_headless,
        )

        transcript = run_headless(Path(audio_file), config)
        if transcript:
            click.echo(transcript)
        return

    _preflight_microphone()

    from segscribe.l4_frameworks_and_drivers.app import (  # noqa: PLC0415 -- deferred: Textual TUI not loaded for --help
        TranscribeApp,
    )
    from segscribe.l4_frameworks_and_drivers.container import (  # noqa: PLC0415 -- deferred: Textual TUI not loaded for --help
        DependencyContainer,
    )

    # Pre-initialize the resource tracker before Textual replaces sys.stderr.
    # The spawn context's Process.start() passes sys.stderr.fileno() to the
    # tracker; under Textual that fileno() is -1 and spawning fails. Starting
    # the tracker here, while stderr is still real, makes later calls no-ops.
    try:
        import multiprocessing.resource_tracker as _rt  # noqa: PLC0415 -- pre-init before Textual

        _rt.ensure_running()
    except Exception:  # noqa: S110 -- best-effort; tracker may not exist on all platforms
        pass

    container = DependencyContainer(config)
    app = TranscribeApp(container=container)
    try:
        app.run()
    finally:
        container.close()
    transcript = container.orchestrator.current_transcript()
    if transcript:
        click.echo(transcript)


def _preflight_microphone() -> None:
    try:
        import sounddevice as sd  # noqa: PLC0415 -- deferred: not loaded on --help

        devices = sd.query_devices()
        input_devices = [d for d in devices if d['max_input_channels'] > 0]
        if not input_devices:
            click.echo('Warning: No input audio devices found.', err=True)
    except Exception as e:
        click.echo(f'Warning: Cannot query audio devices ({e}).', err=True)
