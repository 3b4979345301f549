"""Tests for run_headless — real WAV replay through the pipeline with a fake recognizer."""

from __future__ import annotations

import wave
from pathlib import Path

import pytest

from segscribe.l4_frameworks_and_drivers.config import build_app_config
from segscribe.l4_frameworks_and_drivers.headless_runner import run_headless
from tests.conftest import FakeRecognizer, silence_pcm, sine_pcm


def _write_wav(path: Path, pcm: bytes, rate: int = 16000) -> Path:
    with wave.open(str(path), 'wb') as wf:
        wf.setnchannels(1)
        wf.setsampwidth(2)
        wf.setframerate(rate)
        wf.writeframes(pcm)
    return path


@pytest.fixture
def short_config():
    return build_app_config({'pipeline': {'segment_duration_ms': 200}})


class TestRunHeadless:
    def test_transcribes_file(self, tmp_path, short_config, capsys):
        path = _write_wav(tmp_path / 'tone.wav', sine_pcm(1.0))
        recognizer = FakeRecognizer(default_text='hi')

        transcript = run_headless(path, short_config, recognizer=recognizer)

        assert 'hi' in transcript
        assert recognizer.transcribe_calls
        assert all(lang == 'zh' for _, lang in recognizer.transcribe_calls)
        assert recognizer.load_model_calls == ['base-q8_0']
        assert recognizer.closed is True
        err = capsys.readouterr().err
        assert 'Duration: 00:00:01' in err
        assert 'Transcription complete' in err

    def test_silent_file_reports_no_speech(self, tmp_path, short_config, capsys):
        path = _write_wav(tmp_path / 'quiet.wav', silence_pcm(0.6))
        recognizer = FakeRecognizer(default_text='ghost')

        transcript = run_headless(path, short_config, recognizer=recognizer)

        assert transcript == ''
        assert recognizer.transcribe_calls == []
        assert 'No speech detected' in capsys.readouterr().err

    def test_wrong_format_exits(self, tmp_path, short_config, capsys):
        path = _write_wav(tmp_path / 'cd.wav', sine_pcm(0.5), rate=44100)
        recognizer = FakeRecognizer()

        with pytest.raises(SystemExit) as exc_info:
            run_headless(path, short_config, recognizer=recognizer)

        assert exc_info.value.code == 1
        assert recognizer.load_model_calls == []
        assert '44100' in capsys.readouterr().err

    def test_missing_file_exits(self, tmp_path, short_config):
        with pytest.raises(SystemExit) as exc_info:
            run_headless(tmp_path / 'nope.wav', short_config, recognizer=FakeRecognizer())
        assert exc_info.value.code == 1

    def test_unavailable_model_exits(self, tmp_path, short_config, capsys):
        path = _write_wav(tmp_path / 'tone.wav', sine_pcm(0.5))
        recognizer = FakeRecognizer()
        recognizer.unavailable_models = {'base-q8_0', 'base'}

        with pytest.raises(SystemExit) as exc_info:
            run_headless(path, short_config, recognizer=recognizer)

        assert exc_info.value.code == 1
        assert recognizer.load_model_calls == ['base-q8_0', 'base']
        assert recognizer.closed is True
        assert 'Error loading model' in capsys.readouterr().err
