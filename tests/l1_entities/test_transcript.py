"""Tests for TranscriptionResult, AudioFeatures and error types."""

import pytest
from pydantic import ValidationError

from segscribe.l1_entities.audio_features import AudioFeatures
from segscribe.l1_entities.errors import (
    DecodeError,
    EngineBusyError,
    EngineUnavailableError,
    FormatError,
    RecognizerError,
    RecognizerTimeoutError,
)
from segscribe.l1_entities.transcript import TranscriptionResult, format_wall_time


class TestTranscriptionResult:
    def test_creation(self):
        result = TranscriptionResult(text='你好', sequence=0, wall_start=0.0, wall_end=3.0)
        assert result.text == '你好'
        assert result.sequence == 0

    def test_negative_sequence_rejected(self):
        with pytest.raises(ValidationError):
            TranscriptionResult(text='', sequence=-1, wall_start=0.0, wall_end=0.0)


class TestFormatWallTime:
    def test_zero(self):
        assert format_wall_time(0.0) == '00:00:00'

    def test_hours_minutes_seconds(self):
        assert format_wall_time(3723.9) == '01:02:03'


class TestAudioFeatures:
    def test_frozen(self):
        features = AudioFeatures(energy=0.1, zero_crossing_rate=0.2, spectral_centroid=3.0, sample_count=4)
        with pytest.raises(ValidationError):
            features.energy = 1.0  # type: ignore[misc]


class TestErrorHierarchy:
    def test_format_error_is_value_error(self):
        assert issubclass(FormatError, ValueError)

    @pytest.mark.parametrize('cls', [EngineUnavailableError, EngineBusyError, DecodeError, RecognizerTimeoutError])
    def test_recognizer_errors_share_base(self, cls):
        assert issubclass(cls, RecognizerError)
