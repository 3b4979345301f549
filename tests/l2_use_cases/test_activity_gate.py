"""Tests for ActivityGate."""

import logging

from segscribe.l1_entities.audio_features import AudioFeatures
from segscribe.l2_use_cases.activity_gate import ActivityGate


def _features(energy: float) -> AudioFeatures:
    return AudioFeatures(energy=energy, zero_crossing_rate=0.0, spectral_centroid=0.0, sample_count=10)


class TestActivityGate:
    def test_above_threshold_active(self):
        assert ActivityGate(0.01).is_active(_features(0.02))

    def test_equal_threshold_inactive(self):
        assert not ActivityGate(0.01).is_active(_features(0.01))

    def test_silence_inactive(self):
        assert not ActivityGate().is_active(_features(0.0))

    def test_threshold_override(self):
        gate = ActivityGate(0.5)
        assert gate.is_active(_features(0.2), threshold=0.1)

    def test_logs_decision_to_injected_logger(self, caplog):
        logger = logging.getLogger('test.gate')
        gate = ActivityGate(0.01, logger=logger)
        with caplog.at_level(logging.DEBUG, logger='test.gate'):
            gate.is_active(_features(0.5))
        assert 'active' in caplog.text
