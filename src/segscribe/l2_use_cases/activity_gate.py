"""Use case: decide whether a segment is worth a recognizer call."""

from __future__ import annotations

import logging

from segscribe.l1_entities.audio_features import AudioFeatures

DEFAULT_ACTIVITY_THRESHOLD = 0.01


class ActivityGate:
    """Energy gate in front of the recognizer.

    Advisory only. Letting silence through costs one wasted call, while
    gating out speech loses that segment's text, so keep the threshold low.
    """

    def __init__(self, threshold: float = DEFAULT_ACTIVITY_THRESHOLD, logger: logging.Logger | None = None) -> None:
        self._threshold = threshold
        self._log = logger or logging.getLogger('segscribe.gate')

    @property
    def threshold(self) -> float:
        return self._threshold

    def is_active(self, features: AudioFeatures, threshold: float | None = None) -> bool:
        limit = self._threshold if threshold is None else threshold
        active = features.energy > limit
        self._log.debug(
            'gate: energy=%.5f zcr=%.4f threshold=%.5f samples=%d -> %s',
            features.energy,
            features.zero_crossing_rate,
            limit,
            features.sample_count,
            'active' if active else 'silent',
        )
        return active
