"""Use case: running transcript assembled from per-segment results."""

from __future__ import annotations

import threading

from segscribe.l1_entities.transcript import TranscriptionResult


class TranscriptAccumulator:
    """Append-only transcript plus the most recent segment text.

    All reads and writes go through one lock, so a reader never sees a
    half-applied merge.
    """

    def __init__(self) -> None:
        self._lock = threading.Lock()
        self._transcript = ''
        self._latest = ''
        self._results: list[TranscriptionResult] = []
        self._next_sequence = 0

    def merge(self, result: TranscriptionResult) -> None:
        """Record *result*; blank text updates the latest segment but adds no separator."""
        text = result.text.strip()
        with self._lock:
            self._latest = text
            self._results.append(result)
            if not text:
                return
            self._transcript = f'{self._transcript} {text}' if self._transcript else text

    def clear(self) -> None:
        with self._lock:
            self._transcript = ''
            self._latest = ''
            self._results = []
            self._next_sequence = 0

    def next_sequence(self) -> int:
        """Hand out the next segment sequence number."""
        with self._lock:
            seq = self._next_sequence
            self._next_sequence += 1
            return seq

    def current_transcript(self) -> str:
        with self._lock:
            return self._transcript

    def latest_segment(self) -> str:
        with self._lock:
            return self._latest

    def results(self) -> list[TranscriptionResult]:
        with self._lock:
            return list(self._results)
