"""Use case: accumulate captured PCM frames for one segment window."""

from __future__ import annotations

import threading

from segscribe.l1_entities.audio_constants import SAMPLE_WIDTH
from segscribe.l1_entities.errors import FormatError


class SegmentBuffer:
    """Open segment window fed from the capture callback.

    ``append()`` only takes the lock long enough to push a reference onto a
    list, so the audio thread is never held up by segment processing.
    ``take_and_reset()`` swaps the list out under the same lock: a frame lands
    either in the returned segment or in the next one, never both.
    """

    def __init__(self) -> None:
        self._lock = threading.Lock()
        self._chunks: list[bytes] = []
        self._nbytes = 0

    def append(self, frame: bytes) -> None:
        """Add one captured frame to the open window.

        Raises FormatError for a frame that is not whole 16-bit samples; the
        window is left untouched so later samples stay aligned.
        """
        data = bytes(frame)
        if not data:
            return
        if len(data) % SAMPLE_WIDTH:
            raise FormatError(f'Frame of {len(data)} bytes is not a whole number of {SAMPLE_WIDTH}-byte samples')
        with self._lock:
            self._chunks.append(data)
            self._nbytes += len(data)

    def take_and_reset(self) -> bytes:
        """Return everything accumulated so far and start a fresh, empty window."""
        with self._lock:
            chunks = self._chunks
            self._chunks = []
            self._nbytes = 0
        return b''.join(chunks)

    @property
    def sample_count(self) -> int:
        with self._lock:
            return self._nbytes // SAMPLE_WIDTH

    def __len__(self) -> int:
        return self.sample_count
