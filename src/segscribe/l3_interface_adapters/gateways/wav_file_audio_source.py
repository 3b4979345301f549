"""Gateway: replay a WAV file as if it were live capture — implements AudioSource port."""

from __future__ import annotations

import logging
import threading
import time
import wave
from collections.abc import Callable
from pathlib import Path

from segscribe.l1_entities.audio_constants import CHANNELS, SAMPLE_RATE, SAMPLE_WIDTH
from segscribe.l1_entities.errors import FormatError

log = logging.getLogger('segscribe.audio.file')


class WavFileAudioSource:
    """Pushes 16 kHz mono 16-bit WAV frames at real-time pace from a thread.

    ``finished`` is set once the whole file has been delivered (or on stop).
    """

    def __init__(self, path: Path, frame_duration: float = 0.1, realtime: bool = True) -> None:
        self._path = Path(path)
        self._frame_duration = frame_duration
        self._realtime = realtime
        self._stop_event = threading.Event()
        self._thread: threading.Thread | None = None
        self.finished = threading.Event()
        self.frames_delivered = 0

    def validate(self) -> float:
        """Check the file format; returns its duration in seconds."""
        if not self._path.exists():
            raise FileNotFoundError(f'Audio file not found: {self._path}')
        with wave.open(str(self._path), 'rb') as wf:
            if wf.getnchannels() != CHANNELS or wf.getsampwidth() != SAMPLE_WIDTH or wf.getframerate() != SAMPLE_RATE:
                raise FormatError(
                    f'{self._path.name}: expected {SAMPLE_RATE} Hz mono 16-bit PCM, got '
                    f'{wf.getframerate()} Hz, {wf.getnchannels()} channel(s), {wf.getsampwidth() * 8}-bit'
                )
            return wf.getnframes() / wf.getframerate()

    def start(
        self,
        on_frame: Callable[[bytes], None],
        sample_rate: int = SAMPLE_RATE,
        channels: int = CHANNELS,
    ) -> None:
        if self._thread is not None:
            return
        self.validate()
        self._stop_event.clear()
        self.finished.clear()
        frames_per_read = max(1, int(sample_rate * self._frame_duration))

        def _pump() -> None:
            next_due = time.monotonic()
            try:
                with wave.open(str(self._path), 'rb') as wf:
                    while not self._stop_event.is_set():
                        data = wf.readframes(frames_per_read)
                        if not data:
                            break
                        if self._realtime:
                            next_due += self._frame_duration
                            delay = next_due - time.monotonic()
                            if delay > 0 and self._stop_event.wait(delay):
                                break
                        on_frame(data)
                        self.frames_delivered += 1
            finally:
                log.info('WAV replay finished: %s (%d frames)', self._path.name, self.frames_delivered)
                self.finished.set()

        self._thread = threading.Thread(target=_pump, name='segscribe-wav-source', daemon=True)
        self._thread.start()

    def stop(self) -> None:
        self._stop_event.set()
        if self._thread is not None:
            if self._thread is not threading.current_thread():
                self._thread.join(timeout=5)
            self._thread = None
