"""Gateway: sounddevice microphone capture — implements AudioSource port."""

from __future__ import annotations

import logging
from collections.abc import Callable

import sounddevice as sd

from segscribe.l1_entities.audio_constants import CHANNELS, SAMPLE_RATE

log = logging.getLogger('segscribe.audio')


class SounddeviceAudioSource:
    """Wraps sounddevice.InputStream and forwards int16 PCM bytes to a callback."""

    def __init__(self, device: int | str | None = None, blocksize: int = 0) -> None:
        self._device = device
        self._blocksize = blocksize
        self._stream: sd.InputStream | None = None

    def start(
        self,
        on_frame: Callable[[bytes], None],
        sample_rate: int = SAMPLE_RATE,
        channels: int = CHANNELS,
    ) -> None:
        if self._stream is not None:
            return

        def _callback(indata, frames, time_info, status):
            if status:
                log.warning('PortAudio status: %s', status)
            on_frame(indata.tobytes())

        self._stream = sd.InputStream(
            samplerate=sample_rate,
            channels=channels,
            dtype='int16',
            device=self._device,
            blocksize=self._blocksize,
            callback=_callback,
        )
        self._stream.start()
        log.info('Microphone stream started: rate=%d channels=%d', sample_rate, channels)

    def stop(self) -> None:
        if self._stream is not None:
            self._stream.stop()
            self._stream.close()
            self._stream = None
            log.info('Microphone stream stopped')
