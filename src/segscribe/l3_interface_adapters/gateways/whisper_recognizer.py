"""Gateway: whisper.cpp recognizer — implements Recognizer port."""

from __future__ import annotations

import contextlib
import logging
import os
import threading

import numpy as np
from pywhispercpp.model import Model

from segscribe.l1_entities.errors import DecodeError, EngineBusyError, EngineUnavailableError

log = logging.getLogger('segscribe.recognizer')


@contextlib.contextmanager
def _suppress_c_stdout():
    """Redirect C-level stdout and stderr to /dev/null.

    whisper.cpp prints init/progress messages directly via C fprintf,
    bypassing Python's sys.stdout. This corrupts the TUI.
    """
    devnull = os.open(os.devnull, os.O_WRONLY)
    old_stdout = os.dup(1)
    old_stderr = os.dup(2)
    try:
        os.dup2(devnull, 1)
        os.dup2(devnull, 2)
        yield
    finally:
        os.dup2(old_stdout, 1)
        os.dup2(old_stderr, 2)
        os.close(devnull)
        os.close(old_stdout)
        os.close(old_stderr)


class WhisperRecognizer:
    """pywhispercpp adapter. Maps engine failures onto the domain error types."""

    def __init__(self) -> None:
        self._model: Model | None = None
        self._busy = threading.Lock()

    def load_model(self, model: str) -> None:
        try:
            with _suppress_c_stdout():
                self._model = Model(model, print_progress=False, print_realtime=False)
        except Exception as e:
            raise EngineUnavailableError(f'Failed to load whisper model {model!r}: {e}') from e
        log.info('Whisper model loaded: %s', model)

    def transcribe(self, samples: np.ndarray, language: str) -> str:
        if self._model is None:
            raise EngineUnavailableError('Model not loaded. Call load_model() first.')
        if not self._busy.acquire(blocking=False):
            raise EngineBusyError('Whisper model is already transcribing another segment')
        try:
            with _suppress_c_stdout():
                raw_segments = self._model.transcribe(samples.astype(np.float32, copy=False), language=language)
        except Exception as e:
            raise DecodeError(f'whisper.cpp failed to decode segment: {e}') from e
        finally:
            self._busy.release()

        texts = [seg.text.strip() for seg in raw_segments]
        return ' '.join(t for t in texts if t)

    def close(self) -> None:
        """Explicitly release the model, suppressing C-level teardown noise."""
        if self._model is not None:
            with _suppress_c_stdout():
                del self._model
                self._model = None


def load_first_available(recognizer, candidates: list[str]) -> str:
    """Load the first model in *candidates* that succeeds; returns its name.

    Raises EngineUnavailableError when none of them load.
    """
    failures: list[str] = []
    for candidate in candidates:
        try:
            recognizer.load_model(candidate)
        except EngineUnavailableError as e:
            log.warning('Model %s failed to load: %s', candidate, e)
            failures.append(f'{candidate}: {e}')
            continue
        return candidate
    raise EngineUnavailableError('No usable whisper model. Tried: ' + '; '.join(failures or ['(no candidates)']))
