"""Gateway: whisper recognizer in a subprocess — avoids GIL contention."""

from __future__ import annotations

import itertools
import logging
import multiprocessing as mp
import os
from multiprocessing.connection import Connection
from typing import Any

import numpy as np

from segscribe.l1_entities.errors import (
    DecodeError,
    EngineBusyError,
    EngineUnavailableError,
    RecognizerError,
    RecognizerTimeoutError,
)

log = logging.getLogger('segscribe.recognizer.subprocess')

_ERROR_KINDS: dict[str, type[RecognizerError]] = {
    'EngineUnavailableError': EngineUnavailableError,
    'EngineBusyError': EngineBusyError,
    'DecodeError': DecodeError,
}


def _subprocess_entry(model: str, conn: Any) -> None:
    """Subprocess main: load model via WhisperRecognizer, loop on requests.

    Permanently redirects C-level stdout/stderr to /dev/null so whisper.cpp's
    fprintf() calls do not escape to the parent TUI.
    """
    devnull = os.open(os.devnull, os.O_WRONLY)
    os.dup2(devnull, 1)
    os.dup2(devnull, 2)
    os.close(devnull)

    try:
        from segscribe.l3_interface_adapters.gateways.whisper_recognizer import (  # noqa: PLC0415 -- deferred: subprocess only
            WhisperRecognizer,
        )

        recognizer = WhisperRecognizer()
        recognizer.load_model(model)
    except Exception as e:
        conn.send({'status': 'error', 'kind': type(e).__name__, 'error': str(e)})
        conn.close()
        return

    conn.send({'status': 'ready'})

    while True:
        req = conn.recv()
        if req is None:
            break
        try:
            text = recognizer.transcribe(req['samples'], req['language'])
            conn.send({'id': req['id'], 'status': 'ok', 'text': text})
        except Exception as e:
            conn.send({'id': req['id'], 'status': 'error', 'kind': type(e).__name__, 'error': str(e)})

    recognizer.close()
    conn.close()


class SubprocessWhisperRecognizer:
    """Whisper recognizer that runs inference in a child process.

    whisper.cpp's C extension holds the Python GIL for the full duration of
    inference. Running it in a subprocess keeps the capture callback, the
    control loop and the Textual TUI responsive while a segment decodes.

    Uses multiprocessing.Pipe (raw socket pair) instead of Queue to avoid
    the resource tracker, which fails when Textual has replaced sys.stderr
    with a stream that returns an invalid fileno().

    Each request carries an id so a reply that arrives after its caller gave
    up is skipped by the next call instead of being mistaken for its answer.
    """

    def __init__(self, load_timeout: float = 120.0, request_timeout: float = 120.0) -> None:
        self._load_timeout = load_timeout
        self._request_timeout = request_timeout
        self._process: Any = None  # SpawnProcess; typed as Any, the context returns a subclass
        self._conn: Connection | None = None
        self._ids = itertools.count()

    def load_model(self, model: str) -> None:
        self.close()
        ctx = mp.get_context('spawn')
        parent_conn, child_conn = ctx.Pipe(duplex=True)
        self._process = ctx.Process(
            target=_subprocess_entry,
            args=(model, child_conn),
            daemon=True,
        )
        self._process.start()
        child_conn.close()  # parent only needs its own end
        self._conn = parent_conn

        try:
            if not self._conn.poll(timeout=self._load_timeout):
                raise EngineUnavailableError(f'Timeout waiting for model {model!r} to load')
            result = self._conn.recv()
        except EOFError as e:
            self.close()
            raise EngineUnavailableError('Whisper subprocess exited unexpectedly during model load') from e
        except EngineUnavailableError:
            self.close()
            raise

        if result.get('status') != 'ready':
            self.close()
            raise EngineUnavailableError(f'Whisper subprocess failed to init: {result.get("error", "unknown")}')
        log.info('Whisper subprocess ready: model=%s pid=%s', model, self._process.pid)

    def transcribe(self, samples: np.ndarray, language: str) -> str:
        if self._conn is None:
            raise EngineUnavailableError('Model not loaded. Call load_model() first.')
        request_id = next(self._ids)
        try:
            self._conn.send({'id': request_id, 'samples': samples, 'language': language})
            while True:
                if not self._conn.poll(timeout=self._request_timeout):
                    raise RecognizerTimeoutError(f'No reply from whisper subprocess after {self._request_timeout:.0f}s')
                result = self._conn.recv()
                if result.get('id') == request_id:
                    break
                log.debug('Skipping stale reply %s (waiting for %d)', result.get('id'), request_id)
        except (EOFError, BrokenPipeError, ConnectionResetError) as e:
            raise EngineUnavailableError('Whisper subprocess exited unexpectedly during transcription') from e

        if result.get('status') == 'error':
            error_cls = _ERROR_KINDS.get(result.get('kind', ''), DecodeError)
            raise error_cls(result.get('error', 'unknown error'))
        return result.get('text', '')

    def close(self) -> None:
        if self._conn is not None:
            try:
                self._conn.send(None)
            except Exception:  # noqa: S110 -- best-effort shutdown signal; pipe may already be closed
                pass
            try:
                self._conn.close()
            except Exception:  # noqa: S110 -- best-effort; ignore double-close
                pass
            self._conn = None
        if self._process is not None:
            self._process.join(timeout=5)
            if self._process.is_alive():
                self._process.terminate()
                self._process.join(timeout=1)  # reap zombie after SIGTERM
            self._process = None
