"""Shared test fixtures and protocol-conforming fakes."""

from __future__ import annotations

import collections
import concurrent.futures
from collections.abc import Callable

import numpy as np
import pytest

from segscribe.l1_entities.config import AppConfig, PipelineConfig
from segscribe.l1_entities.errors import EngineUnavailableError
from segscribe.l4_frameworks_and_drivers.config import build_app_config

RATE = 16000

# --- Protocol-conforming Fakes ---


class FakeClock:
    """Monotonic clock the test advances by hand."""

    def __init__(self, start: float = 0.0) -> None:
        self.now = start

    def __call__(self) -> float:
        return self.now

    def advance(self, seconds: float) -> None:
        self.now += seconds


class FakeRecognizer:
    """Fake recognizer for L2 orchestrator tests.

    ``texts`` are returned in call order (then ``default_text``). An entry that
    is an exception instance is raised instead. ``latency`` advances ``clock``
    inside each call to model a slow engine.
    """

    def __init__(
        self,
        texts: list[str | Exception] | None = None,
        default_text: str = '',
        clock: FakeClock | None = None,
        latency: float = 0.0,
    ) -> None:
        self._script = collections.deque(texts or [])
        self._default_text = default_text
        self._clock = clock
        self._latency = latency
        self.load_model_calls: list[str] = []
        self.transcribe_calls: list[tuple[np.ndarray, str]] = []
        self.closed = False
        self.unavailable_models: set[str] = set()

    def load_model(self, model: str) -> None:
        self.load_model_calls.append(model)
        if model in self.unavailable_models:
            raise EngineUnavailableError(f'no such model: {model}')

    def transcribe(self, samples: np.ndarray, language: str) -> str:
        self.transcribe_calls.append((samples, language))
        if self._clock is not None and self._latency:
            self._clock.advance(self._latency)
        item = self._script.popleft() if self._script else self._default_text
        if isinstance(item, Exception):
            raise item
        return item

    def close(self) -> None:
        self.closed = True


class FakeAudioSource:
    """Fake push-style audio source — implements AudioSource protocol."""

    def __init__(self, fail_on_start: Exception | None = None) -> None:
        self._fail_on_start = fail_on_start
        self.start_calls: list[tuple[int, int]] = []
        self.stop_calls = 0
        self._on_frame: Callable[[bytes], None] | None = None

    def start(self, on_frame: Callable[[bytes], None], sample_rate: int, channels: int) -> None:
        self.start_calls.append((sample_rate, channels))
        if self._fail_on_start is not None:
            raise self._fail_on_start
        self._on_frame = on_frame

    def stop(self) -> None:
        self.stop_calls += 1
        self._on_frame = None

    @property
    def running(self) -> bool:
        return self._on_frame is not None

    def emit(self, frame: bytes) -> None:
        if self._on_frame is not None:
            self._on_frame(frame)


class ManualTicker:
    """Ticker that only fires when the test says so."""

    def __init__(self) -> None:
        self.period: float | None = None
        self.start_calls = 0
        self.cancel_calls = 0
        self._callback: Callable[[], None] | None = None

    def start(self, period: float, callback: Callable[[], None]) -> None:
        self.period = period
        self.start_calls += 1
        self._callback = callback

    def cancel(self) -> None:
        self.cancel_calls += 1
        self._callback = None

    @property
    def armed(self) -> bool:
        return self._callback is not None

    def fire(self) -> None:
        if self._callback is not None:
            self._callback()


class ManualExecutor(concurrent.futures.Executor):
    """Executor whose submitted calls run only on ``run_next()``."""

    def __init__(self) -> None:
        self.queue: collections.deque = collections.deque()
        self.submitted = 0

    def submit(self, fn, /, *args, **kwargs):
        future: concurrent.futures.Future = concurrent.futures.Future()
        self.queue.append((future, fn, args, kwargs))
        self.submitted += 1
        return future

    def run_next(self) -> None:
        future, fn, args, kwargs = self.queue.popleft()
        if not future.set_running_or_notify_cancel():
            return
        try:
            result = fn(*args, **kwargs)
        except BaseException as exc:  # noqa: BLE001 -- mirror ThreadPoolExecutor capture
            future.set_exception(exc)
        else:
            future.set_result(result)

    def shutdown(self, wait: bool = True, *, cancel_futures: bool = False) -> None:
        if cancel_futures:
            while self.queue:
                self.queue.popleft()[0].cancel()


# --- Signal helpers ---


def sine_pcm(seconds: float, amplitude: float = 0.3, freq: float = 440.0, rate: int = RATE) -> bytes:
    """Little-endian int16 PCM of a sine tone."""
    t = np.arange(int(round(seconds * rate))) / rate
    return (amplitude * np.sin(2 * np.pi * freq * t) * 32767).astype('<i2').tobytes()


def silence_pcm(seconds: float, rate: int = RATE) -> bytes:
    return bytes(2 * int(round(seconds * rate)))


def frames(pcm: bytes, frame_samples: int = 1600) -> list[bytes]:
    """Split PCM into capture-callback sized frames."""
    step = frame_samples * 2
    return [pcm[i : i + step] for i in range(0, len(pcm), step)]


# --- Standard Fixtures ---


@pytest.fixture
def app_config() -> AppConfig:
    return build_app_config({})


@pytest.fixture
def pipeline_config(app_config: AppConfig) -> PipelineConfig:
    return app_config.pipeline


@pytest.fixture
def fake_clock() -> FakeClock:
    return FakeClock(start=100.0)
