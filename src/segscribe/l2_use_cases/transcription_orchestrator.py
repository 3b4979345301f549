"""Use case: segmented capture → condition → gate → transcribe → merge.

Capture frames go straight into the SegmentBuffer from the audio thread.
Everything else (ticker boundaries, control commands, recognizer completions)
is posted onto one ordered channel and handled by a single control loop, so
the pending queue and the in-flight slot are only touched from that loop.
"""

from __future__ import annotations

import collections
import concurrent.futures
import logging
import queue
import threading
import time
from collections.abc import Callable
from dataclasses import dataclass, field

import numpy as np

from segscribe.l1_entities.audio_constants import CHANNELS
from segscribe.l1_entities.config import PipelineConfig
from segscribe.l1_entities.errors import (
    DecodeError,
    EngineUnavailableError,
    FormatError,
    RecognizerError,
    RecognizerTimeoutError,
)
from segscribe.l1_entities.pipeline_state import PipelineState, derive_state
from segscribe.l1_entities.transcript import TranscriptionResult
from segscribe.l2_use_cases.activity_gate import ActivityGate
from segscribe.l2_use_cases.pipeline_notices import (
    PipelineNotice,
    SegmentClosed,
    SegmentFailed,
    SegmentMerged,
    StateChanged,
    TranscriptCleared,
)
from segscribe.l2_use_cases.ports.audio_source import AudioSource
from segscribe.l2_use_cases.ports.recognizer import Recognizer
from segscribe.l2_use_cases.ports.ticker import Ticker
from segscribe.l2_use_cases.segment_buffer import SegmentBuffer
from segscribe.l2_use_cases.transcript_accumulator import TranscriptAccumulator
from segscribe.l2_use_cases.utils.signal_conditioner import (
    chunk_levels,
    extract_features,
    normalize_volume,
    pre_emphasize,
    remove_dc_offset,
    to_normalized,
)

_POLL_INTERVAL = 0.1
_LEVEL_CHUNK_SECONDS = 0.1


@dataclass
class _Segment:
    sequence: int
    epoch: int
    samples: np.ndarray
    wall_start: float
    wall_end: float
    is_final: bool = False


@dataclass
class _Ticket:
    """One recognizer call. Timestamps are written by the worker thread."""

    segment: _Segment
    future: concurrent.futures.Future | None = None
    dispatched_at: float | None = None
    started_at: float | None = None
    finished_at: float | None = None


# --- channel events ---


@dataclass(frozen=True)
class _Start:
    pass


@dataclass(frozen=True)
class _Stop:
    discard_pending: bool
    done: threading.Event = field(default_factory=threading.Event)


@dataclass(frozen=True)
class _Clear:
    pass


@dataclass(frozen=True)
class _Reset:
    pass


@dataclass(frozen=True)
class _Boundary:
    pass


@dataclass(frozen=True)
class _FrameRejected:
    error: FormatError


@dataclass(frozen=True)
class _RecognitionFinished:
    ticket: _Ticket


@dataclass(frozen=True)
class _Shutdown:
    pass


class TranscriptionOrchestrator:
    """State machine over PipelineState with at most one recognizer call in flight.

    Segments that close while a call is running wait in a FIFO queue and are
    submitted strictly in capture order. ``ticker`` and ``audio_source`` are
    optional: without them the caller drives boundaries via ``tick()`` and
    feeds audio via ``on_frame()``.
    """

    def __init__(
        self,
        recognizer: Recognizer,
        config: PipelineConfig,
        language: str,
        audio_source: AudioSource | None = None,
        ticker: Ticker | None = None,
        accumulator: TranscriptAccumulator | None = None,
        gate: ActivityGate | None = None,
        post_message: Callable[[PipelineNotice], None] | None = None,
        executor: concurrent.futures.Executor | None = None,
        clock: Callable[[], float] = time.monotonic,
        logger: logging.Logger | None = None,
    ) -> None:
        self._recognizer = recognizer
        self._config = config
        self._language = language
        self._audio_source = audio_source
        self._ticker = ticker
        self._accumulator = accumulator or TranscriptAccumulator()
        self._log = logger or logging.getLogger('segscribe.orchestrator')
        self._gate = gate or ActivityGate(config.activity_threshold, logger=self._log.getChild('gate'))
        self._post_message = post_message
        self._clock = clock

        # Single worker: even after a timeout, calls never overlap inside the engine.
        self._owns_executor = executor is None
        self._executor = executor or concurrent.futures.ThreadPoolExecutor(
            max_workers=1, thread_name_prefix='segscribe-recognizer'
        )

        self._events: queue.Queue = queue.Queue()
        self._buffer = SegmentBuffer()
        self._pending: collections.deque[_Segment] = collections.deque()
        self._in_flight: _Ticket | None = None
        self._abandoned: _Ticket | None = None  # timed out but still occupying the worker

        self._accepting = False  # read by the capture thread
        self._capturing = False
        self._failed = False
        self._closed = False
        self._epoch = 0
        self._captured_samples = 0
        self._last_error: Exception | None = None
        self._state = PipelineState.IDLE
        self._stop_waiters: list[threading.Event] = []
        self._loop_thread: threading.Thread | None = None

        self._handlers: dict[type, Callable] = {
            _Start: self._on_start,
            _Stop: self._on_stop,
            _Clear: self._on_clear,
            _Reset: self._on_reset,
            _Boundary: self._on_boundary,
            _FrameRejected: self._on_frame_rejected,
            _RecognitionFinished: self._on_recognition_finished,
            _Shutdown: self._on_shutdown,
        }

    # --- Control surface (any thread) ---

    def start(self) -> None:
        self._events.put(_Start())

    def stop(self, discard_pending: bool = False, wait: bool = False, timeout: float | None = None) -> threading.Event:
        """Stop capturing and flush the open window as a final segment.

        Returns an event that is set once every submitted segment has resolved
        and the pipeline is idle (or halted in Error), or once a later start()
        begins a new session. With *discard_pending*,
        the open window and queued segments that have not reached the
        recognizer are dropped; a call already in flight is always awaited.
        *wait* blocks on that event (up to *timeout*) and needs the control
        loop running on another thread.
        """
        event = _Stop(discard_pending=discard_pending)
        self._events.put(event)
        if wait:
            event.done.wait(timeout)
        return event.done

    def clear(self) -> None:
        """Reset the transcript and sequence counter. Capture keeps running."""
        self._events.put(_Clear())

    def reset(self) -> None:
        """Leave the Error state. The transcript is kept."""
        self._events.put(_Reset())

    def tick(self) -> None:
        """Segment boundary; called by the ticker thread."""
        self._events.put(_Boundary())

    def on_frame(self, frame: bytes) -> None:
        """Capture callback entry point. Never blocks on transcription."""
        if not self._accepting:
            return
        try:
            self._buffer.append(frame)
        except FormatError as e:
            self._events.put(_FrameRejected(e))

    def set_listener(self, post_message: Callable[[PipelineNotice], None] | None) -> None:
        """Route notices to *post_message*; called from any thread before start()."""
        self._post_message = post_message

    # --- Observable state ---

    @property
    def state(self) -> PipelineState:
        return self._state

    @property
    def last_error(self) -> Exception | None:
        return self._last_error

    @property
    def pending_count(self) -> int:
        return len(self._pending)

    @property
    def accumulator(self) -> TranscriptAccumulator:
        return self._accumulator

    def current_transcript(self) -> str:
        return self._accumulator.current_transcript()

    def latest_segment(self) -> str:
        return self._accumulator.latest_segment()

    # --- Loop driving ---

    def step(self, timeout: float | None = 0.0) -> bool:
        """Handle at most one channel event, then enforce the recognizer timeout.

        Returns True if an event was handled.
        """
        try:
            if timeout is not None and timeout <= 0:
                event = self._events.get_nowait()
            else:
                event = self._events.get(timeout=timeout)
        except queue.Empty:
            event = None
        if event is not None:
            self._handlers[type(event)](event)
        self._check_timeout()
        return event is not None

    def pump(self) -> int:
        """Handle every event already queued, without blocking."""
        handled = 0
        while self.step(0):
            handled += 1
        return handled

    def run(self) -> None:
        """Control loop body; returns after close()."""
        while not self._closed:
            self.step(timeout=_POLL_INTERVAL)

    def start_loop(self) -> None:
        if self._loop_thread is not None:
            return
        self._loop_thread = threading.Thread(target=self.run, name='segscribe-orchestrator', daemon=True)
        self._loop_thread.start()

    def close(self, timeout: float = 5.0) -> None:
        """Halt capture, stop the control loop and release the executor."""
        if self._loop_thread is not None and self._loop_thread.is_alive():
            self._events.put(_Shutdown())
            self._loop_thread.join(timeout=timeout)
        else:
            self._shutdown()
        self._loop_thread = None
        if self._owns_executor:
            self._executor.shutdown(wait=False, cancel_futures=True)

    # --- Event handlers (control loop only) ---

    def _on_start(self, _event: _Start) -> None:
        if self._failed:
            self._log.warning('Start ignored: pipeline is in error state, reset() first')
            return
        if self._capturing:
            self._log.debug('Start ignored: already capturing')
            return

        self._accepting = True
        self._capturing = True
        if self._audio_source is not None:
            try:
                self._audio_source.start(self.on_frame, self._config.sample_rate, CHANNELS)
            except Exception as e:
                self._log.error('Audio source failed to start: %s', e, exc_info=True)
                self._accepting = False
                self._capturing = False
                self._enter_error(e, sequence=None)
                return
        if self._ticker is not None:
            self._ticker.start(self._config.segment_duration, self.tick)
        if self._stop_waiters:
            # A new session supersedes a stop that was still draining.
            self._log.debug('Start releases %d pending stop waiter(s)', len(self._stop_waiters))
            self._release_stop_waiters()

        self._log.info(
            'Capture started: segment=%dms rate=%d threshold=%.4f language=%s',
            self._config.segment_duration_ms,
            self._config.sample_rate,
            self._gate.threshold,
            self._language,
        )
        self._update_state()

    def _on_boundary(self, _event: _Boundary) -> None:
        if not self._capturing:
            return  # tick that raced a stop
        self._close_segment(is_final=False)
        self._update_state()

    def _on_frame_rejected(self, event: _FrameRejected) -> None:
        self._last_error = event.error
        self._log.warning('Capture frame dropped: %s', event.error)
        self._post(SegmentFailed(sequence=None, error=event.error))

    def _on_stop(self, event: _Stop) -> None:
        if event.discard_pending and self._pending:
            self._log.info('Stop: discarding %d queued segment(s)', len(self._pending))
            self._pending.clear()

        if self._capturing:
            self._halt_capture()
            if event.discard_pending:
                self._buffer.take_and_reset()
            else:
                self._close_segment(is_final=True)
            self._log.info(
                'Capture stopped; awaiting %d queued + %d in-flight segment(s)',
                len(self._pending),
                int(self._in_flight is not None),
            )

        self._stop_waiters.append(event.done)
        self._update_state()

    def _on_clear(self, _event: _Clear) -> None:
        self._epoch += 1
        dropped = len(self._pending)
        self._pending.clear()
        self._accumulator.clear()
        self._captured_samples = 0
        self._last_error = None
        self._failed = False
        self._log.info('Transcript cleared (dropped %d queued segment(s))', dropped)
        self._post(TranscriptCleared())
        self._update_state()

    def _on_reset(self, _event: _Reset) -> None:
        if not self._failed:
            self._log.debug('Reset ignored: pipeline is not in error state')
            return
        self._failed = False
        self._last_error = None
        self._log.info('Pipeline reset after error')
        self._update_state()

    def _on_recognition_finished(self, event: _RecognitionFinished) -> None:
        ticket = event.ticket
        segment = ticket.segment
        if ticket is not self._in_flight:
            if ticket is self._abandoned:
                self._abandoned = None
            self._log.debug('Discarding late result for segment #%d', segment.sequence)
            return
        self._in_flight = None
        self._log_performance(ticket)

        try:
            text = ticket.future.result()  # type: ignore[union-attr]
        except EngineUnavailableError as e:
            self._enter_error(e, sequence=segment.sequence)
            return
        except RecognizerError as e:
            self._fail_segment(segment, e)
        except Exception as e:
            self._log.error('Recognizer raised on segment #%d: %s', segment.sequence, e, exc_info=True)
            self._fail_segment(segment, DecodeError(str(e)))
        else:
            elapsed = (ticket.finished_at or 0.0) - (ticket.started_at or 0.0)
            if elapsed > self._config.recognizer_timeout:
                self._fail_segment(segment, self._timeout_error(segment, elapsed))
            else:
                self._merge(segment, text)

        self._dispatch_next()
        self._update_state()

    def _on_shutdown(self, _event: _Shutdown) -> None:
        self._shutdown()

    # --- Internals ---

    def _close_segment(self, is_final: bool) -> None:
        raw = self._buffer.take_and_reset()
        if not raw:
            self._log.debug('Segment boundary with empty window (final=%s)', is_final)
            return

        sequence = self._accumulator.next_sequence()
        samples = to_normalized(raw)

        rate = self._config.sample_rate
        wall_start = self._captured_samples / rate
        self._captured_samples += samples.size
        wall_end = self._captured_samples / rate

        # Gate on the centered signal: after normalization any noise floor would reach target_peak.
        centered = remove_dc_offset(samples)
        features = extract_features(centered)
        active = self._gate.is_active(features)
        self._post(
            SegmentClosed(
                sequence=sequence,
                sample_count=int(samples.size),
                active=active,
                features=features,
                levels=chunk_levels(samples, max(1, int(rate * _LEVEL_CHUNK_SECONDS))),
                is_final=is_final,
            )
        )
        if not active:
            self._log.info('Segment #%d silent (energy=%.5f), not transcribed', sequence, features.energy)
            return

        conditioned = pre_emphasize(
            normalize_volume(centered, self._config.target_peak),
            self._config.pre_emphasis_alpha,
        )
        self._pending.append(
            _Segment(
                sequence=sequence,
                epoch=self._epoch,
                samples=conditioned,
                wall_start=wall_start,
                wall_end=wall_end,
                is_final=is_final,
            )
        )
        self._log.debug('Segment #%d queued (%d samples, pending=%d)', sequence, samples.size, len(self._pending))
        self._dispatch_next()

    def _dispatch_next(self) -> None:
        if self._in_flight is not None or self._failed or not self._pending:
            return
        segment = self._pending.popleft()
        ticket = _Ticket(segment=segment)
        if self._abandoned is not None:
            # The worker is still busy with a timed-out call, so this one cannot
            # start yet; its timeout runs from dispatch instead.
            ticket.dispatched_at = self._clock()
        self._in_flight = ticket
        self._log.debug('Submitting segment #%d (final=%s)', segment.sequence, segment.is_final)
        ticket.future = self._executor.submit(self._recognize, ticket)
        ticket.future.add_done_callback(lambda _f, t=ticket: self._events.put(_RecognitionFinished(t)))

    def _recognize(self, ticket: _Ticket) -> str:
        """Worker-thread body of one recognizer call."""
        ticket.started_at = self._clock()
        try:
            return self._recognizer.transcribe(ticket.segment.samples, self._language)
        finally:
            ticket.finished_at = self._clock()

    def _check_timeout(self) -> None:
        ticket = self._in_flight
        if ticket is None or ticket.finished_at is not None:
            return
        began = ticket.started_at if ticket.started_at is not None else ticket.dispatched_at
        if began is None:
            return
        elapsed = self._clock() - began
        if elapsed <= self._config.recognizer_timeout:
            return
        self._in_flight = None
        if not ticket.future.cancel():  # type: ignore[union-attr]
            # Already running: the call keeps the worker until it returns; its late result is discarded.
            self._abandoned = ticket
        self._fail_segment(ticket.segment, self._timeout_error(ticket.segment, elapsed))
        self._dispatch_next()
        self._update_state()

    def _timeout_error(self, segment: _Segment, elapsed: float) -> RecognizerTimeoutError:
        return RecognizerTimeoutError(
            f'Segment #{segment.sequence} took {elapsed:.1f}s '
            f'(limit {self._config.recognizer_timeout:.1f}s)'
        )

    def _merge(self, segment: _Segment, text: str) -> None:
        if segment.epoch != self._epoch:
            self._log.info('Segment #%d result dropped: transcript was cleared', segment.sequence)
            return
        result = TranscriptionResult(
            text=text.strip(),
            sequence=segment.sequence,
            wall_start=segment.wall_start,
            wall_end=segment.wall_end,
        )
        self._accumulator.merge(result)
        self._log.info('Segment #%d: %r', segment.sequence, result.text)
        self._post(SegmentMerged(result=result, transcript=self._accumulator.current_transcript()))

    def _fail_segment(self, segment: _Segment, error: RecognizerError) -> None:
        """Segment-scoped failure: record it and contribute empty text."""
        self._log.warning('Segment #%d failed: %s: %s', segment.sequence, type(error).__name__, error)
        if segment.epoch != self._epoch:
            return
        self._last_error = error
        self._post(SegmentFailed(sequence=segment.sequence, error=error))
        self._merge(segment, '')

    def _enter_error(self, error: Exception, sequence: int | None) -> None:
        self._log.error('Pipeline halted: %s: %s', type(error).__name__, error)
        self._failed = True
        self._last_error = error
        if self._capturing:
            self._halt_capture()
            self._buffer.take_and_reset()
        if self._pending:
            self._log.warning('Dropping %d queued segment(s) after fatal error', len(self._pending))
            self._pending.clear()
        self._post(SegmentFailed(sequence=sequence, error=error, fatal=True))
        self._update_state()

    def _halt_capture(self) -> None:
        if self._ticker is not None:
            self._ticker.cancel()
        if self._audio_source is not None:
            try:
                self._audio_source.stop()
            except Exception as e:
                self._log.error('Audio source failed to stop cleanly: %s', e, exc_info=True)
        # Source is stopped, so no frame can arrive between this and the final take.
        self._accepting = False
        self._capturing = False

    def _shutdown(self) -> None:
        if self._capturing:
            self._halt_capture()
        self._pending.clear()
        self._closed = True
        self._release_stop_waiters()
        self._log.info('Orchestrator closed')

    def _update_state(self) -> None:
        new = derive_state(
            capturing=self._capturing,
            awaiting=self._in_flight is not None or bool(self._pending),
            failed=self._failed,
        )
        if new in (PipelineState.IDLE, PipelineState.ERROR):
            self._release_stop_waiters()
        if new is self._state:
            return
        previous = self._state
        self._state = new
        self._log.info('State %s -> %s', previous.value, new.value)
        self._post(StateChanged(state=new, previous=previous))

    def _release_stop_waiters(self) -> None:
        for waiter in self._stop_waiters:
            waiter.set()
        self._stop_waiters.clear()

    def _log_performance(self, ticket: _Ticket) -> None:
        if ticket.started_at is None or ticket.finished_at is None:
            return
        duration = ticket.finished_at - ticket.started_at
        samples = int(ticket.segment.samples.size)
        throughput = f'{samples / duration:.2f}' if duration > 0 else 'N/A'
        self._log.info(
            'Recognition of segment #%d completed: duration=%.0fms audio=%d samples throughput=%s samples/sec',
            ticket.segment.sequence,
            duration * 1000,
            samples,
            throughput,
        )

    def _post(self, notice: PipelineNotice) -> None:
        if self._post_message is not None:
            self._post_message(notice)
