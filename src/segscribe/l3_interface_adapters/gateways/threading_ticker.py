"""Gateway: thread-based fixed-period ticker — implements Ticker port."""

from __future__ import annotations

import logging
import threading
import time
from collections.abc import Callable

log = logging.getLogger('segscribe.ticker')


class ThreadingTicker:
    """Fires on a fixed monotonic schedule (period drift does not accumulate)."""

    def __init__(self) -> None:
        self._cancel = threading.Event()
        self._thread: threading.Thread | None = None

    def start(self, period: float, callback: Callable[[], None]) -> None:
        if period <= 0:
            raise ValueError(f'period must be positive, got {period}')
        self.cancel()
        cancel = threading.Event()
        self._cancel = cancel

        def _run() -> None:
            next_due = time.monotonic() + period
            while not cancel.wait(max(0.0, next_due - time.monotonic())):
                callback()
                next_due += period

        self._thread = threading.Thread(target=_run, name='segscribe-ticker', daemon=True)
        self._thread.start()
        log.debug('Ticker armed: period=%.3fs', period)

    def cancel(self) -> None:
        self._cancel.set()
        if self._thread is not None:
            if self._thread is not threading.current_thread():
                self._thread.join(timeout=1)
            self._thread = None
