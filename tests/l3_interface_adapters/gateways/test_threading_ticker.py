"""Tests for ThreadingTicker."""

from __future__ import annotations

import threading
import time

import pytest

from segscribe.l3_interface_adapters.gateways.threading_ticker import ThreadingTicker


class TestThreadingTicker:
    def test_fires_repeatedly(self):
        fired = threading.Semaphore(0)
        ticker = ThreadingTicker()
        ticker.start(0.02, fired.release)
        try:
            for _ in range(3):
                assert fired.acquire(timeout=2)
        finally:
            ticker.cancel()

    def test_first_fire_after_one_period(self):
        calls: list[float] = []
        ticker = ThreadingTicker()
        started = time.monotonic()
        ticker.start(0.2, lambda: calls.append(time.monotonic()))
        time.sleep(0.05)
        ticker.cancel()
        assert calls == []
        assert time.monotonic() - started < 1.0

    def test_cancel_stops_callbacks(self):
        calls: list[int] = []
        ticker = ThreadingTicker()
        ticker.start(0.01, lambda: calls.append(1))
        time.sleep(0.05)
        ticker.cancel()
        count = len(calls)
        time.sleep(0.05)
        assert len(calls) == count

    def test_restart_replaces_schedule(self):
        first: list[int] = []
        second = threading.Event()
        ticker = ThreadingTicker()
        ticker.start(10.0, lambda: first.append(1))
        ticker.start(0.01, second.set)
        try:
            assert second.wait(timeout=2)
        finally:
            ticker.cancel()
        assert first == []

    def test_invalid_period(self):
        with pytest.raises(ValueError):
            ThreadingTicker().start(0, lambda: None)

    def test_cancel_before_start(self):
        ThreadingTicker().cancel()
