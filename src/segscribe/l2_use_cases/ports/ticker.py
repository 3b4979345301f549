"""Port: fixed-period segment boundary timer."""

from __future__ import annotations

from collections.abc import Callable
from typing import Protocol


class Ticker(Protocol):
    """Calls back once per period until cancelled."""

    def start(self, period: float, callback: Callable[[], None]) -> None:
        """Arm the timer; the first callback fires one *period* after start."""
        ...

    def cancel(self) -> None:
        """Disarm. A callback already in progress may still complete."""
        ...
