"""Port: push-style audio capture source."""

from __future__ import annotations

from collections.abc import Callable
from typing import Protocol


class AudioSource(Protocol):
    """Delivers 16-bit little-endian mono PCM frames to a callback."""

    def start(self, on_frame: Callable[[bytes], None], sample_rate: int, channels: int) -> None:
        """Begin capture; *on_frame* is invoked from the capture thread."""
        ...

    def stop(self) -> None:
        """Stop capture. Safe to call when not started."""
        ...
