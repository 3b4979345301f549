"""Port: speech recognition engine."""

from __future__ import annotations

from typing import Protocol

import numpy as np


class Recognizer(Protocol):
    """Abstract recognition engine. Zero framework types leak through.

    ``transcribe`` may raise EngineUnavailableError, EngineBusyError or
    DecodeError from ``segscribe.l1_entities.errors``.
    """

    def load_model(self, model: str) -> None:
        """Load the recognition model (name or path)."""
        ...

    def transcribe(self, samples: np.ndarray, language: str) -> str:
        """Recognize one conditioned float32 segment and return its text."""
        ...

    def close(self) -> None:
        """Release underlying resources."""
        ...
