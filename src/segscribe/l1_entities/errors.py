"""Domain error types."""


class FormatError(ValueError):
    """Raised when a PCM buffer is not a whole number of 16-bit samples."""


class RecognizerError(Exception):
    """Base class for failures reported by a speech recognition engine."""


class EngineUnavailableError(RecognizerError):
    """The engine cannot be reached or its model cannot be loaded. Halts the pipeline."""


class EngineBusyError(RecognizerError):
    """The engine rejected a call because another one is still running."""


class DecodeError(RecognizerError):
    """The engine failed to decode one segment."""


class RecognizerTimeoutError(RecognizerError):
    """A recognizer call exceeded its time budget."""
