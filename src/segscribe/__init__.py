"""segscribe — segmented live microphone transcription."""

__version__ = '0.3.0'
