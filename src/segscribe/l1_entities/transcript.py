"""Transcription result entity."""

from __future__ import annotations

from pydantic import BaseModel, Field


def format_wall_time(seconds: float) -> str:
    """Format seconds as HH:MM:SS for wall-clock display."""
    hours = int(seconds // 3600)
    minutes = int((seconds % 3600) // 60)
    secs = int(seconds % 60)
    return f'{hours:02d}:{minutes:02d}:{secs:02d}'


class TranscriptionResult(BaseModel):
    """Recognized text of one segment."""

    text: str
    sequence: int = Field(ge=0)
    wall_start: float = Field(description='Offset in seconds of captured audio since start or clear')
    wall_end: float = Field(description='Offset in seconds of captured audio since start or clear')
