"""Audio feature summary entity."""

from __future__ import annotations

from pydantic import BaseModel, ConfigDict, Field


class AudioFeatures(BaseModel):
    """Scalar summary of one segment, recomputed per segment and never persisted."""

    model_config = ConfigDict(frozen=True)

    energy: float = Field(description='RMS amplitude')
    zero_crossing_rate: float = Field(description='Adjacent sign changes per sample')
    spectral_centroid: float = Field(
        description='Time-domain proxy: amplitude-weighted mean sample index, not an FFT centroid'
    )
    sample_count: int
