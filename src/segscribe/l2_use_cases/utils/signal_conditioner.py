"""Pure signal-conditioning functions applied to a segment before recognition.

None of these keep state or touch I/O, so they are safe to call from any thread.
Every function returns a new array and leaves its input untouched.
"""

from __future__ import annotations

import numpy as np

from segscribe.l1_entities.audio_constants import PCM_SCALE, SAMPLE_WIDTH
from segscribe.l1_entities.audio_features import AudioFeatures
from segscribe.l1_entities.errors import FormatError

DEFAULT_TARGET_PEAK = 0.8
DEFAULT_PRE_EMPHASIS_ALPHA = 0.97


def to_normalized(frame: bytes | bytearray | memoryview | np.ndarray) -> np.ndarray:
    """Convert little-endian int16 PCM to float32 samples in [-1.0, 1.0].

    Accepts raw bytes or an int16 array. Raises FormatError when the byte
    length is not a whole number of samples.
    """
    if isinstance(frame, np.ndarray):
        if frame.dtype != np.int16:
            raise FormatError(f'Expected int16 PCM samples, got dtype {frame.dtype}')
        pcm = frame.reshape(-1)
    else:
        if len(frame) % SAMPLE_WIDTH != 0:
            raise FormatError(f'PCM buffer of {len(frame)} bytes is not a whole number of {SAMPLE_WIDTH}-byte samples')
        pcm = np.frombuffer(frame, dtype='<i2')
    return pcm.astype(np.float32) / np.float32(PCM_SCALE)


def remove_dc_offset(samples: np.ndarray) -> np.ndarray:
    """Subtract the arithmetic mean from every sample."""
    if samples.size == 0:
        return samples.copy()
    mean = samples.mean(dtype=np.float64)
    return (samples - mean).astype(np.float32)


def normalize_volume(samples: np.ndarray, target_peak: float = DEFAULT_TARGET_PEAK) -> np.ndarray:
    """Scale so the loudest sample sits at *target_peak*. Silence is not amplified."""
    if samples.size == 0:
        return samples.copy()
    peak = float(np.max(np.abs(samples)))
    if peak == 0.0:
        return samples.copy()
    return (samples * (target_peak / peak)).astype(np.float32)


def pre_emphasize(samples: np.ndarray, alpha: float = DEFAULT_PRE_EMPHASIS_ALPHA) -> np.ndarray:
    """First-order high-pass: out[0] = in[0], out[i] = in[i] - alpha * in[i-1].

    Run after normalize_volume(); the filter changes the peak that
    normalization keys on.
    """
    out = np.empty_like(samples, dtype=np.float32)
    if samples.size == 0:
        return out
    out[0] = samples[0]
    out[1:] = samples[1:] - np.float32(alpha) * samples[:-1]
    return out


def condition(
    samples: np.ndarray,
    target_peak: float = DEFAULT_TARGET_PEAK,
    alpha: float = DEFAULT_PRE_EMPHASIS_ALPHA,
) -> np.ndarray:
    """DC removal, then volume normalization, then pre-emphasis."""
    return pre_emphasize(normalize_volume(remove_dc_offset(samples), target_peak), alpha)


def extract_features(samples: np.ndarray) -> AudioFeatures:
    """Summarize a segment as energy, zero-crossing rate and centroid proxy.

    The "spectral centroid" here is the amplitude-weighted mean sample index,
    sum(i * |x_i|) / sum(|x_i|). It is a cheap time-domain stand-in and is not
    derived from a frequency transform.
    """
    n = int(samples.size)
    if n == 0:
        return AudioFeatures(energy=0.0, zero_crossing_rate=0.0, spectral_centroid=0.0, sample_count=0)

    x = samples.astype(np.float64)
    energy = float(np.sqrt(np.mean(x**2)))

    non_negative = x >= 0
    crossings = int(np.count_nonzero(non_negative[1:] != non_negative[:-1]))
    zcr = crossings / n

    magnitude = np.abs(x)
    total = float(magnitude.sum())
    centroid = float(np.dot(np.arange(n, dtype=np.float64), magnitude) / total) if total > 0 else 0.0

    return AudioFeatures(
        energy=energy,
        zero_crossing_rate=zcr,
        spectral_centroid=centroid,
        sample_count=n,
    )


def chunk(samples: np.ndarray, chunk_size: int) -> list[np.ndarray]:
    """Split into equal blocks of *chunk_size*; a trailing partial block is dropped."""
    if chunk_size <= 0:
        raise ValueError(f'chunk_size must be positive, got {chunk_size}')
    full = samples.size // chunk_size
    return [samples[i * chunk_size : (i + 1) * chunk_size] for i in range(full)]


def chunk_levels(samples: np.ndarray, chunk_size: int) -> list[float]:
    """RMS of each full chunk, for level meters."""
    return [float(np.sqrt(np.mean(block.astype(np.float64) ** 2))) for block in chunk(samples, chunk_size)]
