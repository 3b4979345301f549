"""Capture format shared by every layer: 16 kHz mono signed 16-bit PCM."""

SAMPLE_RATE = 16000
CHANNELS = 1
SAMPLE_WIDTH = 2  # bytes per int16 sample
PCM_SCALE = 32768.0
