"""
Shared audio utilities: int16 PCM to float32 conversion, downmixing and resampling.
Used by the STT engine facade and by the transcribe command before feature extraction.
"""

from __future__ import annotations

import logging

import numpy as np

logger = logging.getLogger(__name__)

INT16_MAX = 32767
SAMPLE_RATE = 16000


def int16_to_float32(audio_bytes: bytes | None) -> np.ndarray:
    """
    Convert int16 little-endian mono PCM to float32 in [-1, 1].
    A trailing odd byte is ignored; None or empty input returns an empty array.
    """
    if not audio_bytes:
        return np.zeros(0, dtype=np.float32)
    n = len(audio_bytes) // 2
    samples = np.frombuffer(audio_bytes[: n * 2], dtype="<i2")
    # 16 kHz mono int16 LE -> float32 [-1, 1]; contiguous for the feature extractor
    return np.ascontiguousarray(samples.astype(np.float32) / 32768.0)


def to_mono(samples: np.ndarray) -> np.ndarray:
    """Average a (frames, channels) array down to one channel; 1-D input is returned as float32."""
    arr = np.asarray(samples, dtype=np.float32)
    if arr.ndim == 1:
        return arr
    if arr.ndim == 2:
        return arr.mean(axis=1).astype(np.float32)
    raise ValueError(f"Expected 1-D or 2-D audio, got shape {arr.shape}")


def resample(samples: np.ndarray, rate_in: int, rate_out: int = SAMPLE_RATE) -> np.ndarray:
    """
    Resample float32 mono audio from rate_in to rate_out.
    Uses linear interpolation (numpy). Returns an empty array for invalid rates or empty input.
    """
    if rate_in <= 0 or rate_out <= 0:
        logger.debug("resample: invalid rates %s -> %s", rate_in, rate_out)
        return np.zeros(0, dtype=np.float32)
    arr = np.asarray(samples, dtype=np.float32)
    if rate_in == rate_out:
        return arr
    n = arr.shape[0]
    if n == 0:
        return np.zeros(0, dtype=np.float32)
    num_out = int(round(n * rate_out / rate_in))
    if num_out == 0:
        return np.zeros(0, dtype=np.float32)
    x_old = np.arange(n, dtype=np.float64)
    x_new = np.linspace(0, n - 1, num_out, dtype=np.float64)
    return np.interp(x_new, x_old, arr.astype(np.float64)).astype(np.float32)


__all__ = ["INT16_MAX", "SAMPLE_RATE", "int16_to_float32", "resample", "to_mono"]
