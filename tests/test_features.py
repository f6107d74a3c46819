"""Tests for stt.features: fixed-size normalized log-mel, silence floor, truncation, padding."""

from __future__ import annotations

import numpy as np
import pytest

from stt.features import (
    HOP_LENGTH,
    N_FRAMES,
    N_MELS,
    N_SAMPLES,
    SAMPLE_RATE,
    SILENCE_VALUE,
    FeatureExtractor,
    mel_filterbank,
)


@pytest.fixture(scope="module")
def extractor() -> FeatureExtractor:
    return FeatureExtractor()


def test_constants() -> None:
    assert (N_MELS, N_FRAMES) == (80, 3000)
    assert HOP_LENGTH == 160
    assert N_SAMPLES == 480000
    assert SILENCE_VALUE == pytest.approx(-1.25)


def test_filterbank_shape_and_non_negative() -> None:
    fb = mel_filterbank(SAMPLE_RATE, 512, 80)
    assert fb.shape == (80, 257)
    assert fb.dtype == np.float32
    assert (fb >= 0).all()
    assert (fb.sum(axis=1) > 0).all()


def test_output_is_fixed_size(extractor: FeatureExtractor) -> None:
    for n in (0, 100, SAMPLE_RATE, N_SAMPLES + 12345):
        mel = extractor.extract(np.zeros(n, dtype=np.float32))
        assert mel.shape == (80, 3000)
        assert mel.dtype == np.float32


def test_empty_input_is_all_zero(extractor: FeatureExtractor) -> None:
    mel = extractor.extract(np.zeros(0, dtype=np.float32))
    assert not mel.any()


def test_long_silence_is_normalization_floor_everywhere(extractor: FeatureExtractor) -> None:
    mel = extractor.extract(np.zeros(31 * SAMPLE_RATE, dtype=np.float32))
    assert np.allclose(mel, (np.log10(1e-9) + 4.0) / 4.0)


def test_short_audio_leaves_trailing_frames_zero(extractor: FeatureExtractor) -> None:
    mel = extractor.extract(np.zeros(SAMPLE_RATE, dtype=np.float32))
    written = 1 + SAMPLE_RATE // HOP_LENGTH
    assert np.allclose(mel[:, :written], SILENCE_VALUE)
    assert not mel[:, written:].any()


def test_audio_longer_than_30s_is_truncated(extractor: FeatureExtractor) -> None:
    rng = np.random.default_rng(1)
    audio = rng.uniform(-0.5, 0.5, size=35 * SAMPLE_RATE).astype(np.float32)
    assert np.array_equal(extractor.extract(audio), extractor.extract(audio[:N_SAMPLES]))


def test_sine_peaks_in_matching_band(extractor: FeatureExtractor) -> None:
    t = np.arange(2 * SAMPLE_RATE) / SAMPLE_RATE
    audio = (0.5 * np.sin(2 * np.pi * 1000.0 * t)).astype(np.float32)
    mel = extractor.extract(audio)
    fb = mel_filterbank(SAMPLE_RATE, 512, 80)
    bin_1k = int(round(1000.0 * 512 / SAMPLE_RATE))
    expected = int(np.argmax(fb[:, bin_1k]))
    assert abs(int(np.argmax(mel[:, 100])) - expected) <= 1
    assert mel[:, 100].max() > SILENCE_VALUE


def test_values_follow_log10_normalization(extractor: FeatureExtractor) -> None:
    rng = np.random.default_rng(2)
    audio = rng.normal(0.0, 0.1, size=SAMPLE_RATE).astype(np.float32)
    mel = extractor.extract(audio)
    written = mel[:, : 1 + SAMPLE_RATE // HOP_LENGTH]
    assert written.min() >= SILENCE_VALUE - 1e-6
    assert np.isfinite(written).all()


def test_extract_into_preallocated_buffer(extractor: FeatureExtractor) -> None:
    buf = np.full((80, 3000), 7.0, dtype=np.float32)
    out = extractor.extract(np.zeros(SAMPLE_RATE // 2, dtype=np.float32), out=buf)
    assert out is buf
    assert not buf[:, 1000:].any()


def test_extract_rejects_wrong_buffer_shape(extractor: FeatureExtractor) -> None:
    with pytest.raises(ValueError):
        extractor.extract(np.zeros(10, dtype=np.float32), out=np.zeros((80, 10), dtype=np.float32))


def test_extract_rejects_multichannel(extractor: FeatureExtractor) -> None:
    with pytest.raises(ValueError):
        extractor.extract(np.zeros((100, 2), dtype=np.float32))


def test_extract_is_pure(extractor: FeatureExtractor) -> None:
    audio = np.linspace(-0.2, 0.2, 4000).astype(np.float32)
    copy = audio.copy()
    first = extractor.extract(audio)
    second = extractor.extract(audio)
    assert np.array_equal(first, second)
    assert np.array_equal(audio, copy)


def test_tiny_input_shorter_than_window(extractor: FeatureExtractor) -> None:
    mel = extractor.extract(np.full(10, 0.1, dtype=np.float32))
    assert mel.shape == (80, 3000)
    assert not mel[:, 1:].any()
