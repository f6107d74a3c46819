"""
Log-mel feature extraction for the Whisper encoder.
Produces a fixed (80, 3000) float32 buffer from 16 kHz mono float32 samples.
"""

from __future__ import annotations

import logging

import numpy as np

logger = logging.getLogger(__name__)

SAMPLE_RATE = 16000
N_FFT = 512
HOP_LENGTH = 160
N_MELS = 80
N_FRAMES = 3000
N_SAMPLES = N_FRAMES * HOP_LENGTH  # 30 s at 16 kHz
LOG_FLOOR = 1e-9
# Value of every written cell for digital silence: (log10(1e-9) + 4) / 4
SILENCE_VALUE = (np.log10(LOG_FLOOR) + 4.0) / 4.0


def _hz_to_mel(freq: np.ndarray) -> np.ndarray:
    """Slaney mel scale: linear below 1 kHz, logarithmic above."""
    freq = np.asarray(freq, dtype=np.float64)
    f_sp = 200.0 / 3
    mels = freq / f_sp
    min_log_hz = 1000.0
    min_log_mel = min_log_hz / f_sp
    logstep = np.log(6.4) / 27.0
    log_region = freq >= min_log_hz
    mels = np.where(
        log_region,
        min_log_mel + np.log(np.maximum(freq, min_log_hz) / min_log_hz) / logstep,
        mels,
    )
    return mels


def _mel_to_hz(mels: np.ndarray) -> np.ndarray:
    mels = np.asarray(mels, dtype=np.float64)
    f_sp = 200.0 / 3
    freqs = f_sp * mels
    min_log_hz = 1000.0
    min_log_mel = min_log_hz / f_sp
    logstep = np.log(6.4) / 27.0
    return np.where(
        mels >= min_log_mel,
        min_log_hz * np.exp(logstep * (mels - min_log_mel)),
        freqs,
    )


def mel_filterbank(sample_rate: int, n_fft: int, n_mels: int) -> np.ndarray:
    """
    Slaney-normalized triangular filters covering 0 Hz .. Nyquist.
    Returns (n_mels, 1 + n_fft // 2) float32.
    """
    fft_freqs = np.linspace(0.0, sample_rate / 2, 1 + n_fft // 2)
    mel_points = np.linspace(_hz_to_mel(0.0), _hz_to_mel(sample_rate / 2), n_mels + 2)
    mel_freqs = _mel_to_hz(mel_points)
    fdiff = np.diff(mel_freqs)
    ramps = mel_freqs[:, None] - fft_freqs[None, :]
    lower = -ramps[:-2] / fdiff[:-1, None]
    upper = ramps[2:] / fdiff[1:, None]
    weights = np.maximum(0.0, np.minimum(lower, upper))
    enorm = 2.0 / (mel_freqs[2 : n_mels + 2] - mel_freqs[:n_mels])
    weights *= enorm[:, None]
    return weights.astype(np.float32)


def _periodic_hann(n: int) -> np.ndarray:
    return (0.5 - 0.5 * np.cos(2.0 * np.pi * np.arange(n) / n)).astype(np.float32)


class FeatureExtractor:
    """
    Normalized log-mel spectrogram: STFT (centered, Hann) -> power -> mel -> (log10 + 4) / 4.
    Audio longer than 30 s is truncated; shorter audio leaves trailing frames at 0.0.
    """

    def __init__(
        self,
        sample_rate: int = SAMPLE_RATE,
        n_fft: int = N_FFT,
        hop_length: int = HOP_LENGTH,
        n_mels: int = N_MELS,
        n_frames: int = N_FRAMES,
    ) -> None:
        self.sample_rate = sample_rate
        self.n_fft = n_fft
        self.hop_length = hop_length
        self.n_mels = n_mels
        self.n_frames = n_frames
        self.max_samples = n_frames * hop_length
        self._filters = mel_filterbank(sample_rate, n_fft, n_mels)
        self._window = _periodic_hann(n_fft)

    @property
    def shape(self) -> tuple[int, int]:
        return (self.n_mels, self.n_frames)

    def _power_spectrogram(self, samples: np.ndarray) -> np.ndarray:
        """Return (n_fft // 2 + 1, frames) power spectrum of centered frames."""
        pad = self.n_fft // 2
        mode = "reflect" if samples.shape[0] > pad else "constant"
        padded = np.pad(samples, (pad, pad), mode=mode)
        frames = np.lib.stride_tricks.sliding_window_view(padded, self.n_fft)[
            :: self.hop_length
        ]
        spectrum = np.fft.rfft(frames * self._window, n=self.n_fft, axis=-1)
        return (np.abs(spectrum) ** 2).T

    def extract(self, samples: np.ndarray, out: np.ndarray | None = None) -> np.ndarray:
        """
        Compute the (n_mels, n_frames) normalized log-mel buffer for mono samples.

        Args:
            samples: 1-D float audio at sample_rate Hz.
            out: Optional preallocated float32 buffer of shape self.shape; zeroed and filled in place.

        Returns:
            The filled buffer (out if given).
        """
        audio = np.asarray(samples, dtype=np.float32)
        if audio.ndim != 1:
            raise ValueError(f"Expected mono 1-D samples, got shape {audio.shape}")
        if out is None:
            mel = np.zeros(self.shape, dtype=np.float32)
        else:
            if out.shape != self.shape:
                raise ValueError(f"Mel buffer must have shape {self.shape}, got {out.shape}")
            mel = out
            mel.fill(0.0)
        if audio.shape[0] == 0:
            return mel

        audio = audio[: self.max_samples]
        power = self._power_spectrogram(audio)
        energies = self._filters @ power
        n = min(energies.shape[1], self.n_frames)
        mel[:, :n] = (np.log10(np.maximum(energies[:, :n], LOG_FLOOR)) + 4.0) / 4.0
        logger.debug(
            "Extracted %d frame(s) from %d sample(s)", n, audio.shape[0]
        )
        return mel


__all__ = [
    "HOP_LENGTH",
    "LOG_FLOOR",
    "N_FFT",
    "N_FRAMES",
    "N_MELS",
    "N_SAMPLES",
    "SAMPLE_RATE",
    "SILENCE_VALUE",
    "FeatureExtractor",
    "mel_filterbank",
]
