"""
WhisperModel: feature extraction -> encoder -> greedy decoder, with phase and partial callbacks.
Runs synchronously on the calling thread; one run at a time per instance.
"""

from __future__ import annotations

import logging
import threading
import time
from dataclasses import dataclass
from pathlib import Path
from typing import Callable

import numpy as np

from sdk.abstractions import InferenceBackend, RunState
from stt.decoder import DecodeResult, DecoderLoop, DecoderSettings
from stt.encoder import EncoderRunner
from stt.features import FeatureExtractor
from stt.tokenizer import Vocabulary

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class ModelFiles:
    """Paths of one model's encoder, decoder and vocabulary files."""

    name: str
    encoder_path: Path
    decoder_path: Path
    vocab_path: Path

    @classmethod
    def from_config(cls, stt_section: dict, model: str | None = None) -> ModelFiles:
        """Build from a normalized stt section (sdk.get_stt_section); relative names resolve under model_dir."""
        name = model or stt_section["model"]
        files = stt_section["models"][name]
        root = Path(stt_section["model_dir"])
        return cls(
            name=name,
            encoder_path=root / files["encoder"],
            decoder_path=root / files["decoder"],
            vocab_path=root / files["vocab"],
        )


class WhisperModel:
    """
    Speech-to-text for up to 30 s of 16 kHz mono audio.
    Vocabulary special tokens are resolved at construction (VocabularyLoadError if missing).
    """

    def __init__(
        self,
        encoder: InferenceBackend,
        decoder: InferenceBackend,
        vocabulary: Vocabulary,
        settings: DecoderSettings | None = None,
        extractor: FeatureExtractor | None = None,
        name: str = "whisper",
    ) -> None:
        self.name = name
        self.vocabulary = vocabulary
        self._extractor = extractor or FeatureExtractor()
        # Reused by every run; only writable while features are being extracted.
        self._mel = np.zeros(self._extractor.shape, dtype=np.float32)
        self._mel.flags.writeable = False
        self._encoder = EncoderRunner(encoder)
        self._decoder = DecoderLoop(decoder, vocabulary, settings)
        self._backends = (encoder, decoder)
        self._run_lock = threading.Lock()

    @classmethod
    def from_files(
        cls,
        files: ModelFiles,
        backend_factory: Callable[[Path], InferenceBackend] | None = None,
        settings: DecoderSettings | None = None,
    ) -> WhisperModel:
        """
        Load vocabulary and both backends for files.
        backend_factory defaults to OnnxBackend.from_path.
        """
        if backend_factory is None:
            from stt.onnx_backend import OnnxBackend

            backend_factory = OnnxBackend.from_path
        vocabulary = Vocabulary.from_json_file(files.vocab_path)
        encoder = backend_factory(files.encoder_path)
        decoder = backend_factory(files.decoder_path)
        logger.info(
            "Whisper model loaded: %s (encoder=%s, decoder=%s)",
            files.name,
            files.encoder_path,
            files.decoder_path,
        )
        return cls(encoder, decoder, vocabulary, settings=settings, name=files.name)

    @property
    def settings(self) -> DecoderSettings:
        return self._decoder.settings

    def close(self) -> None:
        for backend in self._backends:
            backend.close()

    def run(
        self,
        samples: np.ndarray,
        on_status_update: Callable[[RunState], None] | None = None,
        on_partial_decode: Callable[[str], None] | None = None,
        *,
        on_language_detected: Callable[[str], None] | None = None,
        should_cancel: Callable[[], bool] | None = None,
    ) -> str:
        """
        Transcribe samples and return the final text.
        Status goes ExtractingFeatures -> ProcessingEncoder -> StartedDecoding, once each.
        The last partial passed to on_partial_decode equals the return value.
        Raises InferenceError, InvariantViolation or DecodeCancelled; no retries.
        """
        return self._run(
            samples,
            on_status_update,
            on_partial_decode,
            on_language_detected,
            should_cancel,
        ).text

    def transcribe(
        self,
        samples: np.ndarray,
        should_cancel: Callable[[], bool] | None = None,
    ) -> DecodeResult:
        """Like run() without callbacks; returns the full DecodeResult."""
        return self._run(samples, None, None, None, should_cancel)

    def _run(
        self,
        samples: np.ndarray,
        on_status_update: Callable[[RunState], None] | None,
        on_partial_decode: Callable[[str], None] | None,
        on_language_detected: Callable[[str], None] | None,
        should_cancel: Callable[[], bool] | None,
    ) -> DecodeResult:
        if not self._run_lock.acquire(blocking=False):
            raise RuntimeError(f"WhisperModel {self.name!r} is already running; runs are not reentrant")
        try:
            def status(state: RunState) -> None:
                logger.debug("Run state: %s", state.value)
                if on_status_update is not None:
                    on_status_update(state)

            started = time.monotonic()
            status(RunState.EXTRACTING_FEATURES)
            self._mel.flags.writeable = True
            try:
                mel = self._extractor.extract(samples, out=self._mel)
            finally:
                self._mel.flags.writeable = False

            status(RunState.PROCESSING_ENCODER)
            encoded_at = time.monotonic()
            cross_attention = self._encoder.encode(mel)

            status(RunState.STARTED_DECODING)
            decoding_at = time.monotonic()
            result = self._decoder.run(
                cross_attention,
                on_partial_decode=on_partial_decode,
                on_language_detected=on_language_detected,
                should_cancel=should_cancel,
            )
            finished = time.monotonic()
            logger.debug(
                "Timings: features=%.3fs encoder=%.3fs decoder=%.3fs",
                encoded_at - started,
                decoding_at - encoded_at,
                finished - decoding_at,
            )
            logger.info(
                "Transcribed %d sample(s) with %s: %d step(s), stop=%s, language=%s",
                np.asarray(samples).shape[0],
                self.name,
                result.steps,
                result.reason.value,
                result.language or "-",
            )
            return result
        finally:
            self._run_lock.release()


__all__ = ["ModelFiles", "WhisperModel"]
