"""
Whisper-based STT over the local inference core (ONNX encoder/decoder pair).
Expects 16 kHz mono int16 PCM; converts to float32 for transcription.
"""
from __future__ import annotations

import logging
from pathlib import Path
from typing import Any, Callable

from sdk.abstractions import InferenceBackend, RunState, TranscriptionError
from sdk.audio_utils import int16_to_float32
from sdk.config import get_stt_section
from stt.base import STTEngine
from stt.decoder import DecoderSettings
from stt.whisper_model import ModelFiles, WhisperModel

logger = logging.getLogger(__name__)


class WhisperEngine(STTEngine):
    """
    Transcribe audio with WhisperModel. Expects 16 kHz mono int16 PCM.
    Model is loaded in start(); use config stt.model ("english" | "multilingual") and stt.model_dir.
    Optional: stt.providers (onnxruntime execution providers), stt.decoder.max_steps / suppress_bias.
    """

    def __init__(
        self,
        config: dict[str, Any] | None = None,
        model: str | None = None,
        backend_factory: Callable[[Path], InferenceBackend] | None = None,
    ) -> None:
        self._stt = get_stt_section(config or {})
        if model:
            self._stt["model"] = model
        self._files = ModelFiles.from_config(self._stt)
        decoder_cfg = self._stt["decoder"]
        self._settings = DecoderSettings(
            max_steps=decoder_cfg["max_steps"],
            suppress_bias=decoder_cfg["suppress_bias"],
        )
        self._backend_factory = backend_factory
        self._model: WhisperModel | None = None

    @property
    def model_name(self) -> str:
        return self._files.name

    @property
    def model(self) -> WhisperModel | None:
        return self._model

    def _default_factory(self) -> Callable[[Path], InferenceBackend]:
        from stt.onnx_backend import OnnxBackend

        providers = self._stt["providers"]
        return lambda path: OnnxBackend.from_path(path, providers=providers)

    def start(self) -> None:
        if self._model is not None:
            return
        factory = self._backend_factory or self._default_factory()
        try:
            self._model = WhisperModel.from_files(
                self._files, backend_factory=factory, settings=self._settings
            )
        except (TranscriptionError, FileNotFoundError, ImportError) as e:
            logger.error("Failed to load Whisper model (%s): %s", self._files.name, e)
            raise

    def stop(self) -> None:
        if self._model is not None:
            self._model.close()
        self._model = None

    def _require_model(self) -> WhisperModel:
        if self._model is None:
            raise RuntimeError("Whisper model not loaded; call start() first")
        return self._model

    def transcribe(self, audio_bytes: bytes) -> str:
        if not audio_bytes:
            return ""
        return self.transcribe_with_updates(audio_bytes)

    def transcribe_with_updates(
        self,
        audio_bytes: bytes,
        on_status_update: Callable[[RunState], None] | None = None,
        on_partial_decode: Callable[[str], None] | None = None,
        should_cancel: Callable[[], bool] | None = None,
    ) -> str:
        """Transcribe with phase and partial-text callbacks; errors propagate to the caller."""
        model = self._require_model()
        samples = int16_to_float32(audio_bytes)
        text = model.run(
            samples,
            on_status_update,
            on_partial_decode,
            should_cancel=should_cancel,
        )
        if not text:
            logger.info(
                "Whisper returned no text for this chunk (%.2f s of audio).",
                samples.shape[0] / 16000,
            )
        return text


__all__ = ["WhisperEngine"]
