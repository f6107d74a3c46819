"""
Core inference abstractions: backend interface, run phases, error taxonomy.
Used by the stt package and by callers that supply their own backend; concrete
backends live in stt (e.g. stt.onnx_backend).
"""

from __future__ import annotations

from abc import ABC, abstractmethod
from enum import Enum
from typing import Mapping

import numpy as np


class TranscriptionError(Exception):
    """Base class for failures surfaced by a transcription run."""


class VocabularyLoadError(TranscriptionError):
    """Raised when the vocabulary cannot be loaded or a required special token is missing."""


class InferenceError(TranscriptionError):
    """Raised when the inference backend fails on the encoder or a decoder call."""


class InvariantViolation(TranscriptionError):
    """Raised when decoding selects a token the vocabulary does not know."""


class DecodeCancelled(TranscriptionError):
    """Raised when the caller's cancellation check stops a decode run."""


class RunState(Enum):
    """Phases reported through on_status_update, in emission order."""

    EXTRACTING_FEATURES = "ExtractingFeatures"
    PROCESSING_ENCODER = "ProcessingEncoder"
    STARTED_DECODING = "StartedDecoding"
    # Reserved for external model-switching flows; never emitted by WhisperModel.run.
    SWITCHING_MODEL = "SwitchingModel"


class InferenceBackend(ABC):
    """
    Opaque neural-network runtime: named input tensors in, named output tensors out.
    Calls are synchronous. Implementations raise InferenceError on failure.
    """

    @abstractmethod
    def execute(self, inputs: Mapping[str, np.ndarray]) -> dict[str, np.ndarray]:
        """Run the model once and return its outputs keyed by tensor name."""
        ...

    def close(self) -> None:
        """Optional: release the runtime session. No-op by default."""
        pass


__all__ = [
    "DecodeCancelled",
    "InferenceBackend",
    "InferenceError",
    "InvariantViolation",
    "RunState",
    "TranscriptionError",
    "VocabularyLoadError",
]
