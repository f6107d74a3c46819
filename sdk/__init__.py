"""
voiceinput SDK: shared library for the inference core, the engine facade and the CLI.

Provides a single public surface for config section access, backend abstractions,
the error taxonomy, audio utilities, and logging. Import from this package only;
do not depend on stt from within the SDK.

Example:
    from sdk import get_stt_section
    cfg = get_stt_section(raw_config)

    from sdk import InferenceBackend, InferenceError, RunState
    from sdk import int16_to_float32, resample, to_mono
    from sdk import get_logger
"""

from __future__ import annotations

from sdk.abstractions import (
    DecodeCancelled,
    InferenceBackend,
    InferenceError,
    InvariantViolation,
    RunState,
    TranscriptionError,
    VocabularyLoadError,
)
from sdk.audio_utils import INT16_MAX, SAMPLE_RATE, int16_to_float32, resample, to_mono
from sdk.config import (
    DEFAULT_MODELS,
    MODEL_CHOICES,
    get_decoder_section,
    get_section,
    get_stt_section,
)
from sdk.logging import ROOT_LOGGER, get_logger, set_level

__version__ = "0.1.0"

__all__ = [
    "DEFAULT_MODELS",
    "INT16_MAX",
    "MODEL_CHOICES",
    "ROOT_LOGGER",
    "SAMPLE_RATE",
    "DecodeCancelled",
    "InferenceBackend",
    "InferenceError",
    "InvariantViolation",
    "RunState",
    "TranscriptionError",
    "VocabularyLoadError",
    "get_decoder_section",
    "get_logger",
    "get_section",
    "get_stt_section",
    "int16_to_float32",
    "resample",
    "set_level",
    "to_mono",
]
