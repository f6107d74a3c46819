"""
Whisper inference core: features, encoder, greedy decoder, vocabulary, and the STT engine facade.
"""
from __future__ import annotations

from stt.base import NoOpSTTEngine, STTEngine
from stt.decoder import DecodeResult, DecodeStep, DecoderLoop, DecoderSettings, StopReason
from stt.encoder import EncoderRunner
from stt.features import FeatureExtractor
from stt.tokenizer import Vocabulary
from stt.whisper_engine import WhisperEngine
from stt.whisper_model import ModelFiles, WhisperModel

__all__ = [
    "DecodeResult",
    "DecodeStep",
    "DecoderLoop",
    "DecoderSettings",
    "EncoderRunner",
    "FeatureExtractor",
    "ModelFiles",
    "NoOpSTTEngine",
    "STTEngine",
    "StopReason",
    "Vocabulary",
    "WhisperEngine",
    "WhisperModel",
]
