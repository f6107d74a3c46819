"""
Speech-to-text engine interface shared by the Whisper facade and callers that stub it.
Engines take 16 kHz mono int16 PCM and are usable as context managers (start on enter, stop on exit).
"""
from __future__ import annotations

from abc import ABC, abstractmethod
from typing import Callable

from sdk.abstractions import RunState


class STTEngine(ABC):
    """Interface for local STT over int16 PCM. Implementations: WhisperEngine."""

    @abstractmethod
    def transcribe(self, audio_bytes: bytes) -> str:
        """Transcribe raw audio to text. Returns empty string if nothing recognized."""
        ...

    def transcribe_with_updates(
        self,
        audio_bytes: bytes,
        on_status_update: Callable[[RunState], None] | None = None,
        on_partial_decode: Callable[[str], None] | None = None,
        should_cancel: Callable[[], bool] | None = None,
    ) -> str:
        """
        Transcribe with progress callbacks. Engines without streaming report only
        the final text as a single partial.
        """
        text = self.transcribe(audio_bytes)
        if text and on_partial_decode is not None:
            on_partial_decode(text)
        return text

    def start(self) -> None:
        """Optional: load model. No-op by default."""
        pass

    def stop(self) -> None:
        """Optional: release model. No-op by default."""
        pass

    def __enter__(self) -> STTEngine:
        self.start()
        return self

    def __exit__(self, exc_type, exc, tb) -> None:
        self.stop()


class NoOpSTTEngine(STTEngine):
    """Engine for when no model is configured; every transcript is empty."""

    def transcribe(self, audio_bytes: bytes) -> str:
        return ""
