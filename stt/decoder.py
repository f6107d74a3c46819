"""
Autoregressive greedy decode loop over an opaque decoder backend.

Each step feeds the sequence position, the KV cache, the previous token and the
cross-attention tensor; the backend returns logits and a replacement cache. The
cache is overwritten in place, translate/no-captions are pushed down by a fixed
bias, the first maximum logit is selected, and the token's text is appended
unless it is a special marker. Decoding stops on end-of-text or after max_steps.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from enum import Enum
from typing import Callable, Generator

import numpy as np

from sdk.abstractions import (
    DecodeCancelled,
    InferenceBackend,
    InferenceError,
    InvariantViolation,
)
from sdk.logging import get_logger
from stt.tokenizer import Vocabulary

logger = get_logger("decoder")

MAX_DECODE_STEPS = 256
SUPPRESS_BIAS = 1024.0
CACHE_SHAPE = (8, 6, 256, 64)  # layer x head x max sequence x head dim


@dataclass(frozen=True)
class DecoderSettings:
    """Decode loop constants and backend tensor names."""

    max_steps: int = MAX_DECODE_STEPS
    suppress_bias: float = SUPPRESS_BIAS
    cache_shape: tuple[int, ...] = CACHE_SHAPE
    cross_attention_input: str = "cross_attention"
    seq_len_input: str = "seq_len"
    cache_input: str = "cache"
    input_ids_input: str = "input_ids"
    logits_output: str = "logits"
    cache_output: str = "next_cache"

    def __post_init__(self) -> None:
        if len(self.cache_shape) != 4:
            raise ValueError(f"cache_shape must have 4 dimensions, got {self.cache_shape}")
        max_seq = self.cache_shape[2]
        if not 1 <= self.max_steps <= max_seq:
            raise ValueError(f"max_steps must be between 1 and {max_seq}, got {self.max_steps}")


class StopReason(Enum):
    END_TOKEN = "end_token"
    MAX_STEPS = "max_steps"


@dataclass
class DecodeState:
    previous_token: int
    sequence_position: int = 0
    accumulated_text: str = ""


@dataclass(frozen=True)
class DecodeStep:
    """One appended token: position, token id, display text so far, detected language (if any)."""

    position: int
    token: int
    text: str
    language: str | None = None


@dataclass(frozen=True)
class DecodeResult:
    text: str
    reason: StopReason
    steps: int
    language: str | None = None
    tokens: list[int] = field(default_factory=list)


class DecoderLoop:
    """
    Greedy decoder over one cross-attention tensor.
    Buffers (cache, position, input id) are allocated once per run and mutated in place.
    """

    def __init__(
        self,
        backend: InferenceBackend,
        vocabulary: Vocabulary,
        settings: DecoderSettings | None = None,
    ) -> None:
        self._backend = backend
        self._vocab = vocabulary
        self.settings = settings or DecoderSettings()
        self._suppressed = (vocabulary.translate, vocabulary.no_captions)

    def _call_backend(self, inputs: dict[str, np.ndarray], position: int) -> dict[str, np.ndarray]:
        try:
            return self._backend.execute(inputs)
        except InferenceError:
            logger.warning("Decoder backend failed at position %d", position)
            raise
        except Exception as e:
            logger.warning("Decoder backend error at position %d: %s", position, e)
            raise InferenceError(f"Decoder failed at position {position}: {e}") from e

    def _read_outputs(
        self, outputs: dict[str, np.ndarray], cache: np.ndarray
    ) -> np.ndarray:
        """Overwrite cache with the returned cache and return flattened float32 logits."""
        s = self.settings
        if s.logits_output not in outputs or s.cache_output not in outputs:
            raise InferenceError(
                f"Decoder must return '{s.logits_output}' and '{s.cache_output}' (got {sorted(outputs)})"
            )
        next_cache = np.asarray(outputs[s.cache_output], dtype=np.float32)
        if next_cache.size != cache.size:
            raise InferenceError(
                f"Decoder returned cache of size {next_cache.size}, expected {cache.size}"
            )
        # Full replace, not append; the backend produces the accumulated state.
        np.copyto(cache, next_cache.reshape(cache.shape))

        logits = np.array(outputs[s.logits_output], dtype=np.float32).reshape(-1)
        if logits.shape[0] <= max(self._suppressed):
            raise InferenceError(
                f"Decoder returned {logits.shape[0]} logits; vocabulary needs at least {max(self._suppressed) + 1}"
            )
        return logits

    def select_token(self, logits: np.ndarray) -> int:
        """
        Push translate/no-captions down by the bias in place, then return the first index
        of the maximum. Suppressed ids and NaN logits are excluded from the choice outright.
        """
        for token in self._suppressed:
            logits[token] -= self.settings.suppress_bias
        candidates = np.where(np.isnan(logits), -np.inf, logits)
        candidates[list(self._suppressed)] = -np.inf
        return int(np.argmax(candidates))

    def _token_text(self, token: int) -> str:
        if token not in self._vocab:
            raise InvariantViolation(
                f"Selected token {token} is not in the vocabulary ({len(self._vocab)} entries)"
            )
        if self._vocab.is_special(token):
            return ""
        return self._vocab.id_to_text(token)

    def steps(
        self,
        cross_attention: np.ndarray,
        should_cancel: Callable[[], bool] | None = None,
    ) -> Generator[DecodeStep, None, DecodeResult]:
        """
        Decode lazily: yield a DecodeStep per appended token and return the DecodeResult.
        should_cancel is checked once per iteration before the backend call;
        a true result raises DecodeCancelled.
        """
        s = self.settings
        cache = np.zeros(s.cache_shape, dtype=np.float32)
        seq_len = np.zeros((1,), dtype=np.float32)
        input_ids = np.zeros((1, 1), dtype=np.float32)
        inputs = {
            s.cross_attention_input: cross_attention,
            s.seq_len_input: seq_len,
            s.cache_input: cache,
            s.input_ids_input: input_ids,
        }

        state = DecodeState(previous_token=self._vocab.start_of_transcript)
        tokens: list[int] = []
        language: str | None = None
        reason = StopReason.MAX_STEPS

        for position in range(s.max_steps):
            if should_cancel is not None and should_cancel():
                logger.info("Decoding cancelled at position %d", position)
                raise DecodeCancelled(f"Decoding cancelled at position {position}")
            state.sequence_position = position
            seq_len[0] = position
            input_ids[0, 0] = state.previous_token

            outputs = self._call_backend(inputs, position)
            logits = self._read_outputs(outputs, cache)
            token = self.select_token(logits)
            if token == self._vocab.end_of_text:
                reason = StopReason.END_TOKEN
                break

            detected = None
            if self._vocab.is_language_token(token):
                detected = self._vocab.language_code(token)
                language = detected
                logger.info("Language detected: %s", self._vocab.id_to_text(token))

            state.accumulated_text += self._token_text(token)
            state.previous_token = token
            tokens.append(token)
            yield DecodeStep(
                position=position,
                token=token,
                text=self._vocab.to_display_unicode(state.accumulated_text),
                language=detected,
            )

        text = self._vocab.to_display_unicode(state.accumulated_text)
        logger.debug(
            "Decoding finished: reason=%s steps=%d chars=%d",
            reason.value,
            len(tokens),
            len(text),
        )
        return DecodeResult(
            text=text, reason=reason, steps=len(tokens), language=language, tokens=tokens
        )

    def run(
        self,
        cross_attention: np.ndarray,
        on_partial_decode: Callable[[str], None] | None = None,
        on_language_detected: Callable[[str], None] | None = None,
        should_cancel: Callable[[], bool] | None = None,
    ) -> DecodeResult:
        """Drive steps() with the blocking callback API; callbacks run on this thread, in order."""
        gen = self.steps(cross_attention, should_cancel=should_cancel)
        while True:
            try:
                step = next(gen)
            except StopIteration as stop:
                return stop.value
            if step.language is not None and on_language_detected is not None:
                on_language_detected(step.language)
            if on_partial_decode is not None:
                on_partial_decode(step.text)


__all__ = [
    "CACHE_SHAPE",
    "MAX_DECODE_STEPS",
    "SUPPRESS_BIAS",
    "DecodeResult",
    "DecodeState",
    "DecodeStep",
    "DecoderLoop",
    "DecoderSettings",
    "StopReason",
]
