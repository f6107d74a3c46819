"""
Encoder runner: one backend call per utterance, mel (80, 3000) -> cross-attention tensor.
"""

from __future__ import annotations

import logging

import numpy as np

from sdk.abstractions import InferenceBackend, InferenceError

logger = logging.getLogger(__name__)

ENCODER_INPUT = "audio_features"
ENCODER_OUTPUT = "cross_attention"


class EncoderRunner:
    """Stateless wrapper over the encoder backend."""

    def __init__(
        self,
        backend: InferenceBackend,
        input_name: str = ENCODER_INPUT,
        output_name: str = ENCODER_OUTPUT,
    ) -> None:
        self._backend = backend
        self._input_name = input_name
        self._output_name = output_name

    def encode(self, mel: np.ndarray) -> np.ndarray:
        """
        Run the encoder on a (n_mels, n_frames) mel buffer, fed as [1, n_mels, n_frames].
        Returns the cross-attention tensor, marked read-only.
        Raises InferenceError if the backend fails or omits the output.
        """
        features = np.asarray(mel, dtype=np.float32)[np.newaxis, ...]
        try:
            outputs = self._backend.execute({self._input_name: features})
        except InferenceError:
            logger.warning("Encoder backend failed")
            raise
        except Exception as e:
            logger.warning("Encoder backend error: %s", e)
            raise InferenceError(f"Encoder failed: {e}") from e
        if self._output_name not in outputs:
            raise InferenceError(
                f"Encoder returned no '{self._output_name}' output (got {sorted(outputs)})"
            )
        xatn = np.array(outputs[self._output_name], copy=True)
        xatn.flags.writeable = False
        return xatn


__all__ = ["ENCODER_INPUT", "ENCODER_OUTPUT", "EncoderRunner"]
