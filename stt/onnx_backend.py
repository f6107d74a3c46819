"""
ONNX Runtime implementation of InferenceBackend.
onnxruntime is imported lazily so the core runs with any other backend without it installed.
"""

from __future__ import annotations

import logging
from pathlib import Path
from typing import Any, Mapping

import numpy as np

from sdk.abstractions import InferenceBackend, InferenceError

logger = logging.getLogger(__name__)

# onnxruntime type strings -> numpy dtypes for the input kinds the Whisper graphs use
_ORT_DTYPES = {
    "tensor(float)": np.float32,
    "tensor(float16)": np.float16,
    "tensor(double)": np.float64,
    "tensor(int32)": np.int32,
    "tensor(int64)": np.int64,
}


class OnnxBackend(InferenceBackend):
    """Run an onnxruntime InferenceSession with named inputs; outputs keyed by session output name."""

    def __init__(self, session: Any) -> None:
        self._session = session
        self._input_types = {i.name: i.type for i in session.get_inputs()}
        self._output_names = [o.name for o in session.get_outputs()]

    @classmethod
    def from_path(
        cls, model_path: str | Path, providers: list[str] | None = None
    ) -> OnnxBackend:
        """
        Open model_path with onnxruntime.

        Args:
            model_path: Path to .onnx file
            providers: Execution providers (default CPUExecutionProvider)
        """
        try:
            import onnxruntime as ort
        except ImportError:
            raise ImportError(
                "onnxruntime required for the ONNX backend. Install with: pip install onnxruntime"
            ) from None

        model_path = Path(model_path)
        if not model_path.exists():
            raise FileNotFoundError(f"Model file not found: {model_path}")
        try:
            session = ort.InferenceSession(
                str(model_path), providers=providers or ["CPUExecutionProvider"]
            )
        except Exception as e:
            logger.warning("Failed to load ONNX model (%s): %s", model_path, e)
            raise InferenceError(f"Failed to load {model_path}: {e}") from e
        backend = cls(session)
        logger.info(
            "ONNX model loaded: %s (inputs=%s, outputs=%s)",
            model_path,
            ", ".join(backend.input_names),
            ", ".join(backend.output_names),
        )
        return backend

    @property
    def input_names(self) -> list[str]:
        return list(self._input_types)

    @property
    def output_names(self) -> list[str]:
        return list(self._output_names)

    def _feed(self, inputs: Mapping[str, np.ndarray]) -> dict[str, np.ndarray]:
        feed = {}
        for name, value in inputs.items():
            if name not in self._input_types:
                raise InferenceError(
                    f"Model has no input '{name}' (inputs: {', '.join(self._input_types)})"
                )
            dtype = _ORT_DTYPES.get(self._input_types[name])
            arr = np.asarray(value)
            feed[name] = arr.astype(dtype, copy=False) if dtype is not None else arr
        return feed

    def execute(self, inputs: Mapping[str, np.ndarray]) -> dict[str, np.ndarray]:
        feed = self._feed(inputs)
        try:
            results = self._session.run(self._output_names, feed)
        except Exception as e:
            raise InferenceError(f"ONNX Runtime failed: {e}") from e
        return dict(zip(self._output_names, results))

    def close(self) -> None:
        self._session = None


__all__ = ["OnnxBackend"]
