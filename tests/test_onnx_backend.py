"""Tests for stt.onnx_backend: input casting, output naming, error wrapping, loading."""

from __future__ import annotations

import logging
import sys
from pathlib import Path
from types import SimpleNamespace
from unittest.mock import MagicMock, patch

import numpy as np
import pytest

from sdk import InferenceError
from stt.onnx_backend import OnnxBackend


def _session(inputs: dict[str, str], outputs: list[str]) -> MagicMock:
    session = MagicMock()
    session.get_inputs.return_value = [SimpleNamespace(name=n, type=t) for n, t in inputs.items()]
    session.get_outputs.return_value = [SimpleNamespace(name=n) for n in outputs]
    return session


def test_execute_returns_outputs_by_name() -> None:
    session = _session({"x": "tensor(float)"}, ["logits", "next_cache"])
    session.run.return_value = [np.ones(3), np.zeros(2)]
    out = OnnxBackend(session).execute({"x": np.zeros((1, 2), dtype=np.float32)})
    assert list(out) == ["logits", "next_cache"]
    assert out["logits"].shape == (3,)
    names, _ = session.run.call_args.args
    assert names == ["logits", "next_cache"]


def test_execute_casts_to_declared_dtype() -> None:
    session = _session({"seq_len": "tensor(int64)", "x": "tensor(float)"}, ["y"])
    session.run.return_value = [np.zeros(1)]
    OnnxBackend(session).execute(
        {"seq_len": np.array([3.0], dtype=np.float32), "x": np.zeros(2, dtype=np.float64)}
    )
    _, feed = session.run.call_args.args
    assert feed["seq_len"].dtype == np.int64
    assert feed["seq_len"][0] == 3
    assert feed["x"].dtype == np.float32


def test_execute_unknown_input_raises() -> None:
    session = _session({"x": "tensor(float)"}, ["y"])
    with pytest.raises(InferenceError) as exc_info:
        OnnxBackend(session).execute({"z": np.zeros(1)})
    assert "z" in str(exc_info.value)
    session.run.assert_not_called()


def test_execute_runtime_failure_wrapped() -> None:
    session = _session({"x": "tensor(float)"}, ["y"])
    session.run.side_effect = RuntimeError("bad shape")
    with pytest.raises(InferenceError) as exc_info:
        OnnxBackend(session).execute({"x": np.zeros(1)})
    assert isinstance(exc_info.value.__cause__, RuntimeError)


def test_input_and_output_names() -> None:
    backend = OnnxBackend(_session({"a": "tensor(float)", "b": "tensor(int32)"}, ["c"]))
    assert backend.input_names == ["a", "b"]
    assert backend.output_names == ["c"]


def test_from_path_missing_file_raises(tmp_path: Path) -> None:
    fake_ort = MagicMock()
    with patch.dict(sys.modules, {"onnxruntime": fake_ort}):
        with pytest.raises(FileNotFoundError):
            OnnxBackend.from_path(tmp_path / "missing.onnx")
    fake_ort.InferenceSession.assert_not_called()


def test_from_path_opens_session_with_providers(tmp_path: Path) -> None:
    model = tmp_path / "m.onnx"
    model.write_bytes(b"onnx")
    fake_ort = MagicMock()
    fake_ort.InferenceSession.return_value = _session({"x": "tensor(float)"}, ["y"])
    with patch.dict(sys.modules, {"onnxruntime": fake_ort}):
        backend = OnnxBackend.from_path(model, providers=["CUDAExecutionProvider"])
    fake_ort.InferenceSession.assert_called_once_with(
        str(model), providers=["CUDAExecutionProvider"]
    )
    assert backend.output_names == ["y"]


def test_from_path_session_error_is_inference_error(tmp_path: Path) -> None:
    model = tmp_path / "m.onnx"
    model.write_bytes(b"not a model")
    fake_ort = MagicMock()
    fake_ort.InferenceSession.side_effect = RuntimeError("invalid protobuf")
    with patch.dict(sys.modules, {"onnxruntime": fake_ort}):
        with pytest.raises(InferenceError):
            OnnxBackend.from_path(model)


def test_from_path_logs_tensor_names(tmp_path: Path, caplog) -> None:
    model = tmp_path / "m.onnx"
    model.write_bytes(b"onnx")
    fake_ort = MagicMock()
    fake_ort.InferenceSession.return_value = _session(
        {"audio_features": "tensor(float)"}, ["cross_attention"]
    )
    with patch.dict(sys.modules, {"onnxruntime": fake_ort}):
        with caplog.at_level(logging.INFO, logger="stt.onnx_backend"):
            OnnxBackend.from_path(model)
    assert "inputs=audio_features" in caplog.text
    assert "outputs=cross_attention" in caplog.text
