"""
Normalized config section access for the inference core.
Provides get_section() and section-specific getters (stt, decoder) so
config normalization lives in one place; the engine and CLI use these instead of duplicating logic.
"""

from __future__ import annotations

from typing import Any, Callable

MODEL_CHOICES = ("english", "multilingual")

DEFAULT_MODELS: dict[str, dict[str, str]] = {
    "english": {
        "encoder": "tiny-en-encoder-xatn.onnx",
        "decoder": "tiny-en-decoder.onnx",
        "vocab": "tinyenvocab.json",
    },
    "multilingual": {
        "encoder": "tiny-multi-encoder-xatn.onnx",
        "decoder": "tiny-multi-decoder.onnx",
        "vocab": "multilingual.json",
    },
}


def _clamp_int(value: Any, low: int, high: int, default: int) -> int:
    """Parse value to int and clamp to [low, high]; return default if value is None or invalid."""
    if value is None:
        return default
    try:
        return max(low, min(high, int(value)))
    except (TypeError, ValueError):
        return default


def _parse_float(value: Any, low: float, high: float, default: float) -> float:
    """Parse value to float and clamp to [low, high]; return default if value is None or parsing fails."""
    if value is None:
        return default
    try:
        return max(low, min(high, float(value)))
    except (TypeError, ValueError):
        return default


def get_section(
    raw_config: dict,
    section: str,
    defaults: dict[str, Any],
    validators: dict[str, Callable[[Any], Any]] | None = None,
) -> dict[str, Any]:
    """
    Return a normalized config section by merging raw section with defaults and applying validators.

    Args:
        raw_config: Full merged config dict (e.g. from load_config()).
        section: Top-level key (e.g. "stt", "logging").
        defaults: Default values for the section; merged with raw_config.get(section, {}).
        validators: Optional dict mapping section key -> callable(value) -> value (e.g. clamp int).

    Returns:
        New dict with all keys from defaults, overridden by raw section, then validated.
    """
    validators = validators or {}
    raw_section = dict(raw_config.get(section) or {})
    out = dict(defaults)
    for k, v in raw_section.items():
        if k in out:
            out[k] = v
    for k, validator in validators.items():
        if k in out:
            try:
                out[k] = validator(out[k])
            except (TypeError, ValueError):
                out[k] = defaults[k]
    return out


def get_decoder_section(stt_config: dict) -> dict[str, Any]:
    """
    Return normalized decode-loop overrides from the stt section.
    max_steps is capped at 256, the cache's max-sequence dimension.
    """
    d = stt_config.get("decoder") or {}
    return {
        "max_steps": _clamp_int(d.get("max_steps"), 1, 256, 256),
        "suppress_bias": _parse_float(d.get("suppress_bias"), 0.0, 1.0e6, 1024.0),
    }


def _normalize_models(raw_models: Any) -> dict[str, dict[str, str]]:
    out = {name: dict(files) for name, files in DEFAULT_MODELS.items()}
    if not isinstance(raw_models, dict):
        return out
    for name, files in raw_models.items():
        if name not in out or not isinstance(files, dict):
            continue
        for key in ("encoder", "decoder", "vocab"):
            value = str(files.get(key) or "").strip()
            if value:
                out[name][key] = value
    return out


def get_stt_section(raw_config: dict) -> dict[str, Any]:
    """
    Return normalized stt config from full raw config.
    Unknown model names fall back to "multilingual"; providers is always a list of strings.
    """
    s = raw_config.get("stt") or {}
    model = str(s.get("model", "multilingual")).strip().lower()
    if model not in MODEL_CHOICES:
        model = "multilingual"
    providers = s.get("providers")
    if isinstance(providers, str):
        providers = [providers]
    if not isinstance(providers, list) or not providers:
        providers = ["CPUExecutionProvider"]
    return {
        "model": model,
        "model_dir": str(s.get("model_dir") or "models").strip() or "models",
        "models": _normalize_models(s.get("models")),
        "providers": [str(p) for p in providers if p],
        "decoder": get_decoder_section(s),
    }


__all__ = [
    "DEFAULT_MODELS",
    "MODEL_CHOICES",
    "get_decoder_section",
    "get_section",
    "get_stt_section",
]
