"""
Minimal config wrapper: single place for keys and defaults; dict-like access for existing callers.
Config is merged from root config.yaml and optional config.user.yaml.
"""

from __future__ import annotations

import logging
import os
from pathlib import Path

import yaml

_CONFIG_ROOT = Path(__file__).resolve().parent

LOG_FORMAT = "%(asctime)s %(levelname)s %(name)s %(message)s"


def _deep_merge(base: dict, override: dict) -> dict:
    """Recursively merge override into base. override wins for conflicts. Returns new dict."""
    out = dict(base)
    for k, v in override.items():
        if k in out and isinstance(out[k], dict) and isinstance(v, dict):
            out[k] = _deep_merge(out[k], v)
        else:
            out[k] = v
    return out


def load_yaml_file(path: Path) -> dict:
    """Load a YAML file; return {} if missing or invalid. Single place for safe YAML loading."""
    if not path.exists():
        return {}
    try:
        with open(path, encoding="utf-8") as f:
            data = yaml.safe_load(f)
        return data if isinstance(data, dict) else {}
    except (OSError, yaml.YAMLError):
        return {}


def load_config() -> dict:
    """
    Load merged config: root config.yaml -> config.user.yaml.
    Root config path from VOICEINPUT_CONFIG or project root/config.yaml.
    Relative stt.model_dir and logging.file resolve against that file's directory.
    """
    config_path = os.environ.get("VOICEINPUT_CONFIG", str(_CONFIG_ROOT / "config.yaml"))
    root_path = Path(config_path)
    if not root_path.exists():
        raise FileNotFoundError(f"Config not found: {root_path}")

    merged = load_yaml_file(root_path)
    user_path = root_path.parent / "config.user.yaml"
    if user_path.exists():
        user_data = load_yaml_file(user_path)
        if user_data:
            merged = _deep_merge(merged, user_data)
    return _resolve_paths(merged, root_path.resolve().parent)


def _resolve_paths(config: dict, base: Path) -> dict:
    """Make relative stt.model_dir and logging.file absolute against base (the config file's directory)."""
    for section, key in (("stt", "model_dir"), ("logging", "file")):
        values = config.get(section)
        if not isinstance(values, dict) or not values.get(key):
            continue
        path = Path(str(values[key]))
        if not path.is_absolute():
            values[key] = str(base / path)
    return config


def validate_config(config: dict) -> None:
    """Validate required config values. Raises ValueError with a clear message if invalid."""
    if not config:
        raise ValueError("Config is empty")
    stt = config.get("stt") or {}
    if not isinstance(stt, dict):
        raise ValueError("config.stt must be a mapping")
    model = str(stt.get("model", "multilingual")).strip().lower()
    if model not in ("english", "multilingual"):
        raise ValueError("config.stt.model must be 'english' or 'multilingual'")
    decoder = stt.get("decoder") or {}
    if "max_steps" in decoder:
        try:
            steps = int(decoder["max_steps"])
        except (TypeError, ValueError):
            raise ValueError("config.stt.decoder.max_steps must be an integer") from None
        if not (1 <= steps <= 256):
            raise ValueError("config.stt.decoder.max_steps must be between 1 and 256")
    if "suppress_bias" in decoder:
        try:
            bias = float(decoder["suppress_bias"])
        except (TypeError, ValueError):
            raise ValueError("config.stt.decoder.suppress_bias must be a number") from None
        if bias < 0:
            raise ValueError("config.stt.decoder.suppress_bias must not be negative")


def configure_logging(level: str = "INFO", log_path: str | None = None) -> None:
    """Set up root logging (stream, plus a file handler when log_path is set)."""
    numeric = getattr(logging, str(level).upper(), logging.INFO)
    logging.basicConfig(level=numeric, format=LOG_FORMAT)
    if log_path:
        path = Path(log_path) if os.path.isabs(log_path) else _CONFIG_ROOT / log_path
        path.parent.mkdir(parents=True, exist_ok=True)
        fh = logging.FileHandler(path, encoding="utf-8")
        fh.setLevel(numeric)
        fh.setFormatter(logging.Formatter(LOG_FORMAT))
        logging.getLogger().addHandler(fh)


class AppConfig:
    """
    Wraps the raw YAML config dict. Use get_* for typed access with defaults;
    use .get(section, default) for dict-like access.
    """

    def __init__(self, raw: dict) -> None:
        self._raw = raw if raw is not None else {}

    def __getitem__(self, key: str):
        return self._raw[key]

    def get(self, key: str, default=None):
        return self._raw.get(key, default)

    @property
    def raw(self) -> dict:
        return self._raw

    def get_logging_config(self) -> dict:
        """Logging: level name (upper-cased) and optional file path."""
        from sdk import get_section

        return get_section(
            self._raw,
            "logging",
            {"level": "INFO", "file": None},
            {"level": lambda v: str(v).strip().upper() or "INFO"},
        )

    def get_log_level(self) -> str:
        return self.get_logging_config()["level"]

    def get_log_path(self) -> str | None:
        """Path for log file (root logger). None disables file logging."""
        return self.get_logging_config()["file"]

    def get_stt_config(self) -> dict:
        """STT: selected model, model directory and files, execution providers, decoder overrides."""
        from sdk import get_stt_section

        return get_stt_section(self._raw)
