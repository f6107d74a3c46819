#!/usr/bin/env python3
"""
CLI for one-shot transcription of an audio file with the local Whisper models.
Usage: python transcribe_cmd.py FILE [--model english|multilingual] [--model-dir DIR] [--quiet] [--verbose]
Uses VOICEINPUT_CONFIG or config.yaml for model files and logging. Status and partial
transcripts go to stderr; the final transcript goes to stdout.
"""

from __future__ import annotations

import argparse
import sys
from pathlib import Path

# Project root on path
_ROOT = Path(__file__).resolve().parent
if str(_ROOT) not in sys.path:
    sys.path.insert(0, str(_ROOT))

import numpy as np  # noqa: E402
import soundfile as sf  # noqa: E402

from config import AppConfig, configure_logging, load_config, validate_config  # noqa: E402
from sdk import (  # noqa: E402
    MODEL_CHOICES,
    SAMPLE_RATE,
    RunState,
    TranscriptionError,
    get_logger,
    resample,
    set_level,
    to_mono,
)
from stt.whisper_engine import WhisperEngine  # noqa: E402

logger = get_logger("cli")

STATUS_MESSAGES = {
    RunState.EXTRACTING_FEATURES: "Extracting features...",
    RunState.PROCESSING_ENCODER: "Running encoder...",
    RunState.STARTED_DECODING: "Decoding started...",
    RunState.SWITCHING_MODEL: "Switching to language-specific model...",
}


def load_audio(path: str | Path) -> np.ndarray:
    """Read an audio file as 16 kHz mono float32."""
    data, rate = sf.read(str(path), dtype="float32", always_2d=False)
    samples = to_mono(data)
    if rate != SAMPLE_RATE:
        logger.info("Resampling %s from %d Hz to %d Hz", path, rate, SAMPLE_RATE)
        samples = resample(samples, rate, SAMPLE_RATE)
    return samples


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(description="Transcribe an audio file (first 30 seconds)")
    parser.add_argument("file", help="Audio file readable by libsndfile (wav, flac, ogg)")
    parser.add_argument("--model", choices=MODEL_CHOICES, help="Override config stt.model")
    parser.add_argument("--model-dir", metavar="DIR", help="Override config stt.model_dir")
    parser.add_argument(
        "--quiet", action="store_true", help="Do not print status or partial transcripts"
    )
    parser.add_argument(
        "--verbose", action="store_true", help="Log decoder steps and stage timings (DEBUG)"
    )
    return parser


def main(argv: list[str] | None = None) -> int:
    args = build_parser().parse_args(argv)
    try:
        raw = load_config()
        validate_config(raw)
    except (FileNotFoundError, ValueError) as e:
        print(e, file=sys.stderr)
        return 1
    config = AppConfig(raw)
    configure_logging(config.get_log_level(), config.get_log_path())
    if args.verbose:
        set_level("DEBUG")

    if args.model_dir:
        raw["stt"] = {**(raw.get("stt") or {}), "model_dir": args.model_dir}
    engine = WhisperEngine(raw, model=args.model)

    try:
        samples = load_audio(args.file)
    except (OSError, RuntimeError, ValueError) as e:
        print(f"Cannot read audio {args.file}: {e}", file=sys.stderr)
        return 1
    if samples.shape[0] > SAMPLE_RATE * 30:
        print("Audio is longer than 30 s; only the first 30 s are transcribed.", file=sys.stderr)

    def on_status(state: RunState) -> None:
        if not args.quiet:
            print(STATUS_MESSAGES[state], file=sys.stderr)

    def on_partial(text: str) -> None:
        if not args.quiet:
            print(f"  {text}", file=sys.stderr)

    try:
        with engine:
            text = engine.model.run(samples, on_status, on_partial)
    except (TranscriptionError, FileNotFoundError, ImportError) as e:
        logger.debug("Transcription of %s failed", args.file, exc_info=True)
        print(f"Transcription failed: {e}", file=sys.stderr)
        return 1
    print(text)
    return 0


if __name__ == "__main__":
    sys.exit(main())
