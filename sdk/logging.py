"""
Logging helpers for voiceinput components: consistent logger names (voiceinput.<name>)
and per-component level overrides on top of the root configuration.
"""

from __future__ import annotations

import logging

ROOT_LOGGER = "voiceinput"


def get_logger(component: str) -> logging.Logger:
    """
    Return a logger with a consistent name for the given component.
    Use in the inference core so logs appear under voiceinput.<component>.

    Args:
        component: Short name of the component (e.g. "decoder", "engine", "cli").

    Returns:
        logging.Logger with name "voiceinput." + component.
    """
    name = (component or "").strip() or "core"
    return logging.getLogger(f"{ROOT_LOGGER}.{name}")


def set_level(level: str | int, component: str | None = None) -> logging.Logger:
    """
    Set the level of voiceinput.<component>, or of every voiceinput logger when component is None.
    Unknown level names fall back to INFO. Returns the adjusted logger.
    """
    if isinstance(level, str):
        level = getattr(logging, level.strip().upper(), logging.INFO)
    target = get_logger(component) if component else logging.getLogger(ROOT_LOGGER)
    target.setLevel(level)
    return target


__all__ = ["ROOT_LOGGER", "get_logger", "set_level"]
