"""wavebpm console logging.

Every module logs through ``log_event`` on the ``wavebpm`` logger. A record
carries a component tag (Detector, Engine, AudioSource, ...) and optional
key=value fields. Floats print with two decimals and exceptions as
``Type: message``, so callers pass raw values instead of pre-formatting.
"""
from __future__ import annotations

import logging
from typing import Any

LOGGER_NAME = "wavebpm"
DEFAULT_TAG = "WaveBPM"
LOG_FORMAT = "%(asctime)s.%(msecs)03d %(levelname)-7s [%(tag)s] %(message)s"
DATE_FORMAT = "%H:%M:%S"


class _DefaultTagFilter(logging.Filter):
    """Records logged without ``log_event`` still need a tag for the format."""

    def filter(self, record: logging.LogRecord) -> bool:
        if not hasattr(record, "tag"):
            record.tag = DEFAULT_TAG
        return True


_logger = logging.getLogger(LOGGER_NAME)
if not _logger.handlers:
    handler = logging.StreamHandler()
    handler.setFormatter(logging.Formatter(LOG_FORMAT, DATE_FORMAT))
    handler.addFilter(_DefaultTagFilter())
    _logger.addHandler(handler)
    _logger.setLevel(logging.INFO)


def _level_value(level: str | None) -> int:
    value = logging.getLevelName((level or "INFO").upper())
    return value if isinstance(value, int) else logging.INFO


def format_field(value: Any) -> str:
    if isinstance(value, bool) or value is None:
        return str(value)
    if isinstance(value, float):
        return f"{value:.2f}"
    if isinstance(value, BaseException):
        text = str(value)
        return f"{type(value).__name__}: {text}" if text else type(value).__name__
    return str(value)


def log_event(level: str, tag: str, message: str, **fields: Any) -> None:
    """Log ``message`` under ``tag``, appending ``| key=value ...`` when fields are given."""
    if fields:
        extras = " ".join(f"{k}={format_field(v)}" for k, v in fields.items())
        message = f"{message} | {extras}"
    _logger.log(_level_value(level), message, extra={"tag": tag or DEFAULT_TAG})


def set_log_level(level: str) -> None:
    _logger.setLevel(_level_value(level))


def get_log_level() -> str:
    return logging.getLevelName(_logger.level)
