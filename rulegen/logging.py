"""Logging for rulegen: a ``rulegen`` logger tree with key-redacting handlers."""

from __future__ import annotations

import logging
from pathlib import Path

from .errors import redact_sensitive_data

_LOGGER_NAME = "rulegen"
_CONSOLE_FORMAT = "[rulegen] %(levelname)s %(message)s"
_FILE_FORMAT = "%(asctime)s %(levelname)s %(name)s: %(message)s"


class RedactingFilter(logging.Filter):
    """Rewrites each record so API keys and bearer tokens never reach a sink."""

    def filter(self, record: logging.LogRecord) -> bool:
        message = record.getMessage()
        redacted = redact_sensitive_data(message)
        if redacted != message:
            record.msg = redacted
            record.args = None
        return True


def get_logger(name: str | None = None) -> logging.Logger:
    """Return a module-scoped logger under the rulegen hierarchy."""
    full_name = f"{_LOGGER_NAME}.{name}" if name else _LOGGER_NAME
    return logging.getLogger(full_name)


def _handler(handler: logging.Handler, level: int, fmt: str) -> logging.Handler:
    handler.setLevel(level)
    handler.setFormatter(logging.Formatter(fmt))
    handler.addFilter(RedactingFilter())
    return handler


def configure_logging(
    *, verbose: bool = False, log_file: Path | None = None
) -> logging.Logger:
    """Route rulegen records to stderr and, optionally, a UTF-8 log file.

    Verbose mode lowers the threshold to DEBUG, which includes per-chunk
    progress and every retry. Calling this again replaces the previous
    handlers.
    """
    level = logging.DEBUG if verbose else logging.INFO
    logger = logging.getLogger(_LOGGER_NAME)
    logger.setLevel(level)
    logger.propagate = False

    for existing in list(logger.handlers):
        logger.removeHandler(existing)
        existing.close()

    logger.addHandler(_handler(logging.StreamHandler(), level, _CONSOLE_FORMAT))
    if log_file is not None:
        file_handler = logging.FileHandler(log_file, encoding="utf-8")
        logger.addHandler(_handler(file_handler, level, _FILE_FORMAT))

    return logger


__all__ = ["RedactingFilter", "configure_logging", "get_logger"]
