"""Logging helpers for pkgdocs; access tokens are masked before anything is emitted."""

from __future__ import annotations

import logging
import re
from pathlib import Path
from typing import TextIO

_LOGGER_NAME = "pkgdocs"

_SECRET_PATTERNS = (
    re.compile(r"(\b(?:Bearer|Basic)\s+)[A-Za-z0-9._~+/=-]+", re.IGNORECASE),
    re.compile(r"(\bgh[pousr]_)[A-Za-z0-9]+"),
    re.compile(r"(\bgithub_pat_)[A-Za-z0-9_]+"),
)


class SecretRedactingFilter(logging.Filter):
    """Replaces credentials in formatted log messages with ``***``."""

    def filter(self, record: logging.LogRecord) -> bool:
        message = record.getMessage()
        redacted = message
        for pattern in _SECRET_PATTERNS:
            redacted = pattern.sub(r"\1***", redacted)
        if redacted != message:
            record.msg = redacted
            record.args = None
        return True


def get_logger(name: str | None = None) -> logging.Logger:
    """Return a logger under the ``pkgdocs`` hierarchy."""
    full_name = f"{_LOGGER_NAME}.{name}" if name else _LOGGER_NAME
    return logging.getLogger(full_name)


def configure_logging(
    *,
    verbose: bool = False,
    quiet: bool = False,
    log_file: Path | None = None,
    stream: TextIO | None = None,
) -> logging.Logger:
    """Attach console (and optional file) handlers to the ``pkgdocs`` logger.

    ``verbose`` shows tier decisions at debug level; ``quiet`` keeps only
    warnings and errors so rendered documents are easy to pipe.
    """
    if verbose:
        level = logging.DEBUG
    elif quiet:
        level = logging.WARNING
    else:
        level = logging.INFO
    logger = logging.getLogger(_LOGGER_NAME)
    logger.setLevel(level)
    logger.propagate = False

    for handler in list(logger.handlers):
        logger.removeHandler(handler)
        handler.close()

    redactor = SecretRedactingFilter()
    stream_handler = logging.StreamHandler(stream)
    stream_handler.setLevel(level)
    stream_handler.addFilter(redactor)
    stream_handler.setFormatter(logging.Formatter("[pkgdocs] %(levelname)s %(message)s"))
    logger.addHandler(stream_handler)

    if log_file is not None:
        log_file.parent.mkdir(parents=True, exist_ok=True)
        file_handler = logging.FileHandler(log_file, encoding="utf-8")
        file_handler.setLevel(logging.DEBUG)
        file_handler.addFilter(redactor)
        file_handler.setFormatter(
            logging.Formatter("%(asctime)s %(levelname)s %(name)s: %(message)s")
        )
        logger.addHandler(file_handler)
        # The file sink records debug detail even when the console is quieter.
        logger.setLevel(logging.DEBUG)

    return logger


__all__ = ["SecretRedactingFilter", "configure_logging", "get_logger"]
