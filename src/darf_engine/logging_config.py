"""Logging setup for the withholding engine."""

from __future__ import annotations

import logging

LOGGER_NAME = "darf_engine"
LOG_FORMAT = "%(asctime)s %(levelname)s [%(name)s] %(message)s"


def configure_logging(level: str | int = "INFO") -> logging.Logger:
    """Attach a single stream handler to the package logger.

    Safe to call more than once; the handler is installed only the first time.
    """
    logger = logging.getLogger(LOGGER_NAME)
    logger.setLevel(level)

    if not any(getattr(h, "_darf_engine", False) for h in logger.handlers):
        handler = logging.StreamHandler()
        handler.setFormatter(logging.Formatter(LOG_FORMAT))
        handler._darf_engine = True  # type: ignore[attr-defined]
        logger.addHandler(handler)

    return logger


def reset_logging() -> None:
    """Remove handlers installed by configure_logging (used by tests)."""
    logger = logging.getLogger(LOGGER_NAME)
    for handler in list(logger.handlers):
        if getattr(handler, "_darf_engine", False):
            logger.removeHandler(handler)
