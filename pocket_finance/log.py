"""Logging setup shared by the ledger, storage and outer surfaces.

A single ``pocket_finance`` logger is configured lazily on first use with a
stderr handler; modules ask for child loggers through :func:`get_logger`.
"""

from __future__ import annotations

import logging
import sys

from .config import LOG_LEVEL

ROOT_LOGGER_NAME = "pocket_finance"

_configured = False


def _configure() -> logging.Logger:
    global _configured
    logger = logging.getLogger(ROOT_LOGGER_NAME)
    if _configured:
        return logger

    level = logging.getLevelName(LOG_LEVEL.upper())
    if not isinstance(level, int):
        level = logging.INFO
    logger.setLevel(level)

    if not logger.handlers:
        handler = logging.StreamHandler(sys.stderr)
        handler.setFormatter(
            logging.Formatter(
                "%(asctime)s - %(name)s - [%(levelname)s] - %(message)s",
                datefmt="%Y-%m-%d %H:%M:%S",
            )
        )
        logger.addHandler(handler)

    _configured = True
    return logger


def get_logger(name: str | None = None) -> logging.Logger:
    """Return the package logger, or a child of it for ``name``.

    Names outside the package namespace are nested under it so every
    record flows through the one configured handler.
    """
    root = _configure()
    if not name or name == ROOT_LOGGER_NAME:
        return root
    if name.startswith(ROOT_LOGGER_NAME + "."):
        return logging.getLogger(name)
    return root.getChild(name)
