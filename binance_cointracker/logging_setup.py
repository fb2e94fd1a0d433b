"""Logging configuration for the ``binance_cointracker`` package.

Entrypoints (the CLI, or a host application) call ``configure_logging`` once;
library modules only ever call ``get_logger(__name__)`` and never attach
handlers themselves. Until configuration happens the package logger carries a
``NullHandler`` so that conversions run silently when used as a library.

The level resolves from the explicit argument, then the
``BINANCE_COINTRACKER_LOG_LEVEL`` environment variable, then ``INFO``.
"""

from __future__ import annotations

import logging
import os
import sys
from typing import IO

_PKG_LOGGER_NAME = "binance_cointracker"
_LEVEL_ENV_VAR = "BINANCE_COINTRACKER_LOG_LEVEL"
_DEFAULT_FORMAT = "%(asctime)s %(name)s %(levelname)s %(message)s"

_handler: logging.Handler | None = None


def _parse_level(level: int | str | None) -> int:
    if isinstance(level, int):
        return level
    if level is None:
        level = os.getenv(_LEVEL_ENV_VAR)
        if not level:
            return logging.INFO
    text = level.strip().upper()
    if text.isdigit():
        return int(text)
    numeric = logging.getLevelName(text)
    if isinstance(numeric, int):
        return numeric
    raise ValueError(f"unknown log level: {level!r}")


def configure_logging(
    level: int | str | None = None,
    *,
    fmt: str | None = None,
    stream: IO[str] | None = None,
) -> logging.Logger:
    """Attach a single ``StreamHandler`` to the package root logger.

    Calling this again replaces the previously installed handler instead of
    stacking a second one, so a CLI invoked repeatedly in one process (as in
    tests) still emits each record once.

    Parameters
    ----------
    level:
        ``int`` level or level name such as ``"DEBUG"``. ``None`` falls back to
        ``BINANCE_COINTRACKER_LOG_LEVEL`` and then ``INFO``.
    fmt:
        Optional format string for the handler.
    stream:
        Destination stream; defaults to the current ``sys.stderr``.
    """

    global _handler

    resolved = _parse_level(level)
    logger = logging.getLogger(_PKG_LOGGER_NAME)

    for h in list(logger.handlers):
        if isinstance(h, logging.NullHandler) or h is _handler:
            logger.removeHandler(h)

    handler = logging.StreamHandler(stream if stream is not None else sys.stderr)
    handler.setLevel(resolved)
    handler.setFormatter(logging.Formatter(fmt or _DEFAULT_FORMAT))

    logger.setLevel(resolved)
    logger.addHandler(handler)
    logger.propagate = False

    _handler = handler
    return logger


def get_logger(name: str) -> logging.Logger:
    """Return ``logging.getLogger(name)``, silencing the package when unconfigured."""

    pkg_logger = logging.getLogger(_PKG_LOGGER_NAME)
    if _handler is None and not pkg_logger.handlers:
        pkg_logger.addHandler(logging.NullHandler())
    return logging.getLogger(name)


__all__ = ["configure_logging", "get_logger"]
