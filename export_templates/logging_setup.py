"""Logging for the ``export_templates`` package.

Library modules only call :func:`get_logger` with an
``"export_templates.<module>"`` name and never attach handlers, so an
application embedding the engine sees nothing until it configures logging.
The CLI calls :func:`configure_logging` once per process; rendered output goes
to stdout and log records go to stderr so the two never interleave.

The level comes from the CLI's ``--log-level`` option, else the
``EXPORT_TEMPLATES_LOG_LEVEL`` environment variable (``.env`` is loaded
first), else ``WARNING``. The engine logs skipped calls and lookup misses at
DEBUG, per-export selection counts at INFO and limit violations at WARNING.
"""

from __future__ import annotations

import logging
import os
import sys
from typing import IO

_PKG_LOGGER_NAME = "export_templates"
_LEVEL_ENV = "EXPORT_TEMPLATES_LOG_LEVEL"
_DEFAULT_LEVEL = logging.WARNING
_FORMAT = "%(levelname)s %(name)s: %(message)s"

_handler: logging.Handler | None = None


def resolve_level(level: str | int | None = None) -> int:
    """Return a numeric level from ``level`` or the environment.

    Accepts level names in any case and numeric strings. An unknown value
    falls through to the next source instead of failing.
    """

    for candidate in (level, os.getenv(_LEVEL_ENV)):
        if isinstance(candidate, int):
            return candidate
        if not candidate or not candidate.strip():
            continue
        text = candidate.strip().upper()
        if text.isdigit():
            return int(text)
        numeric = logging.getLevelNamesMapping().get(text)
        if numeric is not None:
            return numeric
    return _DEFAULT_LEVEL


def configure_logging(level: str | int | None = None, *, stream: IO[str] | None = None) -> None:
    """Attach the package's single handler, or re-point it on later calls.

    Each call rebinds the handler to ``stream`` (default: the current
    ``sys.stderr``) and resets the level, so repeated CLI invocations in one
    process log to their own stderr.
    """

    global _handler
    logger = logging.getLogger(_PKG_LOGGER_NAME)
    target = stream if stream is not None else sys.stderr

    if _handler is None:
        for h in list(logger.handlers):
            if isinstance(h, logging.NullHandler):
                logger.removeHandler(h)
        _handler = logging.StreamHandler(target)
        _handler.setFormatter(logging.Formatter(_FORMAT))
        logger.addHandler(_handler)
        logger.propagate = False
    else:
        _handler.setStream(target)

    logger.setLevel(resolve_level(level))


def get_logger(name: str) -> logging.Logger:
    """Return ``name``'s logger; the package root stays silent until configured."""

    pkg_logger = logging.getLogger(_PKG_LOGGER_NAME)
    if _handler is None and not pkg_logger.handlers:
        pkg_logger.addHandler(logging.NullHandler())
    return logging.getLogger(name)
