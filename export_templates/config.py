"""Evaluation limits for the template engine.

Limits are read from the environment so that hosts can tighten or relax them
without code changes:

- ``EXPORT_TEMPLATES_MAX_DEPTH``: maximum nesting of function calls resolved
  through arguments (default ``32``).
- ``EXPORT_TEMPLATES_MAX_LENGTH``: maximum template length in characters
  (default ``20000``).
"""

from __future__ import annotations

import os
from dataclasses import dataclass

from .logging_setup import get_logger

DEFAULT_MAX_DEPTH: int = 32
DEFAULT_MAX_LENGTH: int = 20_000

_logger = get_logger("export_templates.config")


def _positive_int_env(name: str, default: int) -> int:
    raw = os.getenv(name)
    if raw is None or not raw.strip():
        return default
    try:
        value = int(raw.strip())
    except ValueError:
        _logger.warning("ignoring %s=%r: not an integer", name, raw)
        return default
    if value <= 0:
        _logger.warning("ignoring %s=%r: must be positive", name, raw)
        return default
    return value


@dataclass(frozen=True, slots=True)
class EngineLimits:
    """Ceilings that bound the work done by one ``process_template`` call."""

    max_depth: int = DEFAULT_MAX_DEPTH
    max_length: int = DEFAULT_MAX_LENGTH

    def __post_init__(self) -> None:
        for name in ("max_depth", "max_length"):
            val = getattr(self, name)
            if isinstance(val, bool) or not isinstance(val, int) or val <= 0:
                raise ValueError(f"EngineLimits.{name} must be a positive integer")

    @classmethod
    def from_env(cls) -> EngineLimits:
        return cls(
            max_depth=_positive_int_env("EXPORT_TEMPLATES_MAX_DEPTH", DEFAULT_MAX_DEPTH),
            max_length=_positive_int_env("EXPORT_TEMPLATES_MAX_LENGTH", DEFAULT_MAX_LENGTH),
        )
