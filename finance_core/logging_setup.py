"""Logging configuration for the ``finance_core`` package.

Library modules only call ``get_logger(__name__)``. Entry points (the CLI, the
Flask app factory) call ``configure_logging`` once at startup.
"""

from __future__ import annotations

import logging
import os
import sys
from typing import IO, Optional, Union

_PKG_LOGGER_NAME = "finance_core"
_DEFAULT_FORMAT = "%(asctime)s %(levelname)s %(name)s: %(message)s"
_CONFIGURED = False


def _parse_name(level: str) -> Optional[int]:
    level = level.strip().upper()
    if level.isdigit():
        return int(level)
    numeric = getattr(logging, level, None)
    return numeric if isinstance(numeric, int) else None


def _parse_level(level: Union[int, str, None]) -> int:
    if isinstance(level, int):
        return level
    if isinstance(level, str):
        parsed = _parse_name(level)
        if parsed is not None:
            return parsed
    env_val = os.getenv("STUDENT_FINANCE_LOG_LEVEL")
    if env_val:
        parsed = _parse_name(env_val)
        if parsed is not None:
            return parsed
    return logging.WARNING


def configure_logging(
    level: Union[int, str, None] = None,
    *,
    fmt: Optional[str] = None,
    stream: IO[str] = sys.stderr,
) -> None:
    """Attach a single stream handler to the package root logger.

    Repeated calls only adjust the level.
    """
    global _CONFIGURED
    root = logging.getLogger(_PKG_LOGGER_NAME)
    root.setLevel(_parse_level(level))
    if _CONFIGURED:
        return
    handler = logging.StreamHandler(stream)
    handler.setFormatter(logging.Formatter(fmt or _DEFAULT_FORMAT))
    root.addHandler(handler)
    _CONFIGURED = True


def get_logger(name: str) -> logging.Logger:
    root = logging.getLogger(_PKG_LOGGER_NAME)
    if not root.handlers:
        root.addHandler(logging.NullHandler())
    return logging.getLogger(name)
