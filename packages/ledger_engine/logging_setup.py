"""Logging for the ``ledger_engine`` package.

Library modules call ``get_logger("ledger_engine.<module>")`` and never attach
handlers. Output is switched on once per process by an entrypoint through
:func:`configure_logging`, which installs a single stderr handler on the
package logger. Until then the package logger carries only a ``NullHandler``.

The level comes from the explicit argument, else ``LEDGER_ENGINE_LOG_LEVEL``,
else ``WARNING`` (CLI output goes to stdout and should stay readable).
"""

from __future__ import annotations

import logging
import os
import sys
from typing import IO

PACKAGE_LOGGER = "ledger_engine"
LEVEL_ENV_VAR = "LEDGER_ENGINE_LOG_LEVEL"
DEFAULT_FORMAT = "%(asctime)s %(name)s %(levelname)s %(message)s"

_handler: logging.Handler | None = None


def resolve_level(level: int | str | None = None) -> int:
    """Turn an int, a level name or a numeric string into a logging level.

    Unknown names resolve to ``WARNING``.
    """

    if level is None:
        level = os.getenv(LEVEL_ENV_VAR) or logging.WARNING
    if isinstance(level, int):
        return level
    name = level.strip().upper()
    if name.isdigit():
        return int(name)
    value = logging.getLevelName(name)
    return value if isinstance(value, int) else logging.WARNING


def configure_logging(
    level: int | str | None = None,
    *,
    fmt: str | None = None,
    stream: IO[str] | None = None,
) -> None:
    """Attach the package's stderr handler. Later calls are no-ops.

    Parameters
    ----------
    level:
        Level as ``int`` or name; see :func:`resolve_level`.
    fmt:
        Format string, ``DEFAULT_FORMAT`` when omitted.
    stream:
        Destination stream, ``sys.stderr`` at call time when omitted.
    """

    global _handler
    if _handler is not None:
        return

    logger = logging.getLogger(PACKAGE_LOGGER)
    for h in [h for h in logger.handlers if isinstance(h, logging.NullHandler)]:
        logger.removeHandler(h)

    resolved = resolve_level(level)
    _handler = logging.StreamHandler(stream or sys.stderr)
    _handler.setLevel(resolved)
    _handler.setFormatter(logging.Formatter(fmt or DEFAULT_FORMAT))
    logger.addHandler(_handler)
    logger.setLevel(resolved)
    # The package handler is the only sink once configured.
    logger.propagate = False


def reset_logging() -> None:
    """Undo :func:`configure_logging` (used by tests that invoke the CLI)."""

    global _handler
    logger = logging.getLogger(PACKAGE_LOGGER)
    if _handler is not None:
        logger.removeHandler(_handler)
        _handler = None
    logger.setLevel(logging.NOTSET)
    logger.propagate = True


def get_logger(name: str) -> logging.Logger:
    """Return ``logging.getLogger(name)``, keeping the package logger silent by default."""

    pkg = logging.getLogger(PACKAGE_LOGGER)
    if _handler is None and not pkg.handlers:
        pkg.addHandler(logging.NullHandler())
    return logging.getLogger(name)


__all__ = [
    "DEFAULT_FORMAT",
    "LEVEL_ENV_VAR",
    "PACKAGE_LOGGER",
    "configure_logging",
    "get_logger",
    "reset_logging",
    "resolve_level",
]
