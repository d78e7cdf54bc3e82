"""Logging for agentbridge.

Everything logs under the ``agentbridge`` logger; modules take a child via
``get_logger("session")``. Two extra levels sit between the standard ones:
VERBOSE (15) for per-turn diagnostics and TRACE (5) for raw backend frames.

Output goes to the configured file (or ``AGENTBRIDGE_LOG``). Without one, and
only when stderr is a terminal, records go to stderr; the UI host usually
pipes stderr, and stray output there is noise.
"""

from __future__ import annotations

import logging
import os
import sys
from typing import TYPE_CHECKING

if TYPE_CHECKING:
    from agentbridge.config.schema import LoggingConfig

TRACE = 5
VERBOSE = 15

logging.addLevelName(TRACE, "TRACE")
logging.addLevelName(VERBOSE, "VERBOSE")

logger = logging.getLogger("agentbridge")

_initialized = False

LOG_FORMAT = "%(asctime)s %(levelname)s [%(name)s]: %(message)s"
DATE_FORMAT = "%H:%M:%S"

# -v count: 0 errors only ... 4 everything
_BY_VERBOSITY = (logging.ERROR, logging.WARNING, logging.INFO, VERBOSE, TRACE)

_BY_NAME = {
    "TRACE": TRACE,
    "DEBUG": logging.DEBUG,
    "VERBOSE": VERBOSE,
    "INFO": logging.INFO,
    "WARN": logging.WARNING,
    "WARNING": logging.WARNING,
    "ERROR": logging.ERROR,
    "CRITICAL": logging.CRITICAL,
}


class _LowercaseLevelFormatter(logging.Formatter):
    def format(self, record: logging.LogRecord) -> str:
        record.levelname = record.levelname.lower()
        return super().format(record)


def resolve_level(config: LoggingConfig | None) -> int:
    """Numeric level for a LoggingConfig. ``verbose`` beats ``level``; INFO if neither."""
    if config is None:
        return logging.INFO
    if config.verbose is not None:
        index = max(0, min(config.verbose, len(_BY_VERBOSITY) - 1))
        return _BY_VERBOSITY[index]
    if not config.level:
        return logging.INFO
    return _BY_NAME.get(config.level.upper(), logging.INFO)


def _log_path(config: LoggingConfig | None) -> str | None:
    path = (config.file if config else None) or os.environ.get("AGENTBRIDGE_LOG")
    return os.path.expanduser(path) if path else None


def _attach(handler: logging.Handler, level: int) -> None:
    handler.setLevel(level)
    handler.setFormatter(_LowercaseLevelFormatter(LOG_FORMAT, datefmt=DATE_FORMAT))
    logger.addHandler(handler)


def setup_logging(config: LoggingConfig | None = None) -> None:
    """Configure the agentbridge logger. Only the first call has an effect."""
    global _initialized
    if _initialized:
        return
    _initialized = True

    level = resolve_level(config)
    logger.setLevel(level)

    path = _log_path(config)
    if path:
        try:
            _attach(logging.FileHandler(path, mode="a", encoding="utf-8"), level)
            return
        except OSError as e:
            print(f"[agentbridge] cannot open log file {path}: {e}", file=sys.stderr)
    if sys.stderr.isatty() or path:
        _attach(logging.StreamHandler(sys.stderr), level)


def get_logger(name: str | None = None) -> logging.Logger:
    """The agentbridge logger, or its child ``agentbridge.<name>``."""
    return logger.getChild(name) if name else logger
