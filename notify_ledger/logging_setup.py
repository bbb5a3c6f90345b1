"""Logging for ``notify_ledger``.

Every module logs under the ``notify_ledger`` hierarchy; the pipeline gives
each notification source its own child (``notify_ledger.pipeline.<source>``)
so a run's per-source lines can be filtered or raised to DEBUG on their own.

Only the CLI attaches a handler, through :func:`configure_logging`. Each
record it emits carries the running command, so interleaved runs of
``ingest`` and ``export`` stay distinguishable in a shared log file.
"""

from __future__ import annotations

import logging
import os
import sys
from typing import IO

ROOT = "notify_ledger"
LEVEL_ENV = "NOTIFY_LEDGER_LOG_LEVEL"
DEFAULT_FORMAT = "%(asctime)s %(name)s [%(command)s] %(levelname)s %(message)s"

_handler: logging.Handler | None = None


class _CommandTag(logging.Filter):
    def __init__(self, command: str) -> None:
        super().__init__()
        self.command = command

    def filter(self, record: logging.LogRecord) -> bool:
        record.command = self.command
        return True


def resolve_level(level: int | str | None) -> int:
    """``level`` as a number; falls back to ``NOTIFY_LEDGER_LOG_LEVEL``, then INFO."""

    if level is None or level == "":
        level = os.getenv(LEVEL_ENV) or logging.INFO
    if isinstance(level, int):
        return level
    name = level.strip().upper()
    if name.isdigit():
        return int(name)
    value = logging.getLevelName(name)
    return value if isinstance(value, int) else logging.INFO


def configure_logging(
    level: int | str | None = None,
    *,
    command: str = "-",
    stream: IO[str] | None = None,
) -> logging.Handler:
    """Attach the run's handler to the package logger, replacing a previous one."""

    global _handler
    pkg = logging.getLogger(ROOT)
    reset_logging()

    handler = logging.StreamHandler(stream if stream is not None else sys.stderr)
    handler.setFormatter(logging.Formatter(DEFAULT_FORMAT))
    handler.addFilter(_CommandTag(command))
    pkg.addHandler(handler)
    pkg.setLevel(resolve_level(level))
    pkg.propagate = False
    _handler = handler
    return handler


def reset_logging() -> None:
    """Detach the configured handler and hand records back to the root logger."""

    global _handler
    pkg = logging.getLogger(ROOT)
    if _handler is not None:
        pkg.removeHandler(_handler)
        _handler = None
    pkg.setLevel(logging.NOTSET)
    pkg.propagate = True


def get_logger(name: str) -> logging.Logger:
    if name != ROOT and not name.startswith(ROOT + "."):
        name = f"{ROOT}.{name}"
    return logging.getLogger(name)


def source_logger(source: str) -> logging.Logger:
    return get_logger(f"{ROOT}.pipeline.{source}")


__all__ = ["configure_logging", "get_logger", "reset_logging", "resolve_level", "source_logger"]
