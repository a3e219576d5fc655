"""Logging utilities for docsite builds."""

from __future__ import annotations

import contextvars
import logging
from contextlib import contextmanager
from pathlib import Path
from typing import Iterator

_LOGGER_NAME = "docsite"

# Libraries that report every filesystem event or request at INFO/DEBUG.
_NOISY_LOGGERS = ("watchdog", "uvicorn.access")

_build_kind: contextvars.ContextVar[str | None] = contextvars.ContextVar("docsite_build_kind", default=None)


class BuildContextFilter(logging.Filter):
    """Adds ``record.build`` so handlers can tag lines with the running build."""

    def filter(self, record: logging.LogRecord) -> bool:
        kind = _build_kind.get()
        record.build = f"[{kind}] " if kind else ""
        return True


@contextmanager
def build_context(kind: str) -> Iterator[None]:
    """Tag every record logged inside the block with the build ``kind``."""
    token = _build_kind.set(kind)
    try:
        yield
    finally:
        _build_kind.reset(token)


def get_logger(name: str | None = None) -> logging.Logger:
    """Return a module-scoped logger under the docsite hierarchy."""
    full_name = f"{_LOGGER_NAME}.{name}" if name else _LOGGER_NAME
    return logging.getLogger(full_name)


def configure_logging(
    *, verbose: bool = False, log_file: Path | None = None
) -> logging.Logger:
    """Configure the docsite logger with console output and optional file sink.

    Lines logged while a build runs carry its kind, e.g.
    ``[docsite] INFO [micro] Rendering 4 page(s)``, which keeps interleaved
    watch-mode rebuilds readable. Watchdog and uvicorn access logs stay at
    WARNING unless ``verbose`` is set.
    """
    level = logging.DEBUG if verbose else logging.INFO
    logger = logging.getLogger(_LOGGER_NAME)
    logger.setLevel(level)
    logger.propagate = False

    # Reset handlers so repeated CLI calls do not duplicate output.
    for handler in list(logger.handlers):
        logger.removeHandler(handler)

    context = BuildContextFilter()
    stream_handler = logging.StreamHandler()
    stream_handler.setLevel(level)
    stream_handler.addFilter(context)
    stream_handler.setFormatter(logging.Formatter("[docsite] %(levelname)s %(build)s%(message)s"))
    logger.addHandler(stream_handler)

    if log_file is not None:
        file_handler = logging.FileHandler(log_file, encoding="utf-8")
        file_handler.setLevel(level)
        file_handler.addFilter(context)
        file_handler.setFormatter(
            logging.Formatter("%(asctime)s %(levelname)s %(name)s: %(build)s%(message)s")
        )
        logger.addHandler(file_handler)

    for name in _NOISY_LOGGERS:
        logging.getLogger(name).setLevel(logging.DEBUG if verbose else logging.WARNING)

    return logger


__all__ = ["BuildContextFilter", "build_context", "configure_logging", "get_logger"]
