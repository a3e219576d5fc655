"""Per-build session state and the process-wide fatal error boundary."""

from __future__ import annotations

import asyncio
import logging
import os
import sys
import threading
import time
from dataclasses import dataclass, field
from enum import Enum
from typing import Any, Callable, Dict, Optional

from .logging import get_logger

FATAL_MESSAGE = (
    "Sorry, but there was a problem during parsing or generation of the documentation. "
    "Please run again with --verbose and report the issue."
)


class BuildKind(str, Enum):
    FULL = "full"
    MICRO = "micro"
    ROOT_MARKDOWN = "root-markdown"
    EXTERNAL_DOCS = "external-docs"


@dataclass
class BuildSession:
    """State of one build invocation: start time, kind and completion signal."""

    kind: BuildKind = BuildKind.FULL
    started_at: float = field(default_factory=time.monotonic)
    error: Optional[BaseException] = None
    _done: asyncio.Event = field(default_factory=asyncio.Event, repr=False)

    def elapsed(self) -> float:
        return time.monotonic() - self.started_at

    def complete(self) -> None:
        self._done.set()

    def fail(self, error: BaseException) -> None:
        self.error = error
        self._done.set()

    @property
    def done(self) -> bool:
        return self._done.is_set()

    @property
    def succeeded(self) -> bool:
        return self.done and self.error is None

    async def wait(self) -> Optional[BaseException]:
        await self._done.wait()
        return self.error


def _terminate(status: int) -> None:
    logging.shutdown()
    os._exit(status)


class FatalErrorBoundary:
    """Installs fatal-error hooks for the duration of one build.

    Within the ``with`` block, uncaught exceptions on the main thread, on
    worker threads and inside the event loop log :data:`FATAL_MESSAGE` and
    terminate with status 1. The previous hooks are restored on every exit
    path, so a completed build never reacts to later errors.
    """

    def __init__(
        self,
        loop: asyncio.AbstractEventLoop | None = None,
        *,
        exit_func: Callable[[int], Any] | None = None,
    ) -> None:
        self.loop = loop
        self.exit_func = exit_func or _terminate
        self.logger = get_logger("session")
        self.active = False
        self._previous_excepthook: Callable[..., Any] | None = None
        self._previous_threading_hook: Callable[..., Any] | None = None
        self._previous_loop_handler: Callable[..., Any] | None = None

    def __enter__(self) -> "FatalErrorBoundary":
        if self.loop is None:
            try:
                self.loop = asyncio.get_running_loop()
            except RuntimeError:
                self.loop = None
        self._previous_excepthook = sys.excepthook
        self._previous_threading_hook = threading.excepthook
        sys.excepthook = self._sys_hook
        threading.excepthook = self._thread_hook
        if self.loop is not None:
            self._previous_loop_handler = self.loop.get_exception_handler()
            self.loop.set_exception_handler(self._loop_handler)
        self.active = True
        return self

    def __exit__(self, exc_type, exc, tb) -> bool:
        sys.excepthook = self._previous_excepthook or sys.__excepthook__
        threading.excepthook = self._previous_threading_hook or threading.__excepthook__
        if self.loop is not None:
            self.loop.set_exception_handler(self._previous_loop_handler)
        self.active = False
        return False

    def handle_fatal(self, error: BaseException | None, detail: str = "") -> None:
        self.logger.error(FATAL_MESSAGE)
        if error is not None:
            self.logger.debug("Fatal error: %r", error, exc_info=error)
        elif detail:
            self.logger.debug("Fatal error: %s", detail)
        self.exit_func(1)

    # ------------------------------------------------------------------
    # Hooks

    def _sys_hook(self, exc_type, exc, tb) -> None:
        self.handle_fatal(exc)

    def _thread_hook(self, args: threading.ExceptHookArgs) -> None:
        if args.exc_type is SystemExit:
            return
        self.handle_fatal(args.exc_value)

    def _loop_handler(self, loop: asyncio.AbstractEventLoop, context: Dict[str, Any]) -> None:
        self.handle_fatal(context.get("exception"), context.get("message", ""))


__all__ = ["BuildKind", "BuildSession", "FATAL_MESSAGE", "FatalErrorBoundary"]
