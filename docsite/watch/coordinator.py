"""Debounced watch-mode state machine that picks one rebuild path per batch."""

from __future__ import annotations

import asyncio
from enum import Enum
from pathlib import Path
from typing import Awaitable, Callable, Dict, Iterable, Optional, Set

from ..config import DEFAULT_DEBOUNCE_MS
from ..logging import get_logger
from ..models import ChangeKind, ChangeSet


class RebuildPath(str, Enum):
    FULL = "full"
    MICRO = "micro"
    ROOT_MARKDOWN = "root-markdown"
    EXTERNAL_DOCS = "external-docs"


class WatchState(str, Enum):
    IDLE = "idle"
    DEBOUNCING = "debouncing"
    REBUILDING = "rebuilding"


STRUCTURAL = "structural"
CONTENT = "content"

RebuildCallback = Callable[[RebuildPath, ChangeSet], Awaitable[None]]


def classify(changes: ChangeSet) -> RebuildPath:
    """Pick the rebuild path for a batch of content changes.

    Source files win over root markdown, which wins over external docs.
    """
    if changes.has(ChangeKind.SOURCE):
        return RebuildPath.MICRO
    if changes.has(ChangeKind.ROOT_MARKDOWN):
        return RebuildPath.ROOT_MARKDOWN
    return RebuildPath.EXTERNAL_DOCS


class WatchCoordinator:
    """Batches file events and runs at most one rebuild at a time.

    Structural events (a source file added or removed) and content events
    (a tracked file edited) each have their own debounce timer that restarts
    on every matching event. When a timer fires the accumulated paths become
    one :class:`ChangeSet` handed to ``rebuild``. Events that land while a
    rebuild runs are held back and arm a fresh debounce cycle once it has
    settled. A batch is only forgotten after its rebuild settled.
    """

    def __init__(
        self,
        rebuild: RebuildCallback,
        *,
        root: Path,
        source_suffixes: Iterable[str] = (".py",),
        debounce_ms: int = DEFAULT_DEBOUNCE_MS,
        loop: asyncio.AbstractEventLoop | None = None,
    ) -> None:
        self._rebuild = rebuild
        self.root = root
        self.source_suffixes = tuple(source_suffixes)
        self.delay = debounce_ms / 1000.0
        self._loop = loop
        self._pending: Dict[str, Dict[str, None]] = {STRUCTURAL: {}, CONTENT: {}}
        self._deferred: Dict[str, Dict[str, None]] = {STRUCTURAL: {}, CONTENT: {}}
        self._timers: Dict[str, Optional[asyncio.TimerHandle]] = {STRUCTURAL: None, CONTENT: None}
        self._current: Optional[asyncio.Task] = None
        self._current_path: Optional[RebuildPath] = None
        self._stopped = False
        self.rebuilds = 0
        self.logger = get_logger("watch")

    # ------------------------------------------------------------------
    # Event intake (event loop thread only)

    def on_structural_change(self, path: Path | str) -> None:
        self._record(STRUCTURAL, str(path))

    def on_content_change(self, path: Path | str) -> None:
        self._record(CONTENT, str(path))

    @property
    def state(self) -> WatchState:
        if self._current is not None:
            return WatchState.REBUILDING
        if any(handle is not None for handle in self._timers.values()):
            return WatchState.DEBOUNCING
        return WatchState.IDLE

    @property
    def rebuilding(self) -> Optional[RebuildPath]:
        return self._current_path

    def pending(self, kind: str) -> Set[str]:
        return set(self._pending[kind]) | set(self._deferred[kind])

    async def wait_idle(self) -> None:
        """Wait until no timer is armed and no rebuild runs."""
        while self.state is not WatchState.IDLE:
            if self._current is not None:
                await asyncio.shield(self._current)
            else:
                await asyncio.sleep(self.delay / 2 or 0.001)

    def stop(self) -> None:
        self._stopped = True
        for kind in (STRUCTURAL, CONTENT):
            self._cancel_timer(kind)

    # ------------------------------------------------------------------
    # Internal helpers

    def _record(self, kind: str, path: str) -> None:
        if self._stopped:
            return
        if self._current is not None:
            self.logger.debug("Deferring %s change during rebuild: %s", kind, path)
            self._deferred[kind][path] = None
            return
        self._pending[kind][path] = None
        self._arm(kind)

    def _arm(self, kind: str) -> None:
        self._cancel_timer(kind)
        loop = self._loop or asyncio.get_running_loop()
        self._loop = loop
        self._timers[kind] = loop.call_later(self.delay, self._fire, kind)

    def _cancel_timer(self, kind: str) -> None:
        handle = self._timers[kind]
        if handle is not None:
            handle.cancel()
        self._timers[kind] = None

    def _fire(self, kind: str) -> None:
        self._timers[kind] = None
        if self._current is not None:
            # Re-armed after the running rebuild settles.
            for path in self._pending[kind]:
                self._deferred[kind][path] = None
            self._pending[kind].clear()
            return
        if not self._pending[kind]:
            return

        if kind == STRUCTURAL:
            # A full rebuild covers every pending content change too.
            self._cancel_timer(CONTENT)
            consumed = {STRUCTURAL: list(self._pending[STRUCTURAL]), CONTENT: list(self._pending[CONTENT])}
            changes = ChangeSet.from_paths(
                consumed[STRUCTURAL] + consumed[CONTENT],
                root=self.root,
                source_suffixes=self.source_suffixes,
            )
            path = RebuildPath.FULL
        else:
            consumed = {STRUCTURAL: [], CONTENT: list(self._pending[CONTENT])}
            changes = ChangeSet.from_paths(
                consumed[CONTENT], root=self.root, source_suffixes=self.source_suffixes
            )
            path = classify(changes)

        self.logger.info("Rebuild triggered (%s) by %d changed file(s)", path.value, len(changes.files()))
        self._current_path = path
        self._current = self._loop.create_task(self._run(path, changes, consumed))  # type: ignore[union-attr]

    async def _run(self, path: RebuildPath, changes: ChangeSet, consumed: Dict[str, list]) -> None:
        try:
            self.rebuilds += 1
            await self._rebuild(path, changes)
        except asyncio.CancelledError:
            raise
        except Exception as exc:
            self.logger.error("Rebuild (%s) failed: %s", path.value, exc)
        finally:
            self._settle(consumed)

    def _settle(self, consumed: Dict[str, list]) -> None:
        for kind, paths in consumed.items():
            for path in paths:
                self._pending[kind].pop(path, None)
        self._current = None
        self._current_path = None
        if self._stopped:
            return
        for kind in (STRUCTURAL, CONTENT):
            self._pending[kind].update(self._deferred[kind])
            self._deferred[kind].clear()
            if self._pending[kind]:
                self._arm(kind)


__all__ = [
    "CONTENT",
    "RebuildPath",
    "STRUCTURAL",
    "WatchCoordinator",
    "WatchState",
    "classify",
]
