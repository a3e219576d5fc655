"""Bridges watchdog filesystem events onto the watch coordinator."""

from __future__ import annotations

import asyncio
from pathlib import Path
from typing import Callable, Iterable, List, Optional

from watchdog.events import FileSystemEvent, FileSystemEventHandler
from watchdog.observers import Observer

from ..config import SiteConfig
from ..logging import get_logger
from ..scanner import SourceScanner
from .coordinator import CONTENT, STRUCTURAL, WatchCoordinator

# Non-source files whose edits count as content changes.
DOC_SUFFIXES = (".md", ".json")


class _EventHandler(FileSystemEventHandler):
    def __init__(self, observer: "WatchObserver") -> None:
        super().__init__()
        self.observer = observer

    def on_created(self, event: FileSystemEvent) -> None:
        if not event.is_directory:
            self.observer.dispatch("created", event.src_path)

    def on_deleted(self, event: FileSystemEvent) -> None:
        if not event.is_directory:
            self.observer.dispatch("deleted", event.src_path)

    def on_modified(self, event: FileSystemEvent) -> None:
        if not event.is_directory:
            self.observer.dispatch("modified", event.src_path)

    def on_moved(self, event: FileSystemEvent) -> None:
        if not event.is_directory:
            self.observer.dispatch("deleted", event.src_path)
            self.observer.dispatch("created", event.dest_path)


class WatchObserver:
    """Runs a watchdog observer and forwards relevant events to the coordinator.

    Watchdog delivers events on its own thread; they reach the coordinator
    through ``loop.call_soon_threadsafe``.
    """

    def __init__(
        self,
        coordinator: WatchCoordinator,
        config: SiteConfig,
        *,
        loop: asyncio.AbstractEventLoop | None = None,
        observer_factory: Callable[[], object] = Observer,
        scanner: SourceScanner | None = None,
    ) -> None:
        self.coordinator = coordinator
        self.config = config
        self.scanner = scanner or SourceScanner(config)
        self._loop = loop
        self._observer_factory = observer_factory
        self._observer: Optional[object] = None
        self.logger = get_logger("watch.observer")

    def start(self, roots: Iterable[Path] | None = None, flat_roots: Iterable[Path] = ()) -> None:
        """Watch ``roots`` recursively and ``flat_roots`` without sub folders."""
        self._loop = self._loop or asyncio.get_running_loop()
        observer = self._observer_factory()
        handler = _EventHandler(self)
        scheduled: List[Path] = []
        for root in self._watch_roots(roots):
            self._schedule(observer, handler, root, recursive=True, scheduled=scheduled)
        for root in flat_roots:
            if any(parent == root or parent in root.parents for parent in scheduled):
                continue
            self._schedule(observer, handler, root, recursive=False, scheduled=scheduled)
        observer.start()  # type: ignore[attr-defined]
        self._observer = observer

    def stop(self) -> None:
        if self._observer is not None:
            self._observer.stop()  # type: ignore[attr-defined]
            self._observer.join(timeout=2)  # type: ignore[attr-defined]
            self._observer = None
        self.coordinator.stop()

    def classify_event(self, event_type: str, path: Path | str) -> Optional[str]:
        """Return STRUCTURAL, CONTENT or None when the event is irrelevant."""
        target = Path(path)
        if self.scanner.is_excluded(target):
            return None
        is_source = self.scanner.is_tracked(target)
        if is_source and event_type in {"created", "deleted"}:
            return STRUCTURAL
        if is_source or target.suffix.lower() in DOC_SUFFIXES:
            return CONTENT
        return None

    def dispatch(self, event_type: str, path: str) -> None:
        kind = self.classify_event(event_type, path)
        if kind is None or self._loop is None:
            return
        callback = (
            self.coordinator.on_structural_change
            if kind == STRUCTURAL
            else self.coordinator.on_content_change
        )
        self._loop.call_soon_threadsafe(callback, path)

    # ------------------------------------------------------------------
    # Internal helpers

    def _schedule(
        self,
        observer: object,
        handler: _EventHandler,
        root: Path,
        *,
        recursive: bool,
        scheduled: List[Path],
    ) -> None:
        if not root.exists():
            self.logger.warning("Watch root not found: %s", root)
            return
        observer.schedule(handler, str(root), recursive=recursive)  # type: ignore[attr-defined]
        scheduled.append(root)
        self.logger.info("Watching %s", root)

    def _watch_roots(self, roots: Iterable[Path] | None) -> List[Path]:
        if roots is not None:
            return list(roots)
        return [self.config.root]


__all__ = ["DOC_SUFFIXES", "WatchObserver"]
