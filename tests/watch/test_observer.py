"""Tests for docsite.watch.observer."""

from __future__ import annotations

from pathlib import Path

from watchdog.events import FileCreatedEvent, FileMovedEvent

from docsite.config import SiteConfig
from docsite.watch import WatchObserver
from docsite.watch.coordinator import CONTENT, STRUCTURAL
from docsite.watch.observer import _EventHandler


class RecordingCoordinator:
    def __init__(self) -> None:
        self.structural: list[str] = []
        self.content: list[str] = []
        self.stopped = False

    def on_structural_change(self, path) -> None:
        self.structural.append(str(path))

    def on_content_change(self, path) -> None:
        self.content.append(str(path))

    def stop(self) -> None:
        self.stopped = True


class ImmediateLoop:
    def call_soon_threadsafe(self, callback, *args) -> None:
        callback(*args)


class RecordingObserver:
    def __init__(self) -> None:
        self.scheduled: list[tuple[str, bool]] = []
        self.started = False
        self.stopped = False

    def schedule(self, handler, path: str, recursive: bool = False) -> None:
        self.scheduled.append((path, recursive))

    def start(self) -> None:
        self.started = True

    def stop(self) -> None:
        self.stopped = True

    def join(self, timeout=None) -> None:
        pass


def _observer(tmp_path: Path, **config_overrides):
    config = SiteConfig(root=tmp_path, **config_overrides)
    coordinator = RecordingCoordinator()
    recorder = RecordingObserver()
    watcher = WatchObserver(coordinator, config, loop=ImmediateLoop(), observer_factory=lambda: recorder)
    return watcher, coordinator, recorder


def test_classify_event(tmp_path: Path) -> None:
    watcher, _, _ = _observer(tmp_path)

    assert watcher.classify_event("created", tmp_path / "pkg" / "a.py") == STRUCTURAL
    assert watcher.classify_event("deleted", tmp_path / "pkg" / "a.py") == STRUCTURAL
    assert watcher.classify_event("modified", tmp_path / "pkg" / "a.py") == CONTENT
    assert watcher.classify_event("created", tmp_path / "README.md") == CONTENT
    assert watcher.classify_event("modified", tmp_path / "docs" / "summary.json") == CONTENT
    assert watcher.classify_event("modified", tmp_path / "image.png") is None


def test_ignored_locations_produce_no_events(tmp_path: Path) -> None:
    watcher, _, _ = _observer(tmp_path)

    assert watcher.classify_event("modified", tmp_path / "documentation" / "index.md") is None
    assert watcher.classify_event("modified", tmp_path / "__pycache__" / "a.py") is None
    assert watcher.classify_event("created", tmp_path / "tests" / "test_a.py") is None


def test_dispatch_routes_events_to_the_coordinator(tmp_path: Path) -> None:
    watcher, coordinator, _ = _observer(tmp_path)
    handler = _EventHandler(watcher)

    handler.on_created(FileCreatedEvent(str(tmp_path / "pkg" / "a.py")))
    handler.on_moved(FileMovedEvent(str(tmp_path / "old.md"), str(tmp_path / "new.md")))
    watcher.dispatch("modified", str(tmp_path / "notes.txt"))

    assert coordinator.structural == [str(tmp_path / "pkg" / "a.py")]
    assert coordinator.content == [str(tmp_path / "old.md"), str(tmp_path / "new.md")]


def test_start_schedules_recursive_and_flat_roots(tmp_path: Path) -> None:
    (tmp_path / "pkg").mkdir()
    (tmp_path / "docs").mkdir()
    watcher, coordinator, recorder = _observer(tmp_path)

    watcher.start([tmp_path / "pkg", tmp_path / "docs", tmp_path / "missing"], flat_roots=[tmp_path])

    assert recorder.started
    assert recorder.scheduled == [
        (str(tmp_path / "pkg"), True),
        (str(tmp_path / "docs"), True),
        (str(tmp_path), False),
    ]

    watcher.stop()

    assert recorder.stopped
    assert coordinator.stopped


def test_flat_root_covered_by_recursive_root_is_skipped(tmp_path: Path) -> None:
    watcher, _, recorder = _observer(tmp_path)

    watcher.start(flat_roots=[tmp_path])

    assert recorder.scheduled == [(str(tmp_path), True)]


def test_excluded_sources_produce_no_events(tmp_path: Path) -> None:
    (tmp_path / ".gitignore").write_text("scratch/\n", encoding="utf-8")
    watcher, coordinator, _ = _observer(tmp_path, sources=["pkg"], exclude_paths=["pkg/generated/"])

    assert watcher.classify_event("modified", tmp_path / "pkg" / "generated" / "b.py") is None
    assert watcher.classify_event("created", tmp_path / "pkg" / "generated" / "b.py") is None
    assert watcher.classify_event("modified", tmp_path / "scratch" / "notes.md") is None
    assert watcher.classify_event("modified", tmp_path / "scripts" / "tool.py") is None
    assert watcher.classify_event("modified", tmp_path / "pkg" / "a.py") == CONTENT

    watcher.dispatch("modified", str(tmp_path / "pkg" / "generated" / "b.py"))

    assert coordinator.content == []
