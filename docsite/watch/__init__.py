"""Watch mode: filesystem observation and debounced rebuild selection."""

from .coordinator import RebuildPath, WatchCoordinator, WatchState, classify
from .observer import WatchObserver

__all__ = ["RebuildPath", "WatchCoordinator", "WatchObserver", "WatchState", "classify"]
