"""Crawler implementations and discovery utilities."""

from __future__ import annotations

from importlib import metadata
from typing import Callable, Iterable

from .base import CrawlOptions, Crawler
from .python import PythonCrawler

_ENTRY_POINT_GROUP = "docsite.crawlers"

_BUILTIN_FACTORIES: dict[str, Callable[[], Crawler]] = {
    "python": PythonCrawler,
}


def discover_crawler(name: str = "python") -> Crawler:
    """Return the crawler registered under ``name``.

    Built-in crawlers win over entry points that reuse the same name.
    """

    key = name.lower()
    factory = _BUILTIN_FACTORIES.get(key)
    if factory is not None:
        return factory()

    for entry in _iter_entry_points():
        if entry.name.lower() != key:
            continue
        try:
            loaded = entry.load()
        except Exception as exc:  # pragma: no cover - plugin import failures
            raise RuntimeError(f"Failed to load crawler entry point '{entry.name}': {exc}") from exc
        return _coerce_crawler(loaded)

    raise ValueError(f"Unknown crawler requested: {name}")


def _coerce_crawler(obj: object) -> Crawler:
    if isinstance(obj, Crawler):
        return obj
    if isinstance(obj, type) and issubclass(obj, Crawler):
        return obj()
    if callable(obj):
        instance = obj()
        if isinstance(instance, Crawler):
            return instance
    raise TypeError("Crawler entry point must be a Crawler subclass or factory")


def _iter_entry_points() -> Iterable[metadata.EntryPoint]:
    return metadata.entry_points().select(group=_ENTRY_POINT_GROUP)


__all__ = ["CrawlOptions", "Crawler", "PythonCrawler", "discover_crawler"]
