"""In-memory symbol registry backing every build."""

from __future__ import annotations

import copy
from typing import Dict, List, Optional, Sequence, Set

from .logging import get_logger
from .models import (
    ITEM_GROUPS,
    KIND_TO_GROUP,
    MISC_GROUPS,
    CrawlResult,
    Miscellaneous,
    RouteNode,
    SymbolCollection,
    SymbolEntry,
)


class SymbolRegistry:
    """Holds the current structural model of the documented project.

    ``init`` replaces the whole model after a full crawl. ``update`` merges a
    partial crawl keyed by file path: entries of crawled files are replaced in
    place, entries of other files are left untouched.
    """

    def __init__(self) -> None:
        self._collection = SymbolCollection()
        self.logger = get_logger("registry")

    def init(self, result: SymbolCollection) -> None:
        self._collection = SymbolCollection(
            modules=list(result.modules),
            components=list(result.components),
            directives=list(result.directives),
            injectables=list(result.injectables),
            pipes=list(result.pipes),
            classes=list(result.classes),
            interfaces=list(result.interfaces),
            miscellaneous=Miscellaneous(
                variables=list(result.miscellaneous.variables),
                functions=list(result.miscellaneous.functions),
                typealiases=list(result.miscellaneous.typealiases),
                enumerations=list(result.miscellaneous.enumerations),
            ),
            routes=RouteNode(children=list(result.routes.children)),
        )

    def update(self, result: CrawlResult) -> None:
        crawled = result.crawled_files()
        if not crawled:
            return
        self.logger.debug("Merging partial crawl for %d file(s)", len(crawled))
        for group in ITEM_GROUPS + MISC_GROUPS:
            merged = _merge_by_file(self._collection.group(group), result.group(group), crawled)
            target = self._collection.group(group)
            target[:] = merged
        self._collection.routes.children[:] = _merge_routes(
            self._collection.routes.children, result.routes.children, crawled
        )

    # ------------------------------------------------------------------
    # Accessors

    @property
    def modules(self) -> List[SymbolEntry]:
        return self._collection.modules

    @property
    def components(self) -> List[SymbolEntry]:
        return self._collection.components

    @property
    def directives(self) -> List[SymbolEntry]:
        return self._collection.directives

    @property
    def injectables(self) -> List[SymbolEntry]:
        return self._collection.injectables

    @property
    def pipes(self) -> List[SymbolEntry]:
        return self._collection.pipes

    @property
    def classes(self) -> List[SymbolEntry]:
        return self._collection.classes

    @property
    def interfaces(self) -> List[SymbolEntry]:
        return self._collection.interfaces

    @property
    def miscellaneous(self) -> Miscellaneous:
        return self._collection.miscellaneous

    @property
    def routes(self) -> RouteNode:
        return self._collection.routes

    @property
    def collection(self) -> SymbolCollection:
        return self._collection

    def routes_length(self) -> int:
        return self._collection.routes.count()

    def get_raw_module(self, name: str) -> Optional[SymbolEntry]:
        for module in self._collection.modules:
            if module.name == name:
                return module
        return None

    def contains(self, kind: str, name: str) -> bool:
        group = _group_for_kind(kind)
        if group is None:
            return False
        return any(entry.name == name for entry in self._collection.group(group))

    def known_kinds(self) -> Dict[str, str]:
        """Return a name -> kind index of every registered entry."""
        return {entry.name: entry.kind for entry in self._collection.iter_entries()}

    def snapshot(self) -> SymbolCollection:
        return copy.deepcopy(self._collection)


def _group_for_kind(kind: str) -> Optional[str]:
    return KIND_TO_GROUP.get(kind)


def _merge_by_file(
    existing: Sequence[SymbolEntry],
    incoming: Sequence[SymbolEntry],
    crawled: Set[str],
) -> List[SymbolEntry]:
    by_file: Dict[str, List[SymbolEntry]] = {}
    for entry in incoming:
        by_file.setdefault(entry.file, []).append(entry)

    merged: List[SymbolEntry] = []
    spliced: Set[str] = set()
    for entry in existing:
        if entry.file not in crawled:
            merged.append(entry)
            continue
        # Replacements take the slot of the file's first previous entry.
        if entry.file not in spliced:
            merged.extend(by_file.get(entry.file, []))
            spliced.add(entry.file)
    for file, entries in by_file.items():
        if file not in spliced:
            merged.extend(entries)
    return merged


def _merge_routes(
    existing: Sequence[RouteNode],
    incoming: Sequence[RouteNode],
    crawled: Set[str],
) -> List[RouteNode]:
    kept = [route for route in existing if not route.file or route.file not in crawled]
    return kept + list(incoming)


__all__ = ["SymbolRegistry"]
