"""Derives the ordered page list of a build from the symbol collection."""

from __future__ import annotations

from dataclasses import dataclass, field, replace
from pathlib import Path
from typing import Dict, FrozenSet, Iterable, List, Optional, Sequence, Set, Tuple

from .engines.files import FileEngine
from .engines.markdown import ROOT_MARKDOWNS, MarkdownEngine
from .errors import FileAccessError, StageError
from .logging import get_logger
from .models import (
    KIND_TO_GROUP,
    MISC_GROUPS,
    MODULE_RELATIONS,
    PageDescriptor,
    PageType,
    SymbolCollection,
    SymbolEntry,
    SymbolRef,
)

# Canonical order of the sections that follow the fixed root pages.
SECTIONS: Tuple[str, ...] = (
    "modules",
    "components",
    "directives",
    "injectables",
    "routes",
    "pipes",
    "classes",
    "interfaces",
    "miscellaneous",
    "coverage",
)

# Sections whose root page exists even when the collection is empty.
ALWAYS_PRESENT_SECTIONS: FrozenSet[str] = frozenset({"modules", "components"})

_DECLARABLE_KINDS = frozenset({"module", "component", "directive", "pipe"})
_RELATION_KINDS: Dict[str, FrozenSet[str]] = {
    "declarations": _DECLARABLE_KINDS,
    "bootstrap": _DECLARABLE_KINDS,
    "imports": _DECLARABLE_KINDS,
    "exports": _DECLARABLE_KINDS,
    "providers": frozenset({"injectable"}),
}

_ITEM_CONTEXTS: Dict[str, str] = {
    "modules": "module",
    "components": "component",
    "directives": "directive",
    "injectables": "injectable",
    "pipes": "pipe",
    "classes": "class",
    "interfaces": "interface",
}


@dataclass(frozen=True)
class PlanFlags:
    """Build options the planner honours."""

    disable_coverage: bool = False
    root_markdown_pages: Tuple[PageDescriptor, ...] = ()


@dataclass
class _PlanContext:
    known: Set[Tuple[str, str]]
    readmes: Dict[Path, Optional[str]] = field(default_factory=dict)


class PagePlanner:
    """Plans the pages of a build.

    The plan is a pure function of the collection and the flags, apart from
    the neighbour docs and component templates it reads from disk. Registry
    entries are never mutated; planned pages carry filtered copies.
    """

    def __init__(self, root: Path, markdown: MarkdownEngine, files: FileEngine) -> None:
        self.root = root
        self.markdown = markdown
        self.files = files
        self.logger = get_logger("planner")

    def collect_root_markdowns(self) -> List[PageDescriptor]:
        """Convert the project-root markdown documents into root pages."""
        pages: List[PageDescriptor] = []
        for name in ROOT_MARKDOWNS:
            try:
                body = self.markdown.get_root_markdown(name)
            except FileAccessError as exc:
                self.logger.debug("%s", exc)
                continue
            if name == "readme":
                self.logger.info("README.md file found")
                pages.append(_root_page("index", "readme", body=body))
            else:
                self.logger.info("%s.md file found", name.upper())
                pages.append(_root_page(name, name, body=body))
        return pages

    def plan(self, collection: SymbolCollection, flags: PlanFlags) -> List[PageDescriptor]:
        context = _PlanContext(known={(entry.kind, entry.name) for entry in collection.iter_entries()})
        pages: List[PageDescriptor] = []

        has_readme = any(page.context == "readme" for page in flags.root_markdown_pages)
        pages.extend(flags.root_markdown_pages)
        if not has_readme:
            pages.append(_root_page("index", "overview"))
        pages.append(_root_page("overview", "overview"))

        for section in SECTIONS:
            if section == "routes":
                if collection.routes.count():
                    pages.append(_root_page("routes", "routes", section="routes"))
            elif section == "miscellaneous":
                pages.extend(self._plan_miscellaneous(collection))
            elif section == "coverage":
                if not flags.disable_coverage:
                    pages.append(_root_page("coverage", "coverage", section="coverage"))
            else:
                pages.extend(self._plan_group(section, collection.group(section), context))

        _assert_unique_ids(pages)
        self.logger.debug("Planned %d page(s)", len(pages))
        return pages

    # ------------------------------------------------------------------
    # Internal helpers

    def _plan_group(
        self,
        section: str,
        entries: Sequence[SymbolEntry],
        context: _PlanContext,
    ) -> List[PageDescriptor]:
        if not entries and section not in ALWAYS_PRESENT_SECTIONS:
            return []
        pages = [_root_page(section, section, section=section)]
        for entry in entries:
            prepared = self._prepare_entry(entry, context)
            pages.append(
                PageDescriptor(
                    name=entry.name,
                    id=entry.id,
                    context=_ITEM_CONTEXTS[section],
                    depth=1,
                    page_type=PageType.INTERNAL,
                    path=section,
                    filename=entry.name,
                    section=section,
                    entry=prepared,
                )
            )
        return pages

    def _plan_miscellaneous(self, collection: SymbolCollection) -> List[PageDescriptor]:
        misc = collection.miscellaneous
        if misc.is_empty():
            return []
        pages = [_root_page("miscellaneous", "miscellaneous", section="miscellaneous")]
        for group in MISC_GROUPS:
            if not getattr(misc, group):
                continue
            pages.append(
                PageDescriptor(
                    name=group,
                    id=f"miscellaneous-{group}",
                    context=f"miscellaneous-{group}",
                    depth=1,
                    page_type=PageType.INTERNAL,
                    path="miscellaneous",
                    filename=group,
                    section="miscellaneous",
                )
            )
        return pages

    def _prepare_entry(self, entry: SymbolEntry, context: _PlanContext) -> SymbolEntry:
        changes: Dict[str, object] = {}
        if entry.kind == "module":
            changes["relations"] = filter_relations(entry, context.known)
        readme = self._neighbour_doc(entry, context)
        if readme is not None:
            changes["readme"] = readme
        if entry.kind == "component" and entry.template_url:
            template = self._component_template(entry)
            if template is not None:
                changes["template_data"] = template
        if not changes:
            return entry
        return replace(entry, **changes)

    def _neighbour_doc(self, entry: SymbolEntry, context: _PlanContext) -> Optional[str]:
        source = self._source_path(entry.file)
        key = source.parent
        if key in context.readmes:
            return context.readmes[key]
        html: Optional[str] = None
        # The project README is already the index page.
        if key != self.root and self.markdown.has_neighbour_doc(source):
            try:
                html = self.markdown.render(self.markdown.read_neighbour_doc(source))
            except FileAccessError as exc:
                self.logger.warning("Ignoring neighbour doc of %s: %s", entry.name, exc)
        context.readmes[key] = html
        return html

    def _component_template(self, entry: SymbolEntry) -> Optional[str]:
        template_path = self._source_path(entry.file).parent / entry.template_url
        try:
            return self.files.get_sync(template_path)
        except FileAccessError as exc:
            self.logger.warning("Template of component %s not resolved: %s", entry.name, exc)
            return None

    def _source_path(self, file: str) -> Path:
        path = Path(file)
        return path if path.is_absolute() else self.root / path


def filter_relations(module: SymbolEntry, known: Set[Tuple[str, str]]) -> Dict[str, List[SymbolRef]]:
    """Return the module's relation lists without dangling references."""
    filtered: Dict[str, List[SymbolRef]] = {}
    for relation in MODULE_RELATIONS:
        allowed = _RELATION_KINDS[relation]
        filtered[relation] = [
            ref
            for ref in module.relation(relation)
            if ref.kind in allowed and (ref.kind, ref.name) in known
        ]
    return filtered


def affected_sections(
    result: SymbolCollection,
    previous: Optional[SymbolCollection] = None,
    files: Iterable[str] = (),
) -> Set[str]:
    """Return the sections whose item pages a partial crawl may have changed.

    ``previous`` and ``files`` let sections that lost every entry of a crawled
    file count as affected too. Routes are always included.
    """
    sections: Set[str] = {"routes"}
    for entry in result.iter_entries():
        sections.add(_section_for_kind(entry.kind))
    if previous is not None:
        crawled = set(files)
        for entry in previous.iter_entries():
            if entry.file in crawled:
                sections.add(_section_for_kind(entry.kind))
    return sections


def pages_for_sections(pages: Sequence[PageDescriptor], sections: Set[str]) -> List[PageDescriptor]:
    """Keep every root page plus the item pages of ``sections``."""
    return [
        page
        for page in pages
        if page.page_type is PageType.ROOT or page.section in sections
    ]


def _section_for_kind(kind: str) -> str:
    group = KIND_TO_GROUP.get(kind, "")
    return "miscellaneous" if group in MISC_GROUPS else group


def _root_page(
    name: str,
    context: str,
    *,
    section: Optional[str] = None,
    body: Optional[str] = None,
) -> PageDescriptor:
    return PageDescriptor(
        name=name,
        id=name,
        context=context,
        depth=0,
        page_type=PageType.ROOT,
        section=section,
        body=body,
    )


def _assert_unique_ids(pages: Sequence[PageDescriptor]) -> None:
    seen: Set[str] = set()
    duplicates: List[str] = []
    for page in pages:
        if page.id in seen:
            duplicates.append(page.id)
        seen.add(page.id)
    if duplicates:
        raise StageError("plan", [f"duplicate page id {page_id}" for page_id in duplicates])


__all__ = [
    "ALWAYS_PRESENT_SECTIONS",
    "PagePlanner",
    "PlanFlags",
    "SECTIONS",
    "affected_sections",
    "filter_relations",
    "pages_for_sections",
]
