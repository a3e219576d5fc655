"""Core data models shared across docsite components."""

from dataclasses import dataclass, field, replace
from enum import Enum
from pathlib import Path
from typing import Any, Dict, Iterable, Iterator, List, Optional, Tuple

MODULE_RELATIONS: Tuple[str, ...] = ("declarations", "bootstrap", "imports", "exports", "providers")

# Collections holding entries that get their own item pages, in canonical order.
ITEM_GROUPS: Tuple[str, ...] = (
    "modules",
    "components",
    "directives",
    "injectables",
    "pipes",
    "classes",
    "interfaces",
)

MISC_GROUPS: Tuple[str, ...] = ("functions", "variables", "typealiases", "enumerations")

KIND_TO_GROUP: Dict[str, str] = {
    "module": "modules",
    "component": "components",
    "directive": "directives",
    "injectable": "injectables",
    "pipe": "pipes",
    "class": "classes",
    "interface": "interfaces",
    "variable": "variables",
    "function": "functions",
    "typealias": "typealiases",
    "enumeration": "enumerations",
}


@dataclass(frozen=True)
class SymbolRef:
    """Reference from one entry to another by name and kind."""

    name: str
    kind: str


@dataclass
class SymbolEntry:
    """A crawled symbol with the data its documentation page needs."""

    id: str
    name: str
    kind: str
    file: str
    description: str = ""
    relations: Dict[str, List[SymbolRef]] = field(default_factory=dict)
    template_url: str = ""
    template_data: Optional[str] = None
    readme: Optional[str] = None
    graph: Optional[str] = None
    metadata: Dict[str, Any] = field(default_factory=dict)

    def relation(self, name: str) -> List[SymbolRef]:
        return list(self.relations.get(name, []))

    def has_relations(self) -> bool:
        return any(self.relations.get(name) for name in MODULE_RELATIONS)


@dataclass
class Miscellaneous:
    """Top-level declarations that do not belong to a richer collection."""

    variables: List[SymbolEntry] = field(default_factory=list)
    functions: List[SymbolEntry] = field(default_factory=list)
    typealiases: List[SymbolEntry] = field(default_factory=list)
    enumerations: List[SymbolEntry] = field(default_factory=list)

    def is_empty(self) -> bool:
        return not any(getattr(self, group) for group in MISC_GROUPS)


@dataclass
class RouteNode:
    """A node in the application route tree."""

    path: str = ""
    component: Optional[str] = None
    module: Optional[str] = None
    file: str = ""
    children: List["RouteNode"] = field(default_factory=list)

    def count(self) -> int:
        return sum(1 + child.count() for child in self.children)


@dataclass
class SymbolCollection:
    """The full structural model of a project."""

    modules: List[SymbolEntry] = field(default_factory=list)
    components: List[SymbolEntry] = field(default_factory=list)
    directives: List[SymbolEntry] = field(default_factory=list)
    injectables: List[SymbolEntry] = field(default_factory=list)
    pipes: List[SymbolEntry] = field(default_factory=list)
    classes: List[SymbolEntry] = field(default_factory=list)
    interfaces: List[SymbolEntry] = field(default_factory=list)
    miscellaneous: Miscellaneous = field(default_factory=Miscellaneous)
    routes: RouteNode = field(default_factory=RouteNode)

    def group(self, name: str) -> List[SymbolEntry]:
        if name in MISC_GROUPS:
            return getattr(self.miscellaneous, name)
        return getattr(self, name)

    def iter_entries(self) -> Iterator[SymbolEntry]:
        for name in ITEM_GROUPS + MISC_GROUPS:
            yield from self.group(name)


@dataclass
class CrawlResult(SymbolCollection):
    """Symbols reported by one crawl, along with the files that were crawled."""

    files: Tuple[str, ...] = ()

    def crawled_files(self) -> set[str]:
        files = set(self.files)
        files.update(entry.file for entry in self.iter_entries())
        files.update(child.file for child in self.routes.children if child.file)
        return files


class PageType(str, Enum):
    ROOT = "root"
    INTERNAL = "internal"


@dataclass(frozen=True)
class PageDescriptor:
    """Planning unit describing one output artifact before rendering."""

    name: str
    id: str
    context: str
    depth: int = 0
    page_type: PageType = PageType.ROOT
    path: Optional[str] = None
    filename: Optional[str] = None
    section: Optional[str] = None
    entry: Optional[SymbolEntry] = None
    body: Optional[str] = None

    def relative_url(self) -> str:
        filename = f"{self.filename or self.name}.html"
        return f"{self.path}/{filename}" if self.path else filename

    def with_entry(self, entry: SymbolEntry) -> "PageDescriptor":
        return replace(self, entry=entry)


class ChangeKind(str, Enum):
    SOURCE = "source"
    ROOT_MARKDOWN = "root-markdown"
    EXTERNAL_DOC = "external-doc"


@dataclass(frozen=True)
class ChangeSet:
    """Changed paths since the last completed build, tagged by classification."""

    paths: Tuple[Tuple[str, ChangeKind], ...] = ()

    @classmethod
    def from_paths(
        cls,
        paths: Iterable[Path | str],
        *,
        root: Path,
        source_suffixes: Iterable[str] = (".py",),
    ) -> "ChangeSet":
        suffixes = {suffix.lower() for suffix in source_suffixes}
        resolved_root = root.resolve()
        tagged: List[Tuple[str, ChangeKind]] = []
        for raw in dict.fromkeys(str(path) for path in paths):
            path = Path(raw)
            if path.suffix.lower() in suffixes:
                kind = ChangeKind.SOURCE
            elif path.suffix.lower() == ".md" and path.resolve().parent == resolved_root:
                kind = ChangeKind.ROOT_MARKDOWN
            else:
                kind = ChangeKind.EXTERNAL_DOC
            tagged.append((raw, kind))
        return cls(paths=tuple(tagged))

    def files(self, kind: ChangeKind | None = None) -> List[str]:
        return [path for path, tag in self.paths if kind is None or tag is kind]

    def has(self, kind: ChangeKind) -> bool:
        return any(tag is kind for _, tag in self.paths)

    def __bool__(self) -> bool:
        return bool(self.paths)


@dataclass
class ProjectInfo:
    """Project-level metadata shown on overview pages."""

    title: str
    description: str = ""
    version: Optional[str] = None
