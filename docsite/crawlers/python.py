"""Crawler that extracts documented symbols from Python sources with ``ast``."""

from __future__ import annotations

import ast
import hashlib
from pathlib import Path
from typing import Callable, Dict, List, Optional, Sequence

from ..logging import get_logger
from ..models import (
    KIND_TO_GROUP,
    MODULE_RELATIONS,
    CrawlResult,
    RouteNode,
    SymbolEntry,
    SymbolRef,
)
from .base import CrawlOptions, Crawler

# Decorator names that promote a class to a richer kind.
_DECORATOR_KINDS = {
    "module": "module",
    "component": "component",
    "directive": "directive",
    "injectable": "injectable",
    "pipe": "pipe",
}
_INTERFACE_BASES = {"Protocol", "TypedDict"}
_ENUM_BASES = {"Enum", "IntEnum", "StrEnum", "Flag", "IntFlag"}
_ROUTE_VARIABLES = {"ROUTES", "routes"}
_RELATION_DEFAULT_KINDS = {"providers": "injectable"}


class PythonCrawler(Crawler):
    """Maps Python declarations onto the documentation symbol model.

    Classes decorated with ``@module``, ``@component``, ``@directive``,
    ``@injectable`` or ``@pipe`` become entries of that kind; ``Protocol`` and
    ``TypedDict`` subclasses are interfaces, ``Enum`` subclasses enumerations.
    Public top-level functions, variables and type aliases land in the
    miscellaneous groups. A top-level ``ROUTES`` list of dicts describes the
    route tree.
    """

    def __init__(self) -> None:
        self.logger = get_logger("crawler.python")

    def crawl(self, files: Sequence[str], options: CrawlOptions) -> CrawlResult:
        root = options.root.resolve()
        result = CrawlResult(files=tuple(_relative(root, Path(file)) for file in files))
        for file in files:
            path = Path(file)
            rel_path = _relative(root, path)
            try:
                tree = ast.parse(path.read_text(encoding="utf-8"), filename=str(path))
            except (OSError, UnicodeDecodeError, SyntaxError) as exc:
                self.logger.warning("Skipping %s: %s", rel_path, exc)
                continue
            self._collect(tree, rel_path, result)

        self._resolve_relation_kinds(result, options.known_kinds)
        return result

    # ------------------------------------------------------------------
    # Collection helpers

    def _collect(self, tree: ast.Module, rel_path: str, result: CrawlResult) -> None:
        # Later top-level bindings of a name shadow earlier ones, as at import time.
        bindings: Dict[str, tuple[str, SymbolEntry]] = {}

        def bind(group: str, entry: SymbolEntry) -> None:
            bindings[entry.name] = (group, entry)

        type_alias_node = getattr(ast, "TypeAlias", None)
        for node in tree.body:
            if isinstance(node, ast.ClassDef):
                entry = self._class_entry(node, rel_path)
                bind(KIND_TO_GROUP[entry.kind], entry)
            elif isinstance(node, (ast.FunctionDef, ast.AsyncFunctionDef)):
                if node.name.startswith("_"):
                    continue
                bind("functions", _entry("function", node.name, rel_path, ast.get_docstring(node) or ""))
            elif type_alias_node is not None and isinstance(node, type_alias_node):
                name = node.name.id  # type: ignore[attr-defined]
                bind("typealiases", _entry("typealias", name, rel_path))
            elif isinstance(node, (ast.Assign, ast.AnnAssign)):
                self._collect_assignment(node, rel_path, result, bind)

        for group, entry in bindings.values():
            result.group(group).append(entry)

    def _class_entry(self, node: ast.ClassDef, rel_path: str) -> SymbolEntry:
        description = ast.get_docstring(node) or ""
        members = _members(node)
        decorator = _kind_decorator(node)
        if decorator is not None:
            kind, call = decorator
            entry = _entry(kind, node.name, rel_path, description, members=members)
            if call is not None:
                _apply_decorator_arguments(entry, call)
            return entry
        base_names = {_name_of(base) for base in node.bases}
        if base_names & _ENUM_BASES:
            return _entry("enumeration", node.name, rel_path, description, members=members)
        if base_names & _INTERFACE_BASES:
            return _entry("interface", node.name, rel_path, description, members=members)
        return _entry("class", node.name, rel_path, description, members=members)

    def _collect_assignment(
        self,
        node: ast.Assign | ast.AnnAssign,
        rel_path: str,
        result: CrawlResult,
        bind: Callable[[str, SymbolEntry], None],
    ) -> None:
        targets = node.targets if isinstance(node, ast.Assign) else [node.target]
        for target in targets:
            if not isinstance(target, ast.Name):
                continue
            name = target.id
            if name in _ROUTE_VARIABLES and isinstance(node.value, ast.List):
                result.routes.children.extend(_routes(node.value, rel_path))
                continue
            if name.startswith("_"):
                continue
            if isinstance(node, ast.AnnAssign) and _name_of(node.annotation) == "TypeAlias":
                bind("typealiases", _entry("typealias", name, rel_path))
                continue
            bind("variables", _entry("variable", name, rel_path))

    @staticmethod
    def _resolve_relation_kinds(result: CrawlResult, known_kinds: Dict[str, str]) -> None:
        local = {entry.name: entry.kind for entry in result.iter_entries()}
        for module in result.modules:
            for relation in MODULE_RELATIONS:
                refs = module.relations.get(relation, [])
                module.relations[relation] = [
                    SymbolRef(
                        name=ref.name,
                        kind=local.get(ref.name)
                        or known_kinds.get(ref.name)
                        or _RELATION_DEFAULT_KINDS.get(relation, "unknown"),
                    )
                    for ref in refs
                ]


def _entry(
    kind: str,
    name: str,
    rel_path: str,
    description: str = "",
    *,
    members: Optional[List[Dict[str, object]]] = None,
) -> SymbolEntry:
    digest = hashlib.sha1(f"{rel_path}:{kind}:{name}".encode("utf-8")).hexdigest()[:12]
    metadata: Dict[str, object] = {}
    if members is not None:
        metadata["members"] = members
    return SymbolEntry(
        id=f"{kind}-{name}-{digest}",
        name=name,
        kind=kind,
        file=rel_path,
        description=description,
        metadata=metadata,
    )


def _kind_decorator(node: ast.ClassDef) -> Optional[tuple[str, Optional[ast.Call]]]:
    for decorator in node.decorator_list:
        call = decorator if isinstance(decorator, ast.Call) else None
        target = call.func if call is not None else decorator
        kind = _DECORATOR_KINDS.get(_name_of(target).lower())
        if kind is not None:
            return kind, call
    return None


def _apply_decorator_arguments(entry: SymbolEntry, call: ast.Call) -> None:
    for keyword in call.keywords:
        if keyword.arg is None:
            continue
        key = keyword.arg
        if entry.kind == "module" and key in MODULE_RELATIONS:
            entry.relations[key] = [
                SymbolRef(name=name, kind="") for name in _names_in(keyword.value)
            ]
        elif key in {"template_url", "templateUrl"}:
            entry.template_url = _literal_str(keyword.value) or ""
        else:
            value = _literal_str(keyword.value)
            if value is not None:
                entry.metadata[key] = value


def _members(node: ast.ClassDef) -> List[Dict[str, object]]:
    members: List[Dict[str, object]] = []
    for child in node.body:
        if isinstance(child, (ast.FunctionDef, ast.AsyncFunctionDef)) and not child.name.startswith("_"):
            members.append({"name": child.name, "documented": bool(ast.get_docstring(child))})
    return members


def _routes(node: ast.List, rel_path: str) -> List[RouteNode]:
    routes: List[RouteNode] = []
    for element in node.elts:
        if not isinstance(element, ast.Dict):
            continue
        route = RouteNode(file=rel_path)
        for key_node, value in zip(element.keys, element.values):
            key = _literal_str(key_node) if key_node is not None else None
            if key == "path":
                route.path = _literal_str(value) or ""
            elif key == "component":
                route.component = _literal_str(value) or _name_of(value) or None
            elif key in {"module", "load_children"}:
                route.module = _literal_str(value) or _name_of(value) or None
            elif key == "children" and isinstance(value, ast.List):
                route.children = _routes(value, rel_path)
        routes.append(route)
    return routes


def _names_in(node: ast.expr) -> List[str]:
    if isinstance(node, (ast.List, ast.Tuple, ast.Set)):
        names: List[str] = []
        for element in node.elts:
            names.extend(_names_in(element))
        return names
    name = _literal_str(node) or _name_of(node)
    return [name] if name else []


def _name_of(node: ast.AST) -> str:
    if isinstance(node, ast.Name):
        return node.id
    if isinstance(node, ast.Attribute):
        return node.attr
    if isinstance(node, ast.Subscript):
        return _name_of(node.value)
    return ""


def _literal_str(node: ast.AST) -> Optional[str]:
    if isinstance(node, ast.Constant) and isinstance(node.value, str):
        return node.value
    return None


def _relative(root: Path, path: Path) -> str:
    resolved = path if path.is_absolute() else root / path
    try:
        return resolved.resolve().relative_to(root).as_posix()
    except ValueError:
        return resolved.as_posix()


__all__ = ["PythonCrawler"]
