"""Tests for docsite.planner."""

from __future__ import annotations

from pathlib import Path

import pytest

from docsite.engines.files import FileEngine
from docsite.engines.markdown import MarkdownEngine
from docsite.errors import StageError
from docsite.models import (
    CrawlResult,
    Miscellaneous,
    PageType,
    RouteNode,
    SymbolCollection,
    SymbolEntry,
    SymbolRef,
)
from docsite.planner import (
    PagePlanner,
    PlanFlags,
    affected_sections,
    filter_relations,
    pages_for_sections,
)
from docsite.registry import SymbolRegistry

GROUPS = ("modules", "components", "directives", "injectables", "pipes", "classes", "interfaces")


def _entry(name: str, kind: str, file: str = "src/a.py", **kwargs) -> SymbolEntry:
    return SymbolEntry(id=f"{kind}-{name}", name=name, kind=kind, file=file, **kwargs)


def _planner(root: Path) -> PagePlanner:
    return PagePlanner(root, MarkdownEngine(root), FileEngine())


def _ids(pages) -> list[str]:
    return [page.id for page in pages]


def test_empty_collection_keeps_fixed_root_pages(tmp_path: Path) -> None:
    pages = _planner(tmp_path).plan(SymbolCollection(), PlanFlags(disable_coverage=True))

    assert _ids(pages) == ["index", "overview", "modules", "components"]
    assert pages[0].context == "overview"


@pytest.mark.parametrize("group", GROUPS)
def test_section_pages_follow_collection_contents(tmp_path: Path, group: str) -> None:
    kind = {"modules": "module", "components": "component", "directives": "directive",
            "injectables": "injectable", "pipes": "pipe", "classes": "class",
            "interfaces": "interface"}[group]
    planner = _planner(tmp_path)

    empty = planner.plan(SymbolCollection(), PlanFlags(disable_coverage=True))
    collection = SymbolCollection()
    collection.group(group).append(_entry("Thing", kind))
    filled = planner.plan(collection, PlanFlags(disable_coverage=True))

    always = group in {"modules", "components"}
    assert (group in _ids(empty)) is always
    assert group in _ids(filled)
    assert not [page for page in empty if page.section == group and page.depth == 1]
    items = [page for page in filled if page.section == group and page.depth == 1]
    assert [page.name for page in items] == ["Thing"]
    assert items[0].relative_url() == f"{group}/Thing.html"
    assert items[0].page_type is PageType.INTERNAL


def test_canonical_order_and_misc_subgroups(tmp_path: Path) -> None:
    collection = SymbolCollection(
        modules=[_entry("AppModule", "module")],
        pipes=[_entry("DatePipe", "pipe")],
        injectables=[_entry("Api", "injectable")],
        interfaces=[_entry("Shape", "interface")],
        miscellaneous=Miscellaneous(
            functions=[_entry("helper", "function")],
            enumerations=[_entry("Color", "enumeration")],
        ),
        routes=RouteNode(children=[RouteNode(path="home")]),
    )

    pages = _planner(tmp_path).plan(collection, PlanFlags())

    assert _ids(pages) == [
        "index",
        "overview",
        "modules",
        "module-AppModule",
        "components",
        "injectables",
        "injectable-Api",
        "routes",
        "pipes",
        "pipe-DatePipe",
        "interfaces",
        "interface-Shape",
        "miscellaneous",
        "miscellaneous-functions",
        "miscellaneous-enumerations",
        "coverage",
    ]


def test_item_pages_keep_crawl_order(tmp_path: Path) -> None:
    collection = SymbolCollection(classes=[_entry("Zeta", "class"), _entry("Alpha", "class")])

    pages = _planner(tmp_path).plan(collection, PlanFlags())

    assert [page.name for page in pages if page.section == "classes" and page.depth == 1] == ["Zeta", "Alpha"]


def test_root_markdown_pages_come_first(tmp_path: Path) -> None:
    (tmp_path / "README.md").write_text("# Hello\n", encoding="utf-8")
    (tmp_path / "CHANGELOG.md").write_text("## 1.0\n", encoding="utf-8")
    planner = _planner(tmp_path)

    markdown_pages = planner.collect_root_markdowns()
    pages = planner.plan(SymbolCollection(), PlanFlags(root_markdown_pages=tuple(markdown_pages)))

    assert _ids(pages)[:3] == ["index", "changelog", "overview"]
    assert pages[0].context == "readme"
    assert "<h1" in pages[0].body and "Hello" in pages[0].body


def test_module_relations_are_filtered_against_collection(tmp_path: Path) -> None:
    module = _entry(
        "AppModule",
        "module",
        relations={
            "declarations": [SymbolRef("Home", "component"), SymbolRef("Gone", "component")],
            "imports": [SymbolRef("Mystery", "unknown")],
            "providers": [SymbolRef("Api", "injectable"), SymbolRef("Home", "injectable")],
        },
    )
    collection = SymbolCollection(
        modules=[module],
        components=[_entry("Home", "component")],
        injectables=[_entry("Api", "injectable")],
    )

    pages = _planner(tmp_path).plan(collection, PlanFlags())

    planned = next(page.entry for page in pages if page.id == "module-AppModule")
    assert planned.relation("declarations") == [SymbolRef("Home", "component")]
    assert planned.relation("imports") == []
    assert planned.relation("providers") == [SymbolRef("Api", "injectable")]
    # The registry record keeps its raw references.
    assert len(module.relation("declarations")) == 2


def test_filtered_declarations_never_dangle_after_update() -> None:
    registry = SymbolRegistry()
    registry.init(
        CrawlResult(
            modules=[
                _entry(
                    "AppModule",
                    "module",
                    "app/module.py",
                    relations={"declarations": [SymbolRef("Home", "component"), SymbolRef("About", "component")]},
                )
            ],
            components=[_entry("Home", "component", "app/home.py"), _entry("About", "component", "app/about.py")],
        )
    )
    registry.update(CrawlResult(files=("app/about.py",)))

    collection = registry.collection
    known = {(entry.kind, entry.name) for entry in collection.iter_entries()}
    filtered = filter_relations(registry.get_raw_module("AppModule"), known)

    assert filtered["declarations"] == [SymbolRef("Home", "component")]
    for refs in filtered.values():
        for ref in refs:
            assert (ref.kind, ref.name) in known


def test_neighbour_docs_and_templates_are_attached(tmp_path: Path) -> None:
    src = tmp_path / "src"
    src.mkdir()
    (src / "README.md").write_text("Folder *notes*\n", encoding="utf-8")
    (src / "home.html").write_text("<p>home</p>", encoding="utf-8")
    collection = SymbolCollection(
        components=[
            _entry("Home", "component", "src/home.py", template_url="home.html"),
            _entry("Broken", "component", "src/broken.py", template_url="missing.html"),
        ]
    )

    pages = _planner(tmp_path).plan(collection, PlanFlags())

    home = next(page.entry for page in pages if page.name == "Home")
    broken = next(page.entry for page in pages if page.name == "Broken")
    assert "<em>notes</em>" in home.readme
    assert home.template_data == "<p>home</p>"
    assert broken.template_data is None
    assert broken.readme == home.readme
    assert collection.components[0].readme is None


def test_unreadable_neighbour_doc_is_treated_as_absent(tmp_path: Path, monkeypatch) -> None:
    src = tmp_path / "src"
    src.mkdir()
    (src / "README.md").write_text("notes", encoding="utf-8")
    markdown = MarkdownEngine(tmp_path)

    def _fail(path):
        from docsite.errors import FileAccessError

        raise FileAccessError("read", path, "denied")

    monkeypatch.setattr(markdown, "read_neighbour_doc", _fail)
    planner = PagePlanner(tmp_path, markdown, FileEngine())

    pages = planner.plan(SymbolCollection(classes=[_entry("Plain", "class", "src/plain.py")]), PlanFlags())

    plain = next(page for page in pages if page.name == "Plain")
    assert plain.entry.readme is None


def test_affected_sections_always_include_routes() -> None:
    result = CrawlResult(
        components=[_entry("Home", "component", "app/home.py")],
        miscellaneous=Miscellaneous(functions=[_entry("helper", "function", "app/home.py")]),
        files=("app/home.py",),
    )
    previous = SymbolCollection(pipes=[_entry("DatePipe", "pipe", "app/home.py")])

    assert affected_sections(result) == {"routes", "components", "miscellaneous"}
    assert affected_sections(result, previous, result.files) == {
        "routes",
        "components",
        "miscellaneous",
        "pipes",
    }


def test_pages_for_sections_keeps_root_pages(tmp_path: Path) -> None:
    collection = SymbolCollection(
        modules=[_entry("AppModule", "module")],
        classes=[_entry("Plain", "class")],
    )
    pages = _planner(tmp_path).plan(collection, PlanFlags())

    selected = pages_for_sections(pages, {"classes"})

    assert "module-AppModule" not in _ids(selected)
    assert "class-Plain" in _ids(selected)
    assert {"index", "overview", "modules", "components", "classes", "coverage"} <= set(_ids(selected))


def test_duplicate_page_ids_fail_the_plan_stage(tmp_path: Path) -> None:
    collection = SymbolCollection(classes=[_entry("Alpha", "class"), _entry("Alpha", "class")])

    with pytest.raises(StageError, match="duplicate page id class-Alpha"):
        _planner(tmp_path).plan(collection, PlanFlags())
