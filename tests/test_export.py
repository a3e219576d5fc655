"""Tests for docsite.export."""

from __future__ import annotations

import asyncio
import json
from dataclasses import replace
from pathlib import Path

import pytest

from docsite.coverage import calculate_coverage
from docsite.engines.files import FileEngine
from docsite.errors import ExportError
from docsite.export import JSON_FILENAME, JsonExporter, get_exporter
from docsite.models import PageDescriptor, PageType, ProjectInfo, SymbolCollection, SymbolEntry, SymbolRef


def _collection() -> SymbolCollection:
    module = SymbolEntry(
        id="module-App",
        name="AppModule",
        kind="module",
        file="app.py",
        relations={"declarations": [SymbolRef("Gone", "component")]},
    )
    return SymbolCollection(modules=[module])


def _pages(collection: SymbolCollection) -> list[PageDescriptor]:
    planned = replace(collection.modules[0], relations={"declarations": []})
    return [
        PageDescriptor(name="index", id="index", context="overview"),
        PageDescriptor(
            name="AppModule",
            id="module-App",
            context="module",
            depth=1,
            page_type=PageType.INTERNAL,
            path="modules",
            filename="AppModule",
            section="modules",
            entry=planned,
        ),
    ]


def test_export_writes_planned_model(tmp_path: Path) -> None:
    collection = _collection()
    exporter = get_exporter("JSON", FileEngine())

    target = asyncio.run(
        exporter.export(
            tmp_path,
            ProjectInfo(title="Sample", version="1.0"),
            collection,
            _pages(collection),
            calculate_coverage(collection),
        )
    )

    assert target == tmp_path / JSON_FILENAME
    data = json.loads(target.read_text(encoding="utf-8"))
    assert data["project"] == {"title": "Sample", "description": "", "version": "1.0"}
    assert [page["url"] for page in data["pages"]] == ["index.html", "modules/AppModule.html"]
    assert data["modules"][0]["relations"] == {"declarations": []}
    assert data["coverage"]["total"] == 1
    assert data["routes"]["children"] == []


def test_unsupported_format_is_rejected() -> None:
    with pytest.raises(ExportError, match="pdf"):
        get_exporter("pdf", FileEngine())


def test_write_failures_become_export_errors(tmp_path: Path) -> None:
    blocker = tmp_path / "out"
    blocker.write_text("file in the way", encoding="utf-8")
    collection = _collection()

    with pytest.raises(ExportError):
        asyncio.run(JsonExporter(FileEngine()).export(blocker, ProjectInfo(title="x"), collection, []))
