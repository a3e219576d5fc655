"""Tests for docsite.pipeline.render."""

from __future__ import annotations

import asyncio
import json
from pathlib import Path

import pytest

from docsite.engines.files import FileEngine
from docsite.engines.search import SearchIndex
from docsite.errors import StageError, TemplateError
from docsite.models import PageDescriptor, PageType
from docsite.pipeline import RenderStage


class StubTemplates:
    def __init__(self, fail_for: set[str] | None = None, crash_for: set[str] | None = None) -> None:
        self.fail_for = fail_for or set()
        self.crash_for = crash_for or set()
        self.rendered: list[str] = []

    def render(self, model, page: PageDescriptor) -> str:
        if page.id in self.fail_for:
            raise TemplateError(f"cannot render {page.id}")
        if page.id in self.crash_for:
            raise KeyError(page.id)
        self.rendered.append(page.id)
        return f"<p>{page.name} content</p>"


def _page(name: str, path: str | None = None) -> PageDescriptor:
    return PageDescriptor(
        name=name,
        id=name,
        context=name,
        page_type=PageType.INTERNAL if path else PageType.ROOT,
        path=path,
    )


def _index(output: Path) -> dict:
    return json.loads((output / "js" / "search" / "search_index.json").read_text(encoding="utf-8"))


def test_renders_writes_and_indexes_every_page(tmp_path: Path) -> None:
    index = SearchIndex()
    stage = RenderStage(StubTemplates(), FileEngine(), index, tmp_path)

    asyncio.run(
        stage.render_all(
            [_page("index"), _page("Home", "components")],
            [_page("guide", "additional-documentation")],
            model={},
        )
    )

    assert (tmp_path / "index.html").read_text(encoding="utf-8") == "<p>index content</p>"
    assert (tmp_path / "components" / "Home.html").exists()
    assert (tmp_path / "additional-documentation" / "guide.html").exists()
    assert [doc["url"] for doc in _index(tmp_path)["documents"]] == [
        "additional-documentation/guide.html",
        "components/Home.html",
        "index.html",
    ]


def test_failed_page_does_not_stop_siblings_and_index_is_persisted(tmp_path: Path) -> None:
    templates = StubTemplates(fail_for={"routes"})
    stage = RenderStage(templates, FileEngine(), SearchIndex(), tmp_path)

    with pytest.raises(StageError) as excinfo:
        asyncio.run(stage.render_all([_page("routes"), _page("modules")], model={}))

    assert excinfo.value.stage == "pages"
    assert excinfo.value.failures == ["routes"]
    assert (tmp_path / "modules.html").exists()
    assert not (tmp_path / "routes.html").exists()
    assert [doc["url"] for doc in _index(tmp_path)["documents"]] == ["modules.html"]


def test_unexpected_errors_count_as_failures(tmp_path: Path) -> None:
    stage = RenderStage(StubTemplates(crash_for={"index"}), FileEngine(), SearchIndex(), tmp_path)

    with pytest.raises(StageError) as excinfo:
        asyncio.run(stage.render_all([_page("index")], model={}))

    assert excinfo.value.failures == ["index"]


def test_additional_pages_wait_for_a_successful_main_phase(tmp_path: Path) -> None:
    templates = StubTemplates(fail_for={"index"})
    stage = RenderStage(templates, FileEngine(), SearchIndex(), tmp_path)

    with pytest.raises(StageError):
        asyncio.run(stage.render_all([_page("index")], [_page("guide", "extra")], model={}))

    assert "guide" not in templates.rendered


def test_additional_phase_failures_name_their_phase(tmp_path: Path) -> None:
    templates = StubTemplates(fail_for={"guide"})
    stage = RenderStage(templates, FileEngine(), SearchIndex(), tmp_path)

    with pytest.raises(StageError) as excinfo:
        asyncio.run(stage.render_all([_page("index")], [_page("guide", "extra")], model={}))

    assert excinfo.value.stage == "additional-pages"
