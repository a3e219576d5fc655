"""Tests for docsite.engines.graphs."""

from __future__ import annotations

import subprocess
from pathlib import Path

import pytest

from docsite.engines.graphs import ARTIFACT_NAME, FILE_MODE, PROJECT_MODE, GraphRenderer, build_dot
from docsite.errors import GraphRenderError
from docsite.models import SymbolEntry, SymbolRef


class RecordingRunner:
    def __init__(self, svg: str = "<svg>graph</svg>", fail: bool = False) -> None:
        self.calls: list[tuple[list[str], Path]] = []
        self.svg = svg
        self.fail = fail

    def __call__(self, args, *, cwd: Path) -> str:
        self.calls.append((list(args), cwd))
        if self.fail:
            raise subprocess.CalledProcessError(1, list(args), stderr="boom")
        (cwd / ARTIFACT_NAME).write_text(self.svg, encoding="utf-8")
        return ""


def _module() -> SymbolEntry:
    return SymbolEntry(
        id="module-AppModule",
        name="AppModule",
        kind="module",
        file="app.py",
        relations={
            "declarations": [SymbolRef("Home", "component")],
            "imports": [SymbolRef("Shared", "module")],
        },
    )


def test_build_dot_describes_relations() -> None:
    dot = build_dot([_module()], label="AppModule")

    assert dot.startswith("digraph dependencies {")
    assert 'label="AppModule";' in dot
    assert '"module:AppModule" -> "component:Home" [label="declarations"];' in dot
    # Imports point towards the importing module.
    assert '"module:Shared" -> "module:AppModule" [label="imports"];' in dot


def test_render_graph_runs_executable_in_output_dir(tmp_path: Path) -> None:
    runner = RecordingRunner()
    renderer = GraphRenderer(executable="dot-bin", runner=runner)

    artifact = renderer.render_graph([_module()], tmp_path / "graph", PROJECT_MODE)

    assert artifact == tmp_path / "graph" / ARTIFACT_NAME
    assert runner.calls == [(["dot-bin", "-Tsvg", "-o", ARTIFACT_NAME, "dependencies.dot"], tmp_path / "graph")]
    assert (tmp_path / "graph" / "dependencies.dot").exists()


def test_render_graph_wraps_runner_failures(tmp_path: Path) -> None:
    renderer = GraphRenderer(runner=RecordingRunner(fail=True))

    with pytest.raises(GraphRenderError, match="AppModule"):
        renderer.render_graph([_module()], tmp_path, FILE_MODE, label="AppModule")


def test_render_graph_rejects_unknown_mode(tmp_path: Path) -> None:
    with pytest.raises(GraphRenderError):
        GraphRenderer(runner=RecordingRunner()).render_graph([], tmp_path, "x")


def test_read_graph_strips_prolog(tmp_path: Path) -> None:
    artifact = tmp_path / ARTIFACT_NAME
    artifact.write_text(
        '<?xml version="1.0"?>\n<!DOCTYPE svg PUBLIC "-//W3C//DTD SVG 1.1//EN">\n<!-- Generated -->\n<svg></svg>\n',
        encoding="utf-8",
    )
    renderer = GraphRenderer(runner=RecordingRunner())

    assert renderer.read_graph(artifact, "AppModule") == "<svg></svg>"
    with pytest.raises(GraphRenderError):
        renderer.read_graph(tmp_path / "missing.svg", "AppModule")
