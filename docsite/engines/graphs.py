"""Dependency graph rendering through an external Graphviz executable."""

from __future__ import annotations

import re
import subprocess
from pathlib import Path
from typing import Callable, Iterable, List, Sequence

from ..errors import GraphRenderError
from ..models import MODULE_RELATIONS, SymbolEntry

PROJECT_MODE = "p"
FILE_MODE = "f"

ARTIFACT_NAME = "dependencies.svg"
MANIFEST_NAME = "dependencies.dot"

_RELATION_STYLES = {
    "declarations": ("component", "#ffe0b2"),
    "bootstrap": ("component", "#c8e6c9"),
    "imports": ("module", "#bbdefb"),
    "exports": ("module", "#d1c4e9"),
    "providers": ("injectable", "#f8bbd0"),
}
_PROLOG_RE = re.compile(r"^\s*(<\?xml[^>]*\?>|<!DOCTYPE[^>]*>|<!--.*?-->)\s*", re.DOTALL)


class GraphRenderer:
    """Writes a DOT manifest for modules and turns it into an SVG artifact.

    The renderer works inside ``output_dir`` and is not safe to call
    concurrently for the same directory.
    """

    def __init__(
        self,
        executable: str = "dot",
        runner: Callable[..., str] | None = None,
    ) -> None:
        self.executable = executable
        self._runner = runner or self._default_runner

    def render_graph(
        self,
        modules: Sequence[SymbolEntry],
        output_dir: Path,
        mode: str,
        label: str | None = None,
    ) -> Path:
        if mode not in {PROJECT_MODE, FILE_MODE}:
            raise GraphRenderError(f"Unknown graph mode '{mode}'")
        manifest = output_dir / MANIFEST_NAME
        artifact = output_dir / ARTIFACT_NAME
        try:
            output_dir.mkdir(parents=True, exist_ok=True)
            manifest.write_text(build_dot(modules, label=label), encoding="utf-8")
            self._runner(
                [self.executable, "-Tsvg", "-o", ARTIFACT_NAME, MANIFEST_NAME],
                cwd=output_dir,
            )
        except GraphRenderError:
            raise
        except (OSError, subprocess.CalledProcessError) as exc:
            target = label or "project"
            raise GraphRenderError(f"Graph rendering failed for {target}: {exc}") from exc
        return artifact

    def read_graph(self, artifact_path: Path, label: str) -> str:
        try:
            markup = artifact_path.read_text(encoding="utf-8")
        except (OSError, UnicodeDecodeError) as exc:
            raise GraphRenderError(f"Cannot read graph for {label}: {exc}") from exc
        while True:
            stripped = _PROLOG_RE.sub("", markup, count=1)
            if stripped == markup:
                return markup.strip()
            markup = stripped

    @staticmethod
    def _default_runner(args: Iterable[str], *, cwd: Path) -> str:
        completed = subprocess.run(
            list(args),
            cwd=str(cwd),
            check=True,
            text=True,
            capture_output=True,
        )
        return completed.stdout


def build_dot(modules: Sequence[SymbolEntry], *, label: str | None = None) -> str:
    """Return a Graphviz description of the modules and their relations."""
    lines: List[str] = [
        "digraph dependencies {",
        "  rankdir=LR;",
        '  node [shape=box, style="rounded,filled", fontname="Helvetica"];',
    ]
    if label:
        lines.append(f"  label={_quote(label)};")
    declared: set[str] = set()

    def _node(name: str, kind: str, color: str) -> None:
        key = f"{kind}:{name}"
        if key in declared:
            return
        declared.add(key)
        lines.append(f"  {_quote(key)} [label={_quote(name)}, fillcolor={_quote(color)}];")

    for module in modules:
        _node(module.name, "module", "#bbdefb")
        for relation in MODULE_RELATIONS:
            default_kind, color = _RELATION_STYLES[relation]
            for ref in module.relation(relation):
                kind = ref.kind or default_kind
                _node(ref.name, kind, color)
                source, target = f"module:{module.name}", f"{kind}:{ref.name}"
                if relation == "imports":
                    source, target = target, source
                lines.append(f"  {_quote(source)} -> {_quote(target)} [label={_quote(relation)}];")
    lines.append("}")
    return "\n".join(lines) + "\n"


def _quote(value: str) -> str:
    escaped = value.replace("\\", "\\\\").replace('"', '\\"')
    return f'"{escaped}"'


__all__ = ["ARTIFACT_NAME", "FILE_MODE", "GraphRenderer", "PROJECT_MODE", "build_dot"]
