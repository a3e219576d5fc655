"""Graph stage: whole-project and per-module dependency graphs."""

from __future__ import annotations

import asyncio
from dataclasses import replace
from pathlib import Path
from typing import List, Optional, Sequence

from ..engines.graphs import FILE_MODE, PROJECT_MODE, GraphRenderer
from ..errors import GraphRenderError
from ..logging import get_logger
from ..models import SymbolEntry
from ..registry import SymbolRegistry

GRAPH_DIR = "graph"
MODULES_DIR = "modules"


class GraphStage:
    """Renders dependency graphs one at a time.

    A failing whole-project graph only disables that graph for the current
    build. A failing module graph raises :class:`GraphRenderError` and ends
    the build, since the renderer's working directory is then in an unknown
    state.
    """

    def __init__(
        self,
        renderer: GraphRenderer,
        registry: SymbolRegistry,
        output_dir: Path,
        *,
        disabled: bool = False,
    ) -> None:
        self.renderer = renderer
        self.registry = registry
        self.output_dir = output_dir
        self.disabled = disabled
        self.disable_main_graph = False
        self.main_graph: Optional[str] = None
        self.logger = get_logger("pipeline.graphs")

    async def render(self, modules: Sequence[SymbolEntry]) -> List[SymbolEntry]:
        if self.disabled:
            self.logger.debug("Graph rendering disabled")
            return list(modules)

        self.disable_main_graph = False
        self.main_graph = None
        await self._render_main_graph(modules)

        rendered: List[SymbolEntry] = []
        for module in modules:
            raw = self.registry.get_raw_module(module.name) or module
            if not raw.has_relations():
                rendered.append(module)
                continue
            rendered.append(await self._render_module_graph(module))
        return rendered

    # ------------------------------------------------------------------
    # Internal helpers

    async def _render_main_graph(self, modules: Sequence[SymbolEntry]) -> None:
        self.logger.info("Process main graph")
        target = self.output_dir / GRAPH_DIR
        try:
            artifact = await self._call(self.renderer.render_graph, list(modules), target, PROJECT_MODE, None)
            self.main_graph = await self._call(self.renderer.read_graph, artifact, "main graph")
        except GraphRenderError as exc:
            self.logger.warning("Main graph disabled for this build: %s", exc)
            self.disable_main_graph = True
            self.main_graph = None

    async def _render_module_graph(self, module: SymbolEntry) -> SymbolEntry:
        self.logger.info("Process module graph %s", module.name)
        target = self.output_dir / MODULES_DIR / module.name
        try:
            artifact = await self._call(self.renderer.render_graph, [module], target, FILE_MODE, module.name)
            graph = await self._call(self.renderer.read_graph, artifact, module.name)
        except GraphRenderError as exc:
            self.logger.error("Graph generation failed for module %s: %s", module.name, exc)
            raise
        return replace(module, graph=graph)

    @staticmethod
    async def _call(func, *args):
        loop = asyncio.get_running_loop()
        return await loop.run_in_executor(None, func, *args)


__all__ = ["GRAPH_DIR", "GraphStage", "MODULES_DIR"]
