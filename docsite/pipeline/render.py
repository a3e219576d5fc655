"""Render and index stage: pages to HTML, search index persisted per phase."""

from __future__ import annotations

import asyncio
from pathlib import Path
from typing import Any, List, Mapping, Sequence

from ..engines.files import FileEngine
from ..engines.search import SearchIndex
from ..engines.templates import TemplateEngine
from ..errors import DocsiteError, StageError
from ..logging import get_logger
from ..models import PageDescriptor

MAIN_PHASE = "pages"
ADDITIONAL_PHASE = "additional-pages"


class RenderStage:
    """Renders pages concurrently and keeps the search index in sync.

    A failing page is logged and does not stop its siblings. Once every page
    of a phase has settled the index is persisted, and the phase raises
    :class:`StageError` if any page failed. Additional pages only start after
    the main phase succeeded.
    """

    def __init__(
        self,
        templates: TemplateEngine,
        files: FileEngine,
        search_index: SearchIndex,
        output_dir: Path,
    ) -> None:
        self.templates = templates
        self.files = files
        self.search_index = search_index
        self.output_dir = output_dir
        self.logger = get_logger("pipeline.render")

    async def render_all(
        self,
        pages: Sequence[PageDescriptor],
        additional_pages: Sequence[PageDescriptor] = (),
        *,
        model: Mapping[str, Any],
    ) -> None:
        self.logger.info("Process pages")
        await self._run_phase(MAIN_PHASE, pages, model)
        if additional_pages:
            self.logger.info("Process additional pages")
            await self._run_phase(ADDITIONAL_PHASE, additional_pages, model)

    # ------------------------------------------------------------------
    # Internal helpers

    async def _run_phase(
        self,
        phase: str,
        pages: Sequence[PageDescriptor],
        model: Mapping[str, Any],
    ) -> None:
        results = await asyncio.gather(
            *(self._process_page(page, model) for page in pages),
            return_exceptions=True,
        )
        failures: List[str] = []
        for page, result in zip(pages, results):
            if isinstance(result, asyncio.CancelledError):
                raise result
            if isinstance(result, BaseException):
                self.logger.error("Unexpected error while processing page %s", page.id, exc_info=result)
                failures.append(page.id)
            elif result is False:
                failures.append(page.id)

        await self.search_index.persist(self.output_dir)
        if failures:
            raise StageError(phase, failures)

    async def _process_page(self, page: PageDescriptor, model: Mapping[str, Any]) -> bool:
        url = page.relative_url()
        try:
            rendered = self.templates.render(model, page)
            self.search_index.index_page(page, rendered, url)
            await self.files.write(self.output_dir / url, rendered)
        except DocsiteError as exc:
            self.logger.error("Error during %s page generation: %s", page.name, exc)
            return False
        self.logger.debug("Page %s written to %s", page.id, url)
        return True


__all__ = ["ADDITIONAL_PHASE", "MAIN_PHASE", "RenderStage"]
