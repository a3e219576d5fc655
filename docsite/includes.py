"""External documentation pages listed in an includes ``summary.json``."""

from __future__ import annotations

import json
import re
from pathlib import Path
from typing import Any, Dict, List, Optional

from .config import SiteConfig
from .engines.files import FileEngine
from .engines.markdown import MarkdownEngine
from .errors import FileAccessError, IncludesError
from .logging import get_logger
from .models import PageDescriptor, PageType

SUMMARY_FILENAME = "summary.json"

_SPACES_RE = re.compile(r"\s+")
_UNSAFE_RE = re.compile(r"[^a-z0-9._-]")


def clean_name(title: str) -> str:
    """Return the lowercase, space-free file name used for a page title."""
    return _UNSAFE_RE.sub("", _SPACES_RE.sub("-", title.strip().lower()))


class IncludesLoader:
    """Turns ``<includes>/summary.json`` into additional pages.

    Each summary item is ``{"title": str, "file": str, "children": [...]}``;
    top-level items become depth-1 pages under ``includes_name`` and their
    children depth-2 pages in a sub folder named after the parent.
    """

    def __init__(self, config: SiteConfig, markdown: MarkdownEngine, files: FileEngine) -> None:
        self.config = config
        self.markdown = markdown
        self.files = files
        self.logger = get_logger("includes")

    @property
    def includes_dir(self) -> Optional[Path]:
        if not self.config.includes:
            return None
        return self.config.root / self.config.includes

    async def load(self) -> List[PageDescriptor]:
        folder = self.includes_dir
        if folder is None:
            return []
        self.logger.info("Adding external markdown files")
        try:
            raw = await self.files.get(folder / SUMMARY_FILENAME)
        except FileAccessError as exc:
            raise IncludesError(f"Error during additional documentation generation: {exc}") from exc
        self.logger.info("Additional documentation: %s file found", SUMMARY_FILENAME)
        items = _parse_summary(raw)

        pages: Dict[str, PageDescriptor] = {}
        base_path = self.config.includes_name
        for item in items:
            title = item["title"]
            filename = clean_name(title)
            page = await self._page(folder, item, base_path, depth=1)
            if page is None or not self._add(pages, page, item):
                continue
            child_path = f"{base_path}/{filename}"
            for child in item.get("children", []):
                child_page = await self._page(folder, child, child_path, depth=2)
                if child_page is not None:
                    self._add(pages, child_page, child)
        return list(pages.values())

    # ------------------------------------------------------------------
    # Internal helpers

    def _add(self, pages: Dict[str, PageDescriptor], page: PageDescriptor, item: Dict[str, Any]) -> bool:
        # Equal titles map to the same output file; the first entry keeps it.
        if page.id in pages:
            self.logger.warning(
                "Skipping '%s' (%s): %s already lists a page written to %s.html",
                item["title"],
                item["file"],
                SUMMARY_FILENAME,
                page.id,
            )
            return False
        pages[page.id] = page
        return True

    async def _page(
        self,
        folder: Path,
        item: Dict[str, Any],
        path: str,
        *,
        depth: int,
    ) -> Optional[PageDescriptor]:
        source = folder / item["file"]
        try:
            text = await self.files.get(source)
        except FileAccessError as exc:
            self.logger.error("%s", exc)
            return None
        filename = clean_name(item["title"])
        return PageDescriptor(
            name=item["title"],
            id=f"{path}/{filename}",
            context="additional-page",
            depth=depth,
            page_type=PageType.INTERNAL,
            path=path,
            filename=filename,
            section="additional-pages",
            body=self.markdown.render(text),
        )


def _parse_summary(raw: str) -> List[Dict[str, Any]]:
    try:
        data = json.loads(raw)
    except json.JSONDecodeError as exc:
        raise IncludesError(f"Invalid {SUMMARY_FILENAME}: {exc}") from exc
    if not isinstance(data, list):
        raise IncludesError(f"{SUMMARY_FILENAME} must contain a list of pages")
    return [_validate_item(item) for item in data]


def _validate_item(item: Any) -> Dict[str, Any]:
    if not isinstance(item, dict) or not isinstance(item.get("title"), str) or not isinstance(item.get("file"), str):
        raise IncludesError(f"{SUMMARY_FILENAME} entries need 'title' and 'file' strings")
    children = item.get("children") or []
    if not isinstance(children, list):
        raise IncludesError(f"'children' of '{item['title']}' must be a list")
    return {"title": item["title"], "file": item["file"], "children": [_validate_item(child) for child in children]}


__all__ = ["IncludesLoader", "SUMMARY_FILENAME", "clean_name"]
