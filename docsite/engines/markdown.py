"""Markdown conversion and discovery of hand-written documents."""

from __future__ import annotations

from pathlib import Path
from typing import List, Sequence

import markdown

from ..errors import FileAccessError

ROOT_MARKDOWNS: tuple[str, ...] = ("readme", "changelog", "contributing", "license", "todo")

NEIGHBOUR_DOC = "README.md"

_EXTENSIONS: Sequence[str] = ("extra", "toc", "sane_lists")


class MarkdownEngine:
    """Converts markdown to HTML and locates root and neighbour documents."""

    def __init__(self, root: Path) -> None:
        self.root = root
        self._md = markdown.Markdown(extensions=list(_EXTENSIONS))

    def render(self, text: str) -> str:
        # Markdown instances keep state (toc, footnotes) between conversions.
        self._md.reset()
        return self._md.convert(text)

    def has_neighbour_doc(self, file_path: Path | str) -> bool:
        return self._neighbour_path(file_path).is_file()

    def read_neighbour_doc(self, file_path: Path | str) -> str:
        path = self._neighbour_path(file_path)
        try:
            return path.read_text(encoding="utf-8")
        except (OSError, UnicodeDecodeError) as exc:
            raise FileAccessError("read", path, str(exc)) from exc

    def get_root_markdown(self, name: str) -> str:
        """Return the HTML for ``<NAME>.md`` (or ``<NAME>``) at the project root."""
        path = self._root_markdown_path(name)
        if path is None:
            raise FileAccessError("read", self.root / f"{name.upper()}.md", "file not found")
        try:
            text = path.read_text(encoding="utf-8")
        except (OSError, UnicodeDecodeError) as exc:
            raise FileAccessError("read", path, str(exc)) from exc
        return self.render(text)

    def list_root_markdowns(self) -> List[Path]:
        found: List[Path] = []
        for name in ROOT_MARKDOWNS:
            path = self._root_markdown_path(name)
            if path is not None:
                found.append(path)
        return found

    def has_root_markdowns(self) -> bool:
        return bool(self.list_root_markdowns())

    def _root_markdown_path(self, name: str) -> Path | None:
        for candidate in (f"{name.upper()}.md", name.upper()):
            path = self.root / candidate
            if path.is_file():
                return path
        return None

    def _neighbour_path(self, file_path: Path | str) -> Path:
        path = Path(file_path)
        if not path.is_absolute():
            path = self.root / path
        return path.parent / NEIGHBOUR_DOC


__all__ = ["MarkdownEngine", "ROOT_MARKDOWNS"]
