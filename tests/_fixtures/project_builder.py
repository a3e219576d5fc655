"""Helper utilities for constructing temporary projects in tests."""

from __future__ import annotations

import textwrap
from pathlib import Path
from typing import Mapping

from docsite.config import SiteConfig

SAMPLE_SOURCES: dict[str, str] = {
    "app/core.py": '''
        """Core module of the sample app."""

        from docsite_markers import component, injectable, module


        @component(selector="app-root", template_url="root.html")
        class RootComponent:
            """Top level component."""

            def render(self):
                """Render the root."""


        @injectable
        class ApiService:
            def fetch(self):
                pass


        @module(declarations=[RootComponent, "MissingWidget"], providers=[ApiService], bootstrap=[RootComponent])
        class AppModule:
            """Application module."""


        @module()
        class EmptyModule:
            pass


        ROUTES = [
            {"path": "home", "component": "RootComponent", "children": [{"path": "detail"}]},
        ]
    ''',
    "app/root.html": "<div>root</div>\n",
    "app/README.md": "# App folder\n\nNeighbour notes.\n",
    "app/util.py": '''
        from enum import Enum
        from typing import Protocol, TypeAlias

        Identifier: TypeAlias = str
        DEFAULT_LIMIT = 10


        class Color(Enum):
            RED = 1


        class Greeter(Protocol):
            def greet(self) -> str: ...


        class Plain:
            """A plain class."""


        def helper(value):
            """Help out."""
            return value
    ''',
}


class ProjectBuilder:
    """Utility for writing files into a throwaway project."""

    def __init__(self, tmp_path: Path) -> None:
        self.root = tmp_path / "project"
        self.root.mkdir()

    def write(self, files: Mapping[str, str]) -> None:
        """Write `path -> contents` entries into the project."""
        for relative, content in files.items():
            path = self.root / relative
            path.parent.mkdir(parents=True, exist_ok=True)
            normalised = textwrap.dedent(content).lstrip("\n")
            path.write_text(normalised, encoding="utf-8")

    def write_sample(self) -> None:
        self.write(SAMPLE_SOURCES)

    def config(self, **overrides) -> SiteConfig:
        config = SiteConfig(root=self.root)
        for key, value in overrides.items():
            setattr(config, key, value)
        return config

    def path(self, relative: str = "") -> Path:
        return self.root / relative if relative else self.root


__all__ = ["ProjectBuilder", "SAMPLE_SOURCES"]
