"""Jinja2-backed page renderer."""

from __future__ import annotations

from pathlib import Path
from typing import Any, Dict, List, Mapping

import jinja2
from jinja2 import Environment, FileSystemLoader, TemplateNotFound

from ..errors import TemplateError
from ..models import PageDescriptor

DEFAULT_TEMPLATE = "page.html.j2"


class TemplateEngine:
    """Renders page descriptors against the documentation model."""

    def __init__(self, templates_dir: Path | None = None) -> None:
        self.templates_dir = templates_dir
        self._env: Environment | None = None

    def init(self) -> None:
        """Create the environment; called once before the first render of a build."""
        self._env = self._create_env(self.templates_dir)

    def render(self, model: Mapping[str, Any], page: PageDescriptor) -> str:
        env = self._env or self._create_env(self.templates_dir)
        self._env = env
        template_names = [f"{page.context}.html.j2", DEFAULT_TEMPLATE]
        try:
            template = env.select_template(template_names)
        except TemplateNotFound as exc:
            raise TemplateError(f"No template available for page {page.id}") from exc
        depth = len(page.path.split("/")) if page.path else 0
        context: Dict[str, Any] = dict(model)
        context.update(
            {
                "page": page,
                "entry": page.entry,
                "base_href": "../" * depth,
            }
        )
        try:
            return template.render(**context)
        except jinja2.TemplateError as exc:
            raise TemplateError(f"Failed to render page {page.id}: {exc}") from exc

    @staticmethod
    def _create_env(templates_dir: Path | None) -> Environment:
        directories: List[str] = []
        if templates_dir:
            directories.append(str(templates_dir))
        directories.append(str(Path(__file__).resolve().parent.parent / "templates"))
        loader = FileSystemLoader(list(dict.fromkeys(directories)))
        return Environment(loader=loader, autoescape=True, trim_blocks=True, lstrip_blocks=True)


__all__ = ["TemplateEngine"]
