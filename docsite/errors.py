"""Exception types raised by docsite build stages."""

from __future__ import annotations

from pathlib import Path


class DocsiteError(RuntimeError):
    """Base class for recoverable build failures."""


class FileAccessError(DocsiteError):
    """Raised by the file engine when a read, write or copy fails."""

    def __init__(self, operation: str, path: Path | str, reason: str) -> None:
        self.operation = operation
        self.path = Path(path)
        self.reason = reason
        super().__init__(f"Cannot {operation} {self.path}: {reason}")


class TemplateError(DocsiteError):
    """Raised when a page cannot be rendered from its template."""


class GraphRenderError(DocsiteError):
    """Raised when the external graph renderer fails for a module."""


class SearchIndexError(DocsiteError):
    """Raised when the search index cannot be persisted."""


class IncludesError(DocsiteError):
    """Raised when the external documentation summary cannot be loaded."""


class ExportError(DocsiteError):
    """Raised when the alternate exporter cannot produce its output."""


class StageError(DocsiteError):
    """Raised when a build stage finished with one or more failed items."""

    def __init__(self, stage: str, failures: list[str] | None = None) -> None:
        self.stage = stage
        self.failures = list(failures or [])
        detail = f" ({', '.join(self.failures)})" if self.failures else ""
        super().__init__(f"Stage '{stage}' failed{detail}")


__all__ = [
    "DocsiteError",
    "ExportError",
    "FileAccessError",
    "GraphRenderError",
    "IncludesError",
    "SearchIndexError",
    "StageError",
    "TemplateError",
]
