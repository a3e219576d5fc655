"""Alternate exporters that replace HTML rendering."""

from __future__ import annotations

import json
from dataclasses import asdict
from pathlib import Path
from typing import Any, Dict, Optional, Sequence

from .coverage import CoverageReport
from .engines.files import FileEngine
from .errors import ExportError, FileAccessError
from .logging import get_logger
from .models import ITEM_GROUPS, PageDescriptor, ProjectInfo, SymbolCollection

JSON_FILENAME = "documentation.json"


class JsonExporter:
    """Writes the planned documentation model as a single JSON document."""

    format = "json"

    def __init__(self, files: FileEngine) -> None:
        self.files = files
        self.logger = get_logger("export.json")

    def build_payload(
        self,
        project: ProjectInfo,
        collection: SymbolCollection,
        pages: Sequence[PageDescriptor],
        coverage: Optional[CoverageReport] = None,
    ) -> Dict[str, Any]:
        payload: Dict[str, Any] = {
            "project": asdict(project),
            "pages": [
                {
                    "id": page.id,
                    "name": page.name,
                    "context": page.context,
                    "depth": page.depth,
                    "url": page.relative_url(),
                }
                for page in pages
            ],
        }
        # Planned entries carry the filtered relations and attached docs.
        planned = {page.entry.id: page.entry for page in pages if page.entry is not None}
        for group in ITEM_GROUPS:
            payload[group] = [asdict(planned.get(entry.id, entry)) for entry in collection.group(group)]
        payload["miscellaneous"] = asdict(collection.miscellaneous)
        payload["routes"] = asdict(collection.routes)
        if coverage is not None:
            payload["coverage"] = coverage.to_dict()
        return payload

    async def export(
        self,
        output_dir: Path,
        project: ProjectInfo,
        collection: SymbolCollection,
        pages: Sequence[PageDescriptor],
        coverage: Optional[CoverageReport] = None,
    ) -> Path:
        payload = self.build_payload(project, collection, pages, coverage)
        target = output_dir / JSON_FILENAME
        try:
            await self.files.write(target, json.dumps(payload, indent=2))
        except FileAccessError as exc:
            raise ExportError(f"Cannot export documentation: {exc}") from exc
        self.logger.info("Documentation exported to %s", target)
        return target


_EXPORTERS = {JsonExporter.format: JsonExporter}


def get_exporter(export_format: str, files: FileEngine) -> JsonExporter:
    """Return the exporter for ``export_format``."""
    factory = _EXPORTERS.get(export_format.lower())
    if factory is None:
        supported = ", ".join(sorted(_EXPORTERS))
        raise ExportError(f"Unsupported export format '{export_format}' (supported: {supported})")
    return factory(files)


__all__ = ["JSON_FILENAME", "JsonExporter", "get_exporter"]
