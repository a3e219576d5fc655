"""Documentation coverage report."""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Dict, List

from .models import SymbolCollection, SymbolEntry

_LOW = 40
_MEDIUM = 75


@dataclass
class CoverageRow:
    file: str
    kind: str
    name: str
    documented: int
    total: int

    @property
    def percent(self) -> int:
        if not self.total:
            return 0
        return int(self.documented * 100 / self.total)

    @property
    def status(self) -> str:
        if self.percent < _LOW:
            return "low"
        if self.percent < _MEDIUM:
            return "medium"
        return "good"


@dataclass
class CoverageReport:
    rows: List[CoverageRow] = field(default_factory=list)

    @property
    def documented(self) -> int:
        return sum(row.documented for row in self.rows)

    @property
    def total(self) -> int:
        return sum(row.total for row in self.rows)

    @property
    def percent(self) -> int:
        if not self.total:
            return 0
        return int(self.documented * 100 / self.total)

    def to_dict(self) -> Dict[str, object]:
        return {
            "percent": self.percent,
            "documented": self.documented,
            "total": self.total,
            "files": [
                {
                    "file": row.file,
                    "kind": row.kind,
                    "name": row.name,
                    "documented": row.documented,
                    "total": row.total,
                    "percent": row.percent,
                }
                for row in self.rows
            ],
        }


def calculate_coverage(collection: SymbolCollection) -> CoverageReport:
    """Count documented symbols and members for every entry of the collection."""
    rows = [_row(entry) for entry in collection.iter_entries()]
    rows.sort(key=lambda row: (row.file, row.name))
    return CoverageReport(rows=rows)


def _row(entry: SymbolEntry) -> CoverageRow:
    members = entry.metadata.get("members") or []
    documented = 1 if entry.description.strip() else 0
    documented += sum(1 for member in members if member.get("documented"))
    return CoverageRow(
        file=entry.file,
        kind=entry.kind,
        name=entry.name,
        documented=documented,
        total=1 + len(members),
    )


__all__ = ["CoverageReport", "CoverageRow", "calculate_coverage"]
