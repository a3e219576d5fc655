"""Base classes for crawler plugins."""

from abc import ABC, abstractmethod
from dataclasses import dataclass, field
from pathlib import Path
from typing import Dict, Sequence

from ..models import CrawlResult


@dataclass
class CrawlOptions:
    """Context handed to a crawler alongside the file list."""

    root: Path
    known_kinds: Dict[str, str] = field(default_factory=dict)


class Crawler(ABC):
    """Contract for crawlers that turn source files into a symbol collection."""

    @abstractmethod
    def crawl(self, files: Sequence[str], options: CrawlOptions) -> CrawlResult:
        """Return every symbol declared in ``files``."""
