"""Search index builder persisted alongside the rendered pages."""

from __future__ import annotations

import asyncio
import html
import json
import re
from pathlib import Path
from typing import Dict, Iterable, List

from ..errors import SearchIndexError
from ..models import PageDescriptor

_INDEX_VERSION = 1
_INDEX_DIR = Path("js") / "search"
_TAG_RE = re.compile(r"<(script|style)\b.*?</\1>|<[^>]+>", re.IGNORECASE | re.DOTALL)
_SPACE_RE = re.compile(r"\s+")
_TOKEN_RE = re.compile(r"[a-z0-9_]{2,}")


class SearchIndex:
    """Collects rendered page text keyed by URL and persists it as JSON.

    Indexing the same URL twice replaces the earlier document, so the index
    survives micro-rebuilds that only re-render part of the site.
    """

    def __init__(self) -> None:
        self._documents: Dict[str, Dict[str, str]] = {}

    def index_page(self, page: PageDescriptor, rendered_text: str, url: str) -> None:
        body = _plain_text(rendered_text)
        self._documents[url] = {
            "url": url,
            "title": page.name,
            "context": page.context,
            "body": body,
        }

    def clear(self) -> None:
        self._documents.clear()

    def urls(self) -> Iterable[str]:
        return self._documents.keys()

    def search(self, term: str) -> List[str]:
        needle = term.lower()
        return [url for url, doc in self._documents.items() if needle in doc["body"].lower()]

    def payload(self) -> Dict[str, object]:
        documents = [self._documents[url] for url in sorted(self._documents)]
        terms: Dict[str, List[str]] = {}
        for doc in documents:
            for token in sorted(set(_TOKEN_RE.findall(doc["body"].lower()))):
                terms.setdefault(token, []).append(doc["url"])
        return {"version": _INDEX_VERSION, "documents": documents, "terms": terms}

    async def persist(self, output_dir: Path) -> Path:
        loop = asyncio.get_running_loop()
        return await loop.run_in_executor(None, self.persist_sync, output_dir)

    def persist_sync(self, output_dir: Path) -> Path:
        target_dir = output_dir / _INDEX_DIR
        payload = json.dumps(self.payload(), indent=2, sort_keys=True)
        try:
            target_dir.mkdir(parents=True, exist_ok=True)
            (target_dir / "search_index.json").write_text(payload, encoding="utf-8")
            (target_dir / "search_index.js").write_text(
                f"var DOCSITE_SEARCH_INDEX = {payload};\n", encoding="utf-8"
            )
        except OSError as exc:
            raise SearchIndexError(f"Cannot persist search index in {target_dir}: {exc}") from exc
        return target_dir / "search_index.json"


def _plain_text(markup: str) -> str:
    text = _TAG_RE.sub(" ", markup)
    return _SPACE_RE.sub(" ", html.unescape(text)).strip()


__all__ = ["SearchIndex"]
