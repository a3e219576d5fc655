"""Source discovery for crawls and watch roots."""

from __future__ import annotations

import os
from dataclasses import dataclass
from fnmatch import fnmatchcase
from pathlib import Path
from typing import Iterable, Iterator, List, Sequence

from .config import SiteConfig

_EXCLUDED_DIRS = {
    ".git",
    ".hg",
    ".svn",
    ".venv",
    "venv",
    "node_modules",
    "__pycache__",
    ".pytest_cache",
    ".mypy_cache",
    ".idea",
    ".docsite",
    "build",
    "dist",
}


@dataclass
class IgnoreRule:
    """Represents an ignore rule parsed from .gitignore or .docsite.yml."""

    pattern: str
    directory_only: bool
    anchored: bool
    negate: bool
    has_slash: bool

    def matches(self, rel_path: str, is_dir: bool) -> bool:
        if not self.pattern:
            return False
        if self.directory_only and not is_dir:
            return False

        if self.anchored or self.has_slash:
            if fnmatchcase(rel_path, self.pattern):
                return True
            return self.directory_only and rel_path.startswith(f"{self.pattern}/")

        return any(fnmatchcase(part, self.pattern) for part in rel_path.split("/"))


def build_ignore_rule(pattern: str, negate: bool = False) -> IgnoreRule | None:
    pattern = pattern.strip()
    if not pattern:
        return None

    directory_only = pattern.endswith("/")
    if directory_only:
        pattern = pattern[:-1]

    anchored = pattern.startswith("/")
    if anchored:
        pattern = pattern[1:]

    return IgnoreRule(
        pattern=pattern,
        directory_only=directory_only,
        anchored=anchored,
        negate=negate,
        has_slash="/" in pattern,
    )


def _parse_gitignore(path: Path) -> List[IgnoreRule]:
    if not path.exists():
        return []

    rules: List[IgnoreRule] = []
    for raw_line in path.read_text(encoding="utf-8").splitlines():
        line = raw_line.strip()
        if not line or line.startswith("#"):
            continue
        negate = line.startswith("!")
        if negate:
            line = line[1:]
        rule = build_ignore_rule(line, negate=negate)
        if rule is not None:
            rules.append(rule)
    return rules


def _should_ignore(rel_path: str, is_dir: bool, rules: Sequence[IgnoreRule]) -> bool:
    ignored = False
    for rule in rules:
        if rule.matches(rel_path, is_dir):
            ignored = not rule.negate
    return ignored


def matches_any(path: Path | str, patterns: Iterable[str]) -> bool:
    """Return True when the file name matches one of the glob patterns."""
    name = Path(path).name
    return any(fnmatchcase(name, pattern) for pattern in patterns)


class SourceScanner:
    """Lists the source files a full crawl should receive.

    ``scan`` walks the source roots; ``is_tracked`` and ``is_excluded`` answer
    the same question for a single path, so watch events and micro-rebuilds
    see exactly the files a full crawl would.
    """

    def __init__(self, config: SiteConfig) -> None:
        self.config = config

    def scan(self) -> List[str]:
        root = self.config.root
        rules = self._rules()
        output = self.config.output_dir.resolve()
        found: List[str] = []
        for source_root in self.config.source_roots():
            if not source_root.is_dir():
                continue
            for path in _iter_files(root, source_root, rules):
                if output in path.resolve().parents:
                    continue
                if not self.config.is_source_file(path):
                    continue
                if matches_any(path, self.config.watch.ignore):
                    continue
                found.append(str(path))
        return sorted(dict.fromkeys(found))

    def is_excluded(self, path: Path | str) -> bool:
        """Return True when ignore rules, the output folder or watch globs hide ``path``."""
        resolved = Path(path).resolve()
        root = self.config.root.resolve()
        try:
            parts = resolved.relative_to(root).parts
        except ValueError:
            return True
        if self.config.output_dir.resolve() in resolved.parents:
            return True
        if any(part in _EXCLUDED_DIRS for part in parts[:-1]):
            return True
        if matches_any(resolved, self.config.watch.ignore):
            return True

        rules = self._rules()
        for index in range(1, len(parts)):
            if _should_ignore("/".join(parts[:index]), True, rules):
                return True
        return _should_ignore("/".join(parts), False, rules)

    def is_tracked(self, path: Path | str) -> bool:
        """Return True when a full scan would hand ``path`` to the crawler."""
        if not self.config.is_source_file(path):
            return False
        resolved = Path(path).resolve()
        in_roots = any(
            resolved == source_root or source_root in resolved.parents
            for source_root in (source.resolve() for source in self.config.source_roots())
        )
        return in_roots and not self.is_excluded(resolved)

    def _rules(self) -> List[IgnoreRule]:
        rules = _parse_gitignore(self.config.root / ".gitignore")
        for pattern in self.config.exclude_paths:
            rule = build_ignore_rule(pattern)
            if rule is not None:
                rules.append(rule)
        return rules


def find_main_source_folder(files: Sequence[str]) -> Path | None:
    """Return the deepest folder shared by every scanned source file."""
    if not files:
        return None
    common = os.path.commonpath([str(Path(file).parent) for file in files])
    return Path(common)


def _iter_files(root: Path, start: Path, rules: Sequence[IgnoreRule]) -> Iterator[Path]:
    for dirpath, dirnames, filenames in os.walk(start):
        current_dir = Path(dirpath)
        try:
            rel_dir = current_dir.relative_to(root).as_posix()
        except ValueError:
            rel_dir = current_dir.as_posix()
        if rel_dir == ".":
            rel_dir = ""

        kept = []
        for name in sorted(dirnames):
            if name in _EXCLUDED_DIRS:
                continue
            rel_path = f"{rel_dir}/{name}" if rel_dir else name
            if _should_ignore(rel_path, True, rules):
                continue
            kept.append(name)
        dirnames[:] = kept

        for filename in sorted(filenames):
            rel_path = f"{rel_dir}/{filename}" if rel_dir else filename
            if _should_ignore(rel_path, False, rules):
                continue
            yield current_dir / filename


__all__ = ["IgnoreRule", "SourceScanner", "build_ignore_rule", "find_main_source_folder", "matches_any"]
