"""Filesystem access used by every build stage."""

from __future__ import annotations

import asyncio
import shutil
from functools import partial
from pathlib import Path
from typing import Callable, TypeVar

from ..errors import FileAccessError

_T = TypeVar("_T")


class FileEngine:
    """Reads, writes and copies files off the event loop.

    Every failure surfaces as :class:`FileAccessError` so callers never have to
    reason about raw ``OSError`` subclasses.
    """

    async def get(self, path: Path | str) -> str:
        return await self._run("read", path, partial(self.get_sync, path))

    def get_sync(self, path: Path | str) -> str:
        target = Path(path)
        try:
            return target.read_text(encoding="utf-8")
        except (OSError, UnicodeDecodeError) as exc:
            raise FileAccessError("read", target, _describe(exc)) from exc

    async def write(self, path: Path | str, content: str) -> Path:
        return await self._run("write", path, partial(self._write_sync, Path(path), content))

    async def copy_tree(self, source: Path | str, destination: Path | str) -> Path:
        return await self._run(
            "copy", source, partial(self._copy_tree_sync, Path(source), Path(destination))
        )

    async def copy_file(self, source: Path | str, destination: Path | str) -> Path:
        return await self._run(
            "copy", source, partial(self._copy_file_sync, Path(source), Path(destination))
        )

    def exists(self, path: Path | str) -> bool:
        return Path(path).exists()

    # ------------------------------------------------------------------
    # Internal helpers

    async def _run(self, operation: str, path: Path | str, func: Callable[[], _T]) -> _T:
        loop = asyncio.get_running_loop()
        try:
            return await loop.run_in_executor(None, func)
        except FileAccessError:
            raise
        except OSError as exc:
            raise FileAccessError(operation, path, _describe(exc)) from exc

    @staticmethod
    def _write_sync(path: Path, content: str) -> Path:
        try:
            path.parent.mkdir(parents=True, exist_ok=True)
            path.write_text(content, encoding="utf-8")
        except OSError as exc:
            raise FileAccessError("write", path, _describe(exc)) from exc
        return path

    @staticmethod
    def _copy_tree_sync(source: Path, destination: Path) -> Path:
        if not source.is_dir():
            raise FileAccessError("copy", source, "source folder does not exist")
        try:
            shutil.copytree(source, destination, dirs_exist_ok=True)
        except (OSError, shutil.Error) as exc:
            raise FileAccessError("copy", source, _describe(exc)) from exc
        return destination

    @staticmethod
    def _copy_file_sync(source: Path, destination: Path) -> Path:
        try:
            destination.parent.mkdir(parents=True, exist_ok=True)
            shutil.copyfile(source, destination)
        except OSError as exc:
            raise FileAccessError("copy", source, _describe(exc)) from exc
        return destination


def _describe(exc: BaseException) -> str:
    if isinstance(exc, OSError) and exc.strerror:
        return exc.strerror
    return str(exc) or exc.__class__.__name__


__all__ = ["FileEngine"]
