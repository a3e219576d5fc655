"""Finalization stage: assets, bundled resources and theme overrides."""

from __future__ import annotations

from pathlib import Path

from ..config import SiteConfig
from ..engines.files import FileEngine
from ..errors import FileAccessError, StageError
from ..logging import get_logger

RESOURCES_DIR = Path(__file__).resolve().parent.parent / "resources"

THEME_BRANCH = "theme"
FAVICON_BRANCH = "favicon"
NO_OVERRIDE_BRANCH = "none"


class FinalizeStage:
    """Copies static files into the output folder.

    After the optional assets folder and the bundled resources, exactly one
    of the external theme, the custom favicon or nothing is copied, in that
    order of precedence.
    """

    def __init__(self, config: SiteConfig, files: FileEngine, resources_dir: Path | None = None) -> None:
        self.config = config
        self.files = files
        self.resources_dir = resources_dir or RESOURCES_DIR
        self.logger = get_logger("pipeline.finalize")

    async def run(self) -> str:
        if self.config.assets_folder:
            await self._copy_assets_folder()
        await self._copy_resources()
        return await self._apply_override()

    # ------------------------------------------------------------------
    # Internal helpers

    async def _copy_assets_folder(self) -> None:
        self.logger.info("Copy assets folder")
        source = self.config.root / str(self.config.assets_folder)
        if not self.files.exists(source):
            self.logger.error("Provided assets folder %s did not exist", self.config.assets_folder)
            return
        try:
            await self.files.copy_tree(source, self.config.output_dir / source.name)
        except FileAccessError as exc:
            self.logger.error("Error during assets folder copy: %s", exc)

    async def _copy_resources(self) -> None:
        self.logger.info("Copy main resources")
        try:
            await self.files.copy_tree(self.resources_dir, self.config.output_dir)
        except FileAccessError as exc:
            self.logger.error("Error during resources copy: %s", exc)
            raise StageError("finalize", ["resources"]) from exc

    async def _apply_override(self) -> str:
        theme = self.config.theme
        output = self.config.output_dir
        if theme.ext_theme:
            self.logger.info("Copy external theme")
            try:
                await self.files.copy_tree(self.config.root / theme.ext_theme, output / "styles")
            except FileAccessError as exc:
                self.logger.error("Error during external styling theme copy: %s", exc)
            return THEME_BRANCH
        if theme.custom_favicon:
            self.logger.info("Custom favicon supplied")
            try:
                await self.files.copy_file(
                    self.config.root / theme.custom_favicon,
                    output / "images" / "favicon.ico",
                )
            except FileAccessError as exc:
                self.logger.error("Error during favicon copy: %s", exc)
            return FAVICON_BRANCH
        return NO_OVERRIDE_BRANCH


__all__ = ["FAVICON_BRANCH", "FinalizeStage", "NO_OVERRIDE_BRANCH", "RESOURCES_DIR", "THEME_BRANCH"]
