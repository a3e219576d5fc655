"""Build orchestration for full builds and the three incremental rebuild paths."""

from __future__ import annotations

import asyncio
import logging
import tomllib
from dataclasses import dataclass, field, replace
from pathlib import Path
from typing import Any, Callable, Dict, List, Optional, Set

from .config import DEFAULT_TITLE, ConfigError, SiteConfig, load_config
from .coverage import CoverageReport, calculate_coverage
from .crawlers import CrawlOptions, Crawler, discover_crawler
from .engines import FileEngine, GraphRenderer, MarkdownEngine, SearchIndex, TemplateEngine
from .errors import DocsiteError, FileAccessError
from .export import get_exporter
from .includes import IncludesLoader
from .logging import build_context, get_logger
from .models import (
    KIND_TO_GROUP,
    ChangeKind,
    ChangeSet,
    CrawlResult,
    PageDescriptor,
    ProjectInfo,
    SymbolEntry,
)
from .pipeline import FinalizeStage, GraphStage, RenderStage, TaskList
from .planner import PagePlanner, PlanFlags, affected_sections, pages_for_sections
from .registry import SymbolRegistry
from .scanner import SourceScanner, find_main_source_folder
from .service import DevServer
from .session import BuildKind, BuildSession, FatalErrorBoundary
from .watch import RebuildPath, WatchCoordinator, WatchObserver

_STAT_GROUPS = (
    ("module", "modules"),
    ("component", "components"),
    ("directive", "directives"),
    ("injectable", "injectables"),
    ("pipe", "pipes"),
    ("class", "classes"),
    ("interface", "interfaces"),
)


@dataclass
class BuildState:
    """Process-lifetime state shared by every build of one orchestrator."""

    config: SiteConfig
    registry: SymbolRegistry = field(default_factory=SymbolRegistry)
    search_index: SearchIndex = field(default_factory=SearchIndex)
    project: ProjectInfo = field(default_factory=lambda: ProjectInfo(title=DEFAULT_TITLE))
    files: List[str] = field(default_factory=list)
    pages: List[PageDescriptor] = field(default_factory=list)
    additional_pages: List[PageDescriptor] = field(default_factory=list)
    root_markdown_pages: List[PageDescriptor] = field(default_factory=list)
    render_sections: Optional[Set[str]] = None
    main_graph: Optional[str] = None
    module_graphs: Dict[str, str] = field(default_factory=dict)
    coverage: Optional[CoverageReport] = None


def load_site_config(path: Path | str) -> SiteConfig:
    """Load ``.docsite.yml`` for ``path``, falling back to defaults when invalid."""
    root = Path(path).expanduser().resolve()
    try:
        return load_config(root)
    except ConfigError as exc:
        get_logger("orchestrator").warning("Ignoring invalid configuration: %s", exc)
        return SiteConfig(root=root)


class Orchestrator:
    """Runs the documentation pipeline as ordered task lists.

    A full build crawls every source file, plans all pages and then runs the
    graph, render and finalize stages. Watch mode triggers one of the three
    narrower paths instead: a micro-rebuild for edited source files, a root
    markdown rebuild, or an external docs rebuild. Only one build runs at a
    time, and each runs inside its own :class:`FatalErrorBoundary`.
    """

    def __init__(
        self,
        config: SiteConfig,
        *,
        crawler: Crawler | None = None,
        scanner: SourceScanner | None = None,
        files: FileEngine | None = None,
        markdown: MarkdownEngine | None = None,
        templates: TemplateEngine | None = None,
        graph_renderer: GraphRenderer | None = None,
        search_index: SearchIndex | None = None,
        dev_server_factory: Callable[..., DevServer] | None = None,
        observer_factory: Callable[..., WatchObserver] | None = None,
        exit_func: Callable[[int], Any] | None = None,
    ) -> None:
        self.config = config
        self.state = BuildState(config=config, search_index=search_index or SearchIndex())
        self.crawler = crawler or discover_crawler(config.crawler)
        self.scanner = scanner or SourceScanner(config)
        self.files = files or FileEngine()
        self.markdown = markdown or MarkdownEngine(config.root)
        self.templates = templates or TemplateEngine(
            config.root / config.templates_dir if config.templates_dir else None
        )
        self.planner = PagePlanner(config.root, self.markdown, self.files)
        self.includes = IncludesLoader(config, self.markdown, self.files)
        self.graph_stage = GraphStage(
            graph_renderer or GraphRenderer(config.graph.executable),
            self.state.registry,
            config.output_dir,
            disabled=config.graph.disable,
        )
        self.render_stage = RenderStage(self.templates, self.files, self.state.search_index, config.output_dir)
        self.finalize_stage = FinalizeStage(config, self.files)
        self._dev_server_factory = dev_server_factory or DevServer
        self._observer_factory = observer_factory or WatchObserver
        self._exit_func = exit_func
        self._lock = asyncio.Lock()
        self.dev_server: Optional[DevServer] = None
        self.coordinator: Optional[WatchCoordinator] = None
        self.observer: Optional[WatchObserver] = None
        self.session: Optional[BuildSession] = None
        self.logger = get_logger("orchestrator")

    # ------------------------------------------------------------------
    # Entry points

    async def run(self) -> int:
        """Run a full build, then keep serving (and watching) when configured."""
        session = await self.generate()
        if not session.succeeded:
            return 1
        if self.dev_server is not None:
            try:
                await self.dev_server.wait()
            finally:
                self.stop_watch()
        return 0

    async def generate(self) -> BuildSession:
        """Full build from a fresh crawl of every source file."""
        tasks = TaskList("full build")
        tasks.add("project metadata", self._read_project_metadata)
        tasks.add("root markdowns", self._collect_root_markdowns)
        tasks.add("crawl", self._crawl_all)
        if self.config.includes:
            tasks.add("includes", self._load_includes)
        tasks.add("reset render state", self._reset_render_state)
        self._add_downstream(tasks, render_graphs=True)
        return await self._execute(BuildKind.FULL, tasks)

    async def rebuild(self, path: RebuildPath, changes: ChangeSet) -> BuildSession:
        """Dispatch a watch-mode rebuild to the matching path."""
        if path is RebuildPath.FULL:
            return await self.rebuild_full(changes)
        if path is RebuildPath.MICRO:
            return await self.rebuild_micro(changes)
        if path is RebuildPath.ROOT_MARKDOWN:
            return await self.rebuild_root_markdown(changes)
        return await self.rebuild_external_docs(changes)

    async def rebuild_full(self, changes: ChangeSet | None = None) -> BuildSession:
        if changes:
            self.logger.info("Source files added or removed, rebuilding everything")
        return await self.generate()

    async def rebuild_micro(self, changes: ChangeSet) -> BuildSession:
        """Re-crawl only the changed source files and re-render their sections."""
        sources = changes.files(ChangeKind.SOURCE)
        changed = [file for file in sources if self.scanner.is_tracked(file)]
        if len(changed) < len(sources):
            self.logger.info("Skipping %d excluded source file(s)", len(sources) - len(changed))
        tasks = TaskList("micro rebuild")
        if changes.has(ChangeKind.ROOT_MARKDOWN):
            tasks.add("root markdowns", self._collect_root_markdowns)
        tasks.add("crawl changed files", lambda: self._crawl_changed(changed))
        self._add_downstream(tasks, render_graphs=True)
        return await self._execute(BuildKind.MICRO, tasks)

    async def rebuild_root_markdown(self, changes: ChangeSet | None = None) -> BuildSession:
        tasks = TaskList("root markdown rebuild")
        tasks.add("root markdowns", self._collect_root_markdowns)
        self._add_downstream(tasks, render_graphs=False)
        return await self._execute(BuildKind.ROOT_MARKDOWN, tasks)

    async def rebuild_external_docs(self, changes: ChangeSet | None = None) -> BuildSession:
        tasks = TaskList("external docs rebuild")
        tasks.add("includes", self._load_includes)
        self._add_downstream(tasks, render_graphs=False)
        return await self._execute(BuildKind.EXTERNAL_DOCS, tasks)

    def stop_watch(self) -> None:
        if self.observer is not None:
            self.observer.stop()
            self.observer = None
        elif self.coordinator is not None:
            self.coordinator.stop()
        self.coordinator = None

    # ------------------------------------------------------------------
    # Task list assembly

    def _add_downstream(self, tasks: TaskList, *, render_graphs: bool) -> None:
        if not self.config.disable_coverage:
            tasks.add("coverage", self._prepare_coverage)
        tasks.add("plan", self._plan)
        if self.config.export_format != "html":
            tasks.add("export", self._export)
            return
        if render_graphs:
            tasks.add("graphs", self._render_graphs)
        else:
            tasks.add("graphs", self._attach_cached_graphs)
        tasks.add("render", self._render_pages)
        tasks.add("finalize", self._finalize)

    async def _execute(self, kind: BuildKind, tasks: TaskList) -> BuildSession:
        async with self._lock:
            session = BuildSession(kind=kind)
            self.session = session
            with build_context(kind.value), FatalErrorBoundary(exit_func=self._exit_func) as boundary:
                try:
                    await tasks.run()
                except DocsiteError as exc:
                    self._log_exception(f"{tasks.name.capitalize()} failed", exc)
                    session.fail(exc)
                except Exception as exc:
                    session.fail(exc)
                    boundary.handle_fatal(exc)
                else:
                    session.complete()
                finally:
                    self.state.render_sections = None
            if kind is BuildKind.FULL and session.succeeded:
                await self._serve_and_watch()
            return session

    # ------------------------------------------------------------------
    # Tasks

    async def _read_project_metadata(self) -> None:
        info = ProjectInfo(title=self.config.name or DEFAULT_TITLE)
        pyproject = self.config.root / "pyproject.toml"
        if not self.files.exists(pyproject):
            self.state.project = info
            return
        try:
            data = tomllib.loads(await self.files.get(pyproject))
        except (tomllib.TOMLDecodeError, FileAccessError) as exc:
            self.logger.warning("Cannot read project metadata from pyproject.toml: %s", exc)
            self.state.project = info
            return
        project = data.get("project") or {}
        name = project.get("name")
        if name and not self.config.name:
            info.title = f"{name} documentation"
        info.description = str(project.get("description") or "")
        version = project.get("version")
        info.version = str(version) if version else None
        self.state.project = info

    async def _collect_root_markdowns(self) -> None:
        self.state.root_markdown_pages = self.planner.collect_root_markdowns()

    async def _crawl_all(self) -> None:
        loop = asyncio.get_running_loop()
        files = await loop.run_in_executor(None, self.scanner.scan)
        self.state.files = files
        options = CrawlOptions(root=self.config.root)
        result = await loop.run_in_executor(None, self.crawler.crawl, files, options)
        self.state.registry.init(result)
        self.state.render_sections = None
        self._log_statistics()

    async def _crawl_changed(self, changed: List[str]) -> None:
        loop = asyncio.get_running_loop()
        registry = self.state.registry
        options = CrawlOptions(root=self.config.root, known_kinds=registry.known_kinds())
        result: CrawlResult = await loop.run_in_executor(None, self.crawler.crawl, changed, options)
        self.state.render_sections = affected_sections(result, registry.collection, result.files)
        registry.update(result)
        self.logger.info(
            "Micro-rebuild of %d file(s), sections: %s",
            len(changed),
            ", ".join(sorted(self.state.render_sections)),
        )

    async def _load_includes(self) -> None:
        self.state.additional_pages = await self.includes.load()

    async def _reset_render_state(self) -> None:
        # Pages of deleted sources must not linger in the index after a full build.
        self.state.search_index.clear()
        self.templates.init()

    async def _prepare_coverage(self) -> None:
        self.logger.info("Process documentation coverage report")
        self.state.coverage = calculate_coverage(self.state.registry.collection)

    async def _plan(self) -> None:
        flags = PlanFlags(
            disable_coverage=self.config.disable_coverage,
            root_markdown_pages=tuple(self.state.root_markdown_pages),
        )
        self.state.pages = self.planner.plan(self.state.registry.collection, flags)

    async def _export(self) -> None:
        exporter = get_exporter(self.config.export_format, self.files)
        await exporter.export(
            self.config.output_dir,
            self.state.project,
            self.state.registry.collection,
            self.state.pages,
            self.state.coverage,
        )

    async def _render_graphs(self) -> None:
        modules = self._planned_modules()
        rendered = await self.graph_stage.render(modules)
        self.state.main_graph = self.graph_stage.main_graph
        self.state.module_graphs = {module.name: module.graph for module in rendered if module.graph}
        self._attach_modules(rendered)

    async def _attach_cached_graphs(self) -> None:
        modules = self._planned_modules()
        cached = self.state.module_graphs
        self._attach_modules([replace(module, graph=cached.get(module.name)) for module in modules])

    async def _render_pages(self) -> None:
        pages = self.state.pages
        additional = self.state.additional_pages
        sections = self.state.render_sections
        if sections is not None:
            pages = pages_for_sections(pages, sections)
            additional = []
        await self.render_stage.render_all(pages, additional, model=self._template_model())

    async def _finalize(self) -> None:
        branch = await self.finalize_stage.run()
        session = self.session
        elapsed = session.elapsed() if session is not None else 0.0
        self.logger.info(
            "Documentation generated in %s in %.3f seconds (%s)",
            self.config.output_dir,
            elapsed,
            "external theme" if branch == "theme" else "default theme",
        )

    # ------------------------------------------------------------------
    # Internal helpers

    async def _serve_and_watch(self) -> None:
        if not self.config.serve.enabled or self.config.export_format != "html":
            return
        if self.dev_server is None:
            self.dev_server = self._dev_server_factory(
                self.config.output_dir,
                self.config.serve.host,
                self.config.serve.port,
            )
            await self.dev_server.start()
        if not self.config.watch.enabled:
            return
        if self.coordinator is not None:
            self.logger.info("Already watching sources")
            return
        self._start_watch()

    def _start_watch(self) -> None:
        main_folder = find_main_source_folder(self.state.files)
        if main_folder is None:
            self.logger.error("No sources files available, watch mode not started")
            return
        self.coordinator = WatchCoordinator(
            self._watch_rebuild,
            root=self.config.root,
            source_suffixes=self.config.source_suffixes,
            debounce_ms=self.config.watch.debounce_ms,
        )
        self.observer = self._observer_factory(self.coordinator, self.config)
        roots = [main_folder]
        includes_dir = self.includes.includes_dir
        if includes_dir is not None:
            roots.append(includes_dir)
        flat_roots = [self.config.root] if self.markdown.has_root_markdowns() else []
        self.logger.info("Watching sources in %s folder", main_folder)
        self.observer.start(roots, flat_roots)

    async def _watch_rebuild(self, path: RebuildPath, changes: ChangeSet) -> None:
        await self.rebuild(path, changes)

    def _planned_modules(self) -> List[SymbolEntry]:
        return [
            page.entry
            for page in self.state.pages
            if page.section == "modules" and page.entry is not None
        ]

    def _attach_modules(self, modules: List[SymbolEntry]) -> None:
        by_id = {module.id: module for module in modules}
        self.state.pages = [
            page.with_entry(by_id[page.entry.id])
            if page.entry is not None and page.entry.id in by_id
            else page
            for page in self.state.pages
        ]

    def _template_model(self) -> Dict[str, Any]:
        state = self.state
        sections: Dict[str, List[SymbolEntry]] = {}
        for page in state.pages:
            if page.entry is not None and page.section:
                sections.setdefault(page.section, []).append(page.entry)
        registry = state.registry
        return {
            "project": state.project,
            "pages": state.pages,
            "additional_pages": state.additional_pages,
            "includes_name": self.config.includes_name,
            "sections": sections,
            "miscellaneous": registry.miscellaneous,
            "routes": registry.routes,
            "main_graph": None if self.graph_stage.disable_main_graph else state.main_graph,
            "disable_graph": self.config.graph.disable,
            "coverage": state.coverage,
            "kind_groups": KIND_TO_GROUP,
        }

    def _log_statistics(self) -> None:
        registry = self.state.registry
        self.logger.info("-------------------")
        self.logger.info("Project statistics ")
        self.logger.info("- files      : %d", len(self.state.files))
        for label, group in _STAT_GROUPS:
            count = len(registry.collection.group(group))
            if count:
                self.logger.info("- %-11s: %d", label, count)
        if registry.routes_length():
            self.logger.info("- %-11s: %d", "route", registry.routes_length())
        self.logger.info("-------------------")

    def _log_exception(self, message: str, exc: Exception) -> None:
        if self.logger.isEnabledFor(logging.DEBUG):
            self.logger.exception("%s: %s", message, exc)
        else:
            self.logger.error("%s: %s", message, exc)


__all__ = ["BuildState", "Orchestrator", "load_site_config"]
