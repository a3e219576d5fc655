"""Configuration loading for docsite (.docsite.yml)."""

from __future__ import annotations

from dataclasses import dataclass, field
from pathlib import Path
from typing import Any, Dict, List, Optional, Sequence

import yaml

CONFIG_FILENAME = ".docsite.yml"

DEFAULT_TITLE = "Application documentation"
DEFAULT_OUTPUT = "documentation"
DEFAULT_EXPORT_FORMAT = "html"
SUPPORTED_EXPORT_FORMATS: tuple[str, ...] = ("html", "json")
DEFAULT_INCLUDES_NAME = "additional-documentation"
DEFAULT_DEBOUNCE_MS = 1000


class ConfigError(RuntimeError):
    """Raised when the configuration file cannot be parsed."""


@dataclass
class GraphConfig:
    """Dependency graph rendering settings."""

    disable: bool = False
    executable: str = "dot"


@dataclass
class ThemeConfig:
    """Presentation overrides copied during finalization."""

    ext_theme: Optional[str] = None
    custom_favicon: Optional[str] = None


@dataclass
class ServeConfig:
    """Development server settings."""

    enabled: bool = False
    host: str = "127.0.0.1"
    port: int = 8080


@dataclass
class WatchConfig:
    """Watch mode settings."""

    enabled: bool = False
    debounce_ms: int = DEFAULT_DEBOUNCE_MS
    ignore: List[str] = field(default_factory=lambda: ["test_*.py", "*_test.py", "conftest.py"])


@dataclass
class SiteConfig:
    """Represents the settings defined in .docsite.yml merged with CLI overrides."""

    root: Path
    name: Optional[str] = None
    output: Path | None = None
    sources: List[str] = field(default_factory=list)
    exclude_paths: List[str] = field(default_factory=list)
    source_suffixes: List[str] = field(default_factory=lambda: [".py"])
    includes: Optional[str] = None
    includes_name: str = DEFAULT_INCLUDES_NAME
    assets_folder: Optional[str] = None
    templates_dir: Optional[Path] = None
    export_format: str = DEFAULT_EXPORT_FORMAT
    disable_coverage: bool = False
    crawler: str = "python"
    graph: GraphConfig = field(default_factory=GraphConfig)
    theme: ThemeConfig = field(default_factory=ThemeConfig)
    serve: ServeConfig = field(default_factory=ServeConfig)
    watch: WatchConfig = field(default_factory=WatchConfig)

    def __post_init__(self) -> None:
        if self.output is None:
            self.output = self.root / DEFAULT_OUTPUT

    @property
    def output_dir(self) -> Path:
        assert self.output is not None
        return self.output

    def source_roots(self) -> List[Path]:
        """Return the directories crawled for source files."""
        if not self.sources:
            return [self.root]
        return [self.root / source for source in self.sources]

    def is_source_file(self, path: Path | str) -> bool:
        return Path(path).suffix.lower() in {suffix.lower() for suffix in self.source_suffixes}


def load_config(config_path: Path) -> SiteConfig:
    """Load configuration from disk."""
    config_file = _resolve_config_path(config_path)
    root = config_file.parent.resolve()

    if not config_file.exists():
        return SiteConfig(root=root)

    data = _read_config(config_file)
    if not isinstance(data, dict):
        raise ConfigError(f"{CONFIG_FILENAME} must contain a mapping at the root")

    output_str = _as_str(data.get("output"))
    templates_dir_str = _as_str(data.get("templates_dir"))

    graph_data = _as_dict(data.get("graph"))
    graph = GraphConfig()
    if graph_data:
        graph.disable = _as_bool(graph_data.get("disable")) or False
        graph.executable = _as_str(graph_data.get("executable")) or graph.executable

    theme_data = _as_dict(data.get("theme"))
    theme = ThemeConfig()
    if theme_data:
        theme.ext_theme = _as_str(theme_data.get("ext_theme"))
        theme.custom_favicon = _as_str(theme_data.get("custom_favicon"))

    serve_data = _as_dict(data.get("serve"))
    serve = ServeConfig()
    if serve_data:
        serve.enabled = _as_bool(serve_data.get("enabled")) or False
        serve.host = _as_str(serve_data.get("host")) or serve.host
        port = _as_int(serve_data.get("port"))
        if port is not None:
            serve.port = port

    watch_data = _as_dict(data.get("watch"))
    watch = WatchConfig()
    if watch_data:
        watch.enabled = _as_bool(watch_data.get("enabled")) or False
        debounce = _as_int(watch_data.get("debounce_ms"))
        if debounce is not None:
            if debounce < 0:
                raise ConfigError("watch.debounce_ms must not be negative")
            watch.debounce_ms = debounce
        if "ignore" in watch_data:
            watch.ignore = _as_str_list(watch_data.get("ignore"))

    export_format = (_as_str(data.get("export_format")) or DEFAULT_EXPORT_FORMAT).lower()
    if export_format not in SUPPORTED_EXPORT_FORMATS:
        raise ConfigError(f"Unsupported export_format: {export_format}")

    config = SiteConfig(
        root=root,
        name=_as_str(data.get("name")),
        output=root / output_str if output_str else None,
        sources=_as_str_list(data.get("sources")),
        exclude_paths=_as_str_list(data.get("exclude_paths")),
        includes=_as_str(data.get("includes")),
        includes_name=_as_str(data.get("includes_name")) or DEFAULT_INCLUDES_NAME,
        assets_folder=_as_str(data.get("assets_folder")),
        templates_dir=root / templates_dir_str if templates_dir_str else None,
        export_format=export_format,
        disable_coverage=_as_bool(data.get("disable_coverage")) or False,
        crawler=_as_str(data.get("crawler")) or "python",
        graph=graph,
        theme=theme,
        serve=serve,
        watch=watch,
    )
    suffixes = _as_str_list(data.get("source_suffixes"))
    if suffixes:
        config.source_suffixes = [s if s.startswith(".") else f".{s}" for s in suffixes]
    return config


def _resolve_config_path(config_path: Path) -> Path:
    config_path = config_path.expanduser()
    if config_path.is_dir():
        return (config_path / CONFIG_FILENAME).resolve()
    if config_path.name != CONFIG_FILENAME:
        return (config_path.parent / CONFIG_FILENAME).resolve()
    return config_path.resolve()


def _read_config(path: Path) -> Dict[str, Any]:
    text = path.read_text(encoding="utf-8")
    if not text.strip():
        return {}
    try:
        loaded = yaml.safe_load(text)
    except yaml.YAMLError as exc:
        raise ConfigError(f"Failed to parse {path.name}: {exc}") from exc
    return loaded or {}


def _as_dict(value: Any) -> Dict[str, Any]:
    return value if isinstance(value, dict) else {}


def _as_str(value: Any) -> Optional[str]:
    return str(value) if isinstance(value, (str, int, float, bool)) else None


def _as_int(value: Any) -> Optional[int]:
    if isinstance(value, bool):
        return None
    if isinstance(value, int):
        return value
    if isinstance(value, str):
        try:
            return int(value)
        except ValueError:
            return None
    return None


def _as_bool(value: Any) -> Optional[bool]:
    if isinstance(value, bool):
        return value
    if isinstance(value, str):
        lowered = value.strip().lower()
        if lowered in {"true", "yes", "1"}:
            return True
        if lowered in {"false", "no", "0"}:
            return False
    return None


def _as_str_list(value: Any) -> List[str]:
    if value is None:
        return []
    if isinstance(value, str):
        return [value]
    if isinstance(value, Sequence):
        return [str(item) for item in value if isinstance(item, (str, int, float, bool))]
    return []
