"""CLI entrypoints for docsite commands."""

from __future__ import annotations

import argparse
import asyncio
import sys
from pathlib import Path

from .config import SUPPORTED_EXPORT_FORMATS, SiteConfig
from .logging import configure_logging
from .orchestrator import Orchestrator, load_site_config


def _add_verbose_option(
    parser: argparse.ArgumentParser, *, suppress_default: bool = False
) -> None:
    kwargs: dict[str, object] = {
        "action": "store_true",
        "help": "Increase log verbosity for troubleshooting.",
    }
    if suppress_default:
        kwargs["default"] = argparse.SUPPRESS
    else:
        kwargs["default"] = False
    parser.add_argument(
        "-v",
        "--verbose",
        **kwargs,
    )


def _build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="docsite",
        description="Generate a documentation site from a project's sources.",
    )
    _add_verbose_option(parser)
    parser.add_argument("--log-file", help="Also write log output to this file.")
    subparsers = parser.add_subparsers(dest="command", required=True)

    build_parser = subparsers.add_parser(
        "build",
        help="Build the documentation site once, optionally serving and watching it.",
    )
    _add_verbose_option(build_parser, suppress_default=True)
    build_parser.add_argument(
        "path",
        nargs="?",
        default=".",
        help="Path to the project root (defaults to current directory).",
    )
    build_parser.add_argument("-o", "--output", help="Output folder for the generated site.")
    build_parser.add_argument(
        "--disable-graph",
        action="store_true",
        default=None,
        help="Skip dependency graph rendering.",
    )
    build_parser.add_argument(
        "--disable-coverage",
        action="store_true",
        default=None,
        help="Skip the documentation coverage report.",
    )
    build_parser.add_argument(
        "--export-format",
        choices=SUPPORTED_EXPORT_FORMATS,
        help="Output format (html renders pages, json exports the model).",
    )
    build_parser.add_argument("--includes", help="Folder holding external docs and their summary.json.")
    build_parser.add_argument("--assets-folder", help="Folder copied as-is into the output.")
    build_parser.add_argument("--theme", help="Folder with an external stylesheet theme.")
    build_parser.add_argument("--favicon", help="Custom favicon file.")
    build_parser.add_argument(
        "-s",
        "--serve",
        action="store_true",
        default=None,
        help="Serve the generated site after the build.",
    )
    build_parser.add_argument("--port", type=int, help="Port of the development server.")
    build_parser.add_argument(
        "-w",
        "--watch",
        action="store_true",
        default=None,
        help="Rebuild on source changes (requires --serve).",
    )
    return parser


def _apply_overrides(config: SiteConfig, args: argparse.Namespace) -> SiteConfig:
    if args.output:
        config.output = (Path.cwd() / args.output).resolve()
    if args.disable_graph is not None:
        config.graph.disable = True
    if args.disable_coverage is not None:
        config.disable_coverage = True
    if args.export_format:
        config.export_format = args.export_format
    if args.includes:
        config.includes = args.includes
    if args.assets_folder:
        config.assets_folder = args.assets_folder
    if args.theme:
        config.theme.ext_theme = args.theme
    if args.favicon:
        config.theme.custom_favicon = args.favicon
    if args.serve is not None:
        config.serve.enabled = True
    if args.port is not None:
        config.serve.port = args.port
    if args.watch is not None:
        config.watch.enabled = True
    return config


def main(argv: list[str] | None = None) -> None:
    """CLI entrypoint for docsite commands."""
    parser = _build_parser()
    args = parser.parse_args(argv)

    log_file = Path(args.log_file).expanduser() if args.log_file else None
    configure_logging(verbose=bool(args.verbose), log_file=log_file)

    if args.command == "build":
        project_path = Path(args.path).expanduser().resolve()
        if not project_path.is_dir():
            parser.exit(1, f"Project folder {args.path} does not exist\n")
        config = _apply_overrides(load_site_config(project_path), args)
        if config.watch.enabled and not config.serve.enabled:
            parser.exit(1, "--watch requires --serve\n")
        orchestrator = Orchestrator(config)
        try:
            status = asyncio.run(orchestrator.run())
        except KeyboardInterrupt:
            status = 0
        if status:
            parser.exit(status, "docsite build failed\nRun with --verbose for more details.\n")
        print(f"Documentation available in {_relativize(config.output_dir)}")


def _relativize(path: Path) -> Path:
    try:
        return path.relative_to(Path.cwd())
    except ValueError:
        return path


if __name__ == "__main__":  # pragma: no cover
    main(sys.argv[1:])
