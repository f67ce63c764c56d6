"""Command-line interface for bereal-archive.

Subcommands:
    ingest  Load an export and print a summary (optionally dump JSON)
    export  Load an export and write posts or memories as files
"""

import argparse
import json
import logging
import sys
from pathlib import Path
from typing import List, Optional

from . import __version__
from .common import BeRealArchiveError, ConfigLoader, setup_logging, user_message
from .config import BeRealArchiveConfig
from .export import ExportMode, export_captures
from .ingest import IngestionResult, ProgressEvent, ingest_export
from .models import to_jsonable

APP_NAME = "bereal-archive"

logger = logging.getLogger(__name__)


class _ProgressLogger:
    """Logs each new progress percentage once."""

    def __init__(self) -> None:
        self.last_loaded = -1

    def __call__(self, event: ProgressEvent) -> None:
        if event.loaded > self.last_loaded:
            self.last_loaded = event.loaded
            logger.info(f"[{event.loaded:3d}%] {event.message}")


def _ingest(args: argparse.Namespace, config: BeRealArchiveConfig) -> IngestionResult:
    return ingest_export(
        args.archive,
        args.log,
        on_progress=_ProgressLogger(),
        config=config.ingest,
    )


def _print_summary(result: IngestionResult) -> None:
    data = result.data
    print(f"User:          {data.user.username if data.user else '(not exported)'}")
    for name, count in data.summary().items():
        if name == 'user':
            continue
        label = name.replace('_', ' ').capitalize() + ':'
        print(f"{label:<15}{'(not exported)' if count is None else count}")
    print(f"{'Media files:':<15}{len(result.media)}")
    print(f"{'Warnings:':<15}{len(result.warnings)}")
    for warning in result.warnings:
        print(f"  - {warning.kind}: {warning.source} {warning.detail}".rstrip())


def ingest_command(args: argparse.Namespace, config: BeRealArchiveConfig) -> int:
    """Ingest an export and report what was found.

    Returns:
        Exit code (0 for success)
    """
    result = _ingest(args, config)
    try:
        _print_summary(result)

        if args.json:
            payload = json.dumps(to_jsonable(result.data), indent=2, ensure_ascii=False)
            if args.json == "-":
                print(payload)
            else:
                Path(args.json).write_text(payload, encoding="utf-8")
                logger.info(f"Wrote canonical data: {{'path': {args.json!r}}}")
    finally:
        result.media.release_all()

    return 0


def export_command(args: argparse.Namespace, config: BeRealArchiveConfig) -> int:
    """Export posts or memories from an export.

    Returns:
        Exit code (0 for success, 1 when there is nothing to export)
    """
    result = _ingest(args, config)
    try:
        collection = result.data.posts if args.source == "posts" else result.data.memories
        if not collection:
            logger.error(f"Nothing to export: {{'source': {args.source!r}}}")
            return 1

        if args.index:
            if any(i < 0 or i >= len(collection) for i in args.index):
                logger.error(f"Index out of range: {{'indexes': {args.index}, 'available': {len(collection)}}}")
                return 1
            captures = [collection[i] for i in args.index]
        else:
            captures = list(collection)

        artifact = export_captures(captures, result.media, ExportMode(args.mode), args.name, config.export)
        path = artifact.write_to(args.output_dir)
        print(path)
    finally:
        result.media.release_all()

    return 0


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog=APP_NAME,
        description="Ingest and export BeReal data exports"
    )
    parser.add_argument("--version", action="version", version=f"%(prog)s {__version__}")
    parser.add_argument(
        "--config",
        type=Path,
        help="Path to config file (defaults.toml)"
    )
    parser.add_argument(
        "--log-level",
        choices=["DEBUG", "INFO", "WARNING", "ERROR"],
        help="Log level (overrides config)"
    )

    subparsers = parser.add_subparsers(dest="command", required=True)

    def add_inputs(sub: argparse.ArgumentParser) -> None:
        sub.add_argument("archive", type=Path, help="BeReal export archive (.zip)")
        sub.add_argument("log", type=Path, help="Analytics event log (.gz)")

    ingest_parser = subparsers.add_parser("ingest", help="Load an export and print a summary")
    add_inputs(ingest_parser)
    ingest_parser.add_argument(
        "--json",
        metavar="OUT",
        help="Write the canonical data as JSON to OUT ('-' for stdout)"
    )

    export_parser = subparsers.add_parser("export", help="Export posts or memories")
    add_inputs(export_parser)
    export_parser.add_argument("--source", choices=["posts", "memories"], default="posts")
    export_parser.add_argument(
        "--mode",
        choices=[mode.value for mode in ExportMode],
        default=ExportMode.MERGED.value,
        help="What to export per capture"
    )
    export_parser.add_argument("--name", default="bereal", help="Base name of the exported file")
    export_parser.add_argument("--output-dir", type=Path, default=Path("."), help="Directory to write to")
    export_parser.add_argument(
        "--index",
        type=int,
        action="append",
        help="Zero-based capture index to export (repeatable; default: all)"
    )

    return parser


def main(argv: Optional[List[str]] = None) -> int:
    """Main entry point."""
    parser = build_parser()
    args = parser.parse_args(argv)

    loader = ConfigLoader(
        app_name=APP_NAME,
        config_class=BeRealArchiveConfig
    )
    config = loader.load(defaults_path=args.config)

    setup_logging(
        level=args.log_level or config.logging.level,
        format=config.logging.format,
        log_file=config.logging.file_path,
        max_file_size_mb=config.logging.max_file_size_mb,
        backup_count=config.logging.backup_count,
    )

    commands = {
        "ingest": ingest_command,
        "export": export_command,
    }

    try:
        return commands[args.command](args, config)
    except BeRealArchiveError as e:
        logger.error(f"{user_message(e)} ({e})")
        return 1


if __name__ == "__main__":
    sys.exit(main())
