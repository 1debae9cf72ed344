"""Command line interface for the row logger."""

from __future__ import annotations

import argparse
import json
import logging
import sys
from typing import Dict, List

from .core.logger import Logger
from .errors import RowlogError
from .storage.archiver import archive_files
from .storage.rotator import rotate_file


def _parse_fields(pairs: List[str]) -> Dict[str, str]:
    fields: Dict[str, str] = {}
    for pair in pairs:
        if "=" not in pair:
            raise ValueError(f"Field '{pair}' must be in 'key=value' format")
        key, value = pair.split("=", 1)
        fields[key] = value
    return fields


def _cmd_print(args: argparse.Namespace) -> int:
    columns = [name.strip() for name in args.columns.split(",") if name.strip()]
    with Logger(args.path, columns, {"sync": True, "echo": args.echo}) as logger:
        logger.print(_parse_fields(args.fields))
    return 0


def _cmd_rotate(args: argparse.Namespace) -> int:
    final = rotate_file(args.source, args.destination)
    print(json.dumps({"source": args.source, "destination": str(final)}))
    return 0


def _cmd_archive(args: argparse.Namespace) -> int:
    report = archive_files(args.pattern, args.destination, epoch=args.epoch)
    payload = [
        {"source": str(item.source), "destination": str(item.destination), "compressed": item.compressed}
        for item in report.files
    ]
    print(json.dumps(payload, indent=2, sort_keys=True))
    return 0


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(prog="rowlog", description="Append-only structured row logger")
    parser.add_argument("--verbose", action="store_true", help="Enable debug diagnostics")
    commands = parser.add_subparsers(dest="command", required=True)

    print_cmd = commands.add_parser("print", help="Append one row to a log file")
    print_cmd.add_argument("path", help="Log file path (may contain [key] placeholders)")
    print_cmd.add_argument("--columns", required=True, help="Comma separated column names")
    print_cmd.add_argument("--echo", action="store_true", help="Also write the row to stdout")
    print_cmd.add_argument("fields", nargs="*", help="Column values in key=value format")
    print_cmd.set_defaults(handler=_cmd_print)

    rotate_cmd = commands.add_parser("rotate", help="Move a log file aside")
    rotate_cmd.add_argument("source")
    rotate_cmd.add_argument("destination", help="Target file, or a directory ending in a separator")
    rotate_cmd.set_defaults(handler=_cmd_rotate)

    archive_cmd = commands.add_parser("archive", help="Archive (and optionally gzip) matching files")
    archive_cmd.add_argument("pattern", help="Glob pattern of files to archive")
    archive_cmd.add_argument("destination", help="Destination template, e.g. logs/[yyyy]/[mm]/[filename].log.gz")
    archive_cmd.add_argument("--epoch", type=float, default=None, help="Reference timestamp for date placeholders")
    archive_cmd.set_defaults(handler=_cmd_archive)
    return parser


def main(argv: List[str] | None = None) -> int:
    parser = build_parser()
    args = parser.parse_args(argv)
    logging.basicConfig(
        level=logging.DEBUG if args.verbose else logging.WARNING,
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
    )
    try:
        return args.handler(args)
    except (RowlogError, ValueError, OSError) as exc:
        print(f"rowlog: {exc}", file=sys.stderr)
        return 1


if __name__ == "__main__":  # pragma: no cover - CLI entry point
    raise SystemExit(main())
