"""Maintenance commands for the book club catalog.

  bookclub import <dir>          add .pdf/.epub files found under <dir>
  bookclub update-file-sizes     refresh stored sizes from disk
  bookclub migrate               upgrade an older database schema in place
  bookclub resolve-cover TITLE   run the cover pipeline for one title
  bookclub serve                 run the development server
"""
from __future__ import annotations

import argparse
import json
import os
import sys
from dataclasses import asdict
from typing import List, Optional

from bookclub.db import init_engine_once
from bookclub.services import download_service, library_import, schema_migrations
from bookclub.services.cover_resolver import get_resolver
from bookclub.utils.logging import get_logger, set_level

LOG = get_logger("bookclub.cli")


def _print_json(payload) -> None:
    print(json.dumps(payload, indent=2, sort_keys=True))


def cmd_import(args: argparse.Namespace) -> int:
    try:
        entries = library_import.scan_directory(args.directory)
    except FileNotFoundError:
        print(f"Directory {args.directory} not found", file=sys.stderr)
        return 1
    if not download_service.is_within_library(os.path.abspath(args.directory)):
        LOG.warning("%s is outside the library root; imported books will not be downloadable", args.directory)
    if args.dry_run:
        _print_json([asdict(entry) for entry in entries])
        return 0
    init_engine_once()
    _print_json(library_import.import_books(entries))
    return 0


def cmd_update_file_sizes(args: argparse.Namespace) -> int:
    init_engine_once()
    _print_json(library_import.update_file_sizes())
    return 0


def cmd_migrate(args: argparse.Namespace) -> int:
    try:
        report = schema_migrations.run_migrations()
    except schema_migrations.MigrationError as exc:
        print(f"Migration failed: {exc}", file=sys.stderr)
        return 1
    _print_json(report)
    return 0


def cmd_resolve_cover(args: argparse.Namespace) -> int:
    init_engine_once()
    resolved = get_resolver().resolve(args.title, args.author)
    _print_json(resolved.as_dict())
    return 0


def cmd_serve(args: argparse.Namespace) -> int:
    from bookclub.startup.wiring import create_app

    app = create_app()
    app.run(host=args.host, port=args.port, debug=args.debug, threaded=True)
    return 0


def build_parser() -> argparse.ArgumentParser:
    ap = argparse.ArgumentParser(prog="bookclub", description="Book club catalog maintenance")
    ap.add_argument("--log-level", help="Override BOOKCLUB_LOG_LEVEL (DEBUG, INFO, WARNING, ...)")
    sub = ap.add_subparsers(dest="command", required=True)

    p_import = sub.add_parser("import", help="Import e-book files from a directory tree")
    p_import.add_argument("directory")
    p_import.add_argument("--dry-run", action="store_true", help="Only list what would be imported")
    p_import.set_defaults(func=cmd_import)

    p_sizes = sub.add_parser("update-file-sizes", help="Refresh stored file sizes from disk")
    p_sizes.set_defaults(func=cmd_update_file_sizes)

    p_migrate = sub.add_parser("migrate", help="Add missing columns and indexes")
    p_migrate.set_defaults(func=cmd_migrate)

    p_cover = sub.add_parser("resolve-cover", help="Resolve a cover URL for a title")
    p_cover.add_argument("title")
    p_cover.add_argument("--author")
    p_cover.set_defaults(func=cmd_resolve_cover)

    p_serve = sub.add_parser("serve", help="Run the development server")
    p_serve.add_argument("--host", default="127.0.0.1")
    p_serve.add_argument("--port", type=int, default=5000)
    p_serve.add_argument("--debug", action="store_true")
    p_serve.set_defaults(func=cmd_serve)
    return ap


def main(argv: Optional[List[str]] = None) -> int:
    args = build_parser().parse_args(argv)
    if args.log_level:
        set_level(args.log_level)
    try:
        return args.func(args)
    except KeyboardInterrupt:
        print("\nInterrupted.", file=sys.stderr)
        return 130


if __name__ == "__main__":  # pragma: no cover
    sys.exit(main())
