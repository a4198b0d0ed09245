"""
Main entry point for the tiles & marble quotation system.
Command-line access to database setup, data import and quotation export.
"""

import argparse
import logging
import sys
from pathlib import Path
from typing import List, Optional

from tilequote import __version__
from tilequote.add_sample_products import add_sample_data
from tilequote.core.calculations import format_money
from tilequote.core.database import database_url, get_db_info, make_session_factory
from tilequote.core.exceptions import QuotationError
from tilequote.core.logging_config import get_logger, log_error, setup_logging
from tilequote.core.migration import import_local_storage_dump
from tilequote.core.paths import AppPaths, app_paths
from tilequote.core.services import QuotationService
from tilequote.core.storage import SqlRepository

logger = get_logger(__name__)


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="tilequote",
        description="Tiles & marble quotation system",
    )
    parser.add_argument("--version", action="version", version=f"%(prog)s {__version__}")
    parser.add_argument("--data-dir", type=Path, default=None,
                        help="Data directory (default: platform user data directory)")
    parser.add_argument("--debug", action="store_true", help="Verbose console logging")
    parser.add_argument("--no-log-files", action="store_true", help="Log to the console only")

    commands = parser.add_subparsers(dest="command", required=True)
    commands.add_parser("init", help="Create the database")
    commands.add_parser("seed", help="Add sample catalog items, staff and customers")

    import_cmd = commands.add_parser("import-dump", help="Import a browser local-storage dump")
    import_cmd.add_argument("path", type=Path)
    import_cmd.add_argument("--no-backup", action="store_true",
                            help="Do not back up existing collections")

    list_cmd = commands.add_parser("list", help="List saved quotations")
    list_cmd.add_argument("--search", default="", help="Filter by number or customer name")

    export_cmd = commands.add_parser("export", help="Export a saved quotation as PDF")
    export_cmd.add_argument("number", help="Quotation number, e.g. PTM-240101-042")
    export_cmd.add_argument("--out", type=Path, default=None,
                            help="Output directory (default: exports directory)")
    export_cmd.add_argument("--logo-fallback", action="store_true",
                            help="Print the company name when the logo cannot be decoded")
    return parser


def open_repository(paths: AppPaths) -> SqlRepository:
    return SqlRepository(make_session_factory(database_url(paths.database_path)))


def run_command(args: argparse.Namespace, paths: AppPaths) -> int:
    repository = open_repository(paths)

    if args.command == "init":
        print(f"Database ready at: {paths.database_path}")
        for key, value in get_db_info(paths).items():
            print(f"  {key}: {value}")
        return 0

    if args.command == "seed":
        added = add_sample_data(repository)
        print(f"Added {added['catalog']} catalog items, {added['staff']} staff, "
              f"{added['customers']} customers")
        return 0

    if args.command == "import-dump":
        counts = import_local_storage_dump(args.path, repository, paths, backup=not args.no_backup)
        for name, count in sorted(counts.items()):
            print(f"{name}: {count}")
        return 0

    service = QuotationService(repository, paths)

    if args.command == "list":
        quotations = service.search(args.search)
        for quotation in quotations:
            symbol = quotation.company.currency_symbol
            print(f"{quotation.quotation_number}  {quotation.issue_date.isoformat()}  "
                  f"{quotation.customer.name:<30}  {format_money(quotation.grand_total, symbol)}")
        print(f"{len(quotations)} quotation(s)")
        return 0

    if args.command == "export":
        quotation = service.get_by_number(args.number)
        path = service.export_pdf(quotation, args.out, header_logo_fallback=args.logo_fallback)
        print(f"Wrote {path}")
        return 0

    raise ValueError(f"Unknown command: {args.command}")


def main(argv: Optional[List[str]] = None) -> int:
    """Main application entry point."""
    args = build_parser().parse_args(argv)
    paths = AppPaths(args.data_dir) if args.data_dir else app_paths

    setup_logging(
        log_level=logging.DEBUG if args.debug else logging.WARNING,
        enable_file_logging=not args.no_log_files,
        logs_dir=paths.logs_dir,
    )
    logger.info(f"Application data directory: {paths.data_dir}")

    try:
        return run_command(args, paths)
    except (QuotationError, OSError, ValueError) as e:
        log_error(e, context=f"command {args.command}")
        print(f"Error: {e}", file=sys.stderr)
        return 1


if __name__ == "__main__":
    sys.exit(main())
