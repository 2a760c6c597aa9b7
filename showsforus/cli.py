import argparse
import logging
import sqlite3
import sys
from pathlib import Path

from showsforus import __version__
import showsforus.config as cfg_module
import showsforus.db as db_module
from showsforus.errors import ResetRefused
from showsforus.importer import DataImporter
from showsforus.models import EventSearchFilters
from showsforus.sources import SOURCES


def ensure_reset_allowed(cfg: dict) -> None:
    if cfg_module.is_production(cfg):
        raise ResetRefused("Clear operation not allowed in production")


def _make_source(cfg: dict, name: str = "ticketmaster"):
    return SOURCES[name].from_config(cfg)


def _import(args, cfg) -> int:
    conn = db_module.connect(cfg_module.get_database_path(cfg))
    importer = DataImporter(
        conn,
        _make_source(cfg),
        default_limit=cfg_module.get_import_settings(cfg)["limit"],
    )
    filters = EventSearchFilters(
        city=args.city,
        state_code=args.state,
        radius=args.radius,
        start_date=args.start,
        end_date=args.end,
        limit=args.limit,
    )
    result = importer.import_musical_events(filters)

    print(f"Import completed: {result.imported} imported, {result.skipped} skipped")
    for entity, n in sorted(result.created.items()):
        print(f"  new {entity}s: {n}")
    for error in result.errors:
        print(f"  {error}", file=sys.stderr)

    # A failed fetch leaves nothing imported and nothing skipped
    if result.errors and not (result.imported or result.skipped):
        return 1
    return 0


def _stats(args, cfg) -> int:
    conn = db_module.connect(cfg_module.get_database_path(cfg))
    stats = DataImporter(conn, _make_source(cfg)).get_import_stats()
    for table, n in stats.to_dict().items():
        print(f"{table:<14}{n:>8}")
    return 0


def _clear(args, cfg) -> int:
    try:
        ensure_reset_allowed(cfg)
    except ResetRefused as exc:
        print(f"Error: {exc}.", file=sys.stderr)
        return 1

    db_path = cfg_module.get_database_path(cfg)
    if not args.yes:
        answer = input(f"Delete all imported data in '{db_path}'? [y/N] ")
        if answer.strip().lower() not in ("y", "yes"):
            print("Aborted.")
            return 1

    conn = db_module.connect(db_path)
    DataImporter(conn, _make_source(cfg)).clear_all_data()
    print("All imported data cleared.")
    return 0


def _check(args, cfg) -> int:
    source = _make_source(cfg)
    if not source.is_configured():
        print("Ticketmaster API key is not configured (set TICKETMASTER_API_KEY).")
        return 1
    if not source.check_connection():
        print("Ticketmaster API key is configured but the API could not be reached.")
        return 1
    print("Ticketmaster API is reachable.")
    return 0


def main(argv=None) -> int:
    parser = argparse.ArgumentParser(
        prog="sfu",
        description="Import musical theatre performances from Ticketmaster",
    )
    parser.add_argument("--version", action="version", version=f"%(prog)s {__version__}")
    parser.add_argument(
        "--config", default="config.toml", metavar="PATH",
        help="Path to config.toml (default: config.toml)",
    )
    parser.add_argument("-v", "--verbose", action="store_true", help="Enable debug logging")

    subparsers = parser.add_subparsers(dest="command", required=True)

    # import
    sp_import = subparsers.add_parser("import", help="Import musical events into the database")
    sp_import.add_argument("--city", help="City to search in")
    sp_import.add_argument("--state", metavar="CODE", help="State code, e.g. NY")
    sp_import.add_argument("--radius", type=int, help="Search radius around the city (miles)")
    sp_import.add_argument("--start", metavar="DATE", help="Only events on or after this date")
    sp_import.add_argument("--end", metavar="DATE", help="Only events on or before this date")
    sp_import.add_argument("--limit", type=int, help="Maximum number of events to fetch")

    subparsers.add_parser("stats", help="Show row counts for imported tables")

    # clear
    sp_clear = subparsers.add_parser("clear", help="Delete all imported data (refused in production)")
    sp_clear.add_argument("-y", "--yes", action="store_true", help="Don't ask for confirmation")

    subparsers.add_parser("check", help="Check the Ticketmaster API key and connectivity")

    args = parser.parse_args(argv)
    logging.basicConfig(
        level=logging.DEBUG if args.verbose else logging.INFO,
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
    )
    cfg = cfg_module.load(Path(args.config))

    commands = {"import": _import, "stats": _stats, "clear": _clear, "check": _check}
    try:
        return commands[args.command](args, cfg)
    except sqlite3.Error as exc:
        print(f"Database error: {exc}", file=sys.stderr)
        return 1


if __name__ == "__main__":
    sys.exit(main())
