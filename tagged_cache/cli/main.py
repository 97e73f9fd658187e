"""CLI: tagged-cache stats, ids, tags, get, meta, clean, config validate."""

from __future__ import annotations

import argparse
import sqlite3
import sys
from datetime import datetime, timezone

from ..config import configure_logging, load_config, validate_config
from ..exceptions import CacheError
from ..storage.sqlite import SQLiteBackend
from ..types import CleaningMode


def _get_backend(args) -> SQLiteBackend:
    config = load_config(args.config)
    if args.db:
        config.backend.cache_db_complete_path = args.db
    configure_logging(config, verbose=args.verbose)
    if not config.backend.cache_db_complete_path:
        print(
            "No cache database configured. Pass --db or set "
            "backend.cache_db_complete_path in tagged-cache.yaml.",
            file=sys.stderr,
        )
        sys.exit(1)
    return SQLiteBackend.from_config(config)


def _fmt_ts(ts: int) -> str:
    if ts == 0:
        return "never"
    return datetime.fromtimestamp(ts, tz=timezone.utc).strftime("%Y-%m-%d %H:%M:%S UTC")


def cmd_stats(args):
    """Show entry and tag counts for the cache file."""
    with _get_backend(args) as cache:
        valid = cache.get_ids()
        stored = cache.records.count()
        tags = cache.get_tags()
        print(f"Database:      {cache.db_path}")
        print(f"Entries:       {stored:,}")
        print(f"Valid:         {len(valid):,}")
        print(f"Expired:       {stored - len(valid):,}")
        print(f"Tags:          {len(tags):,}")
        print(f"Disk filling:  {cache.get_filling_percentage()}%")


def cmd_ids(args):
    """List ids of valid entries."""
    with _get_backend(args) as cache:
        for cache_id in sorted(cache.get_ids()):
            print(cache_id)


def cmd_tags(args):
    """List all tags."""
    with _get_backend(args) as cache:
        tags = cache.get_tags()
        if not tags:
            print("No tags yet.")
            return
        for tag in sorted(tags):
            print(tag)


def cmd_get(args):
    """Write an entry's raw content to stdout."""
    with _get_backend(args) as cache:
        content = cache.load(args.id, skip_validity=args.expired)
    if content is None:
        print(f"No entry for id: {args.id}", file=sys.stderr)
        sys.exit(1)
    sys.stdout.buffer.write(content)
    sys.stdout.flush()


def cmd_meta(args):
    """Show tags and timestamps for one entry."""
    with _get_backend(args) as cache:
        meta = cache.get_metadatas(args.id)
    if meta is None:
        print(f"No entry for id: {args.id}", file=sys.stderr)
        sys.exit(1)
    print(f"Id:        {args.id}")
    print(f"Tags:      {', '.join(meta.tags) if meta.tags else '-'}")
    print(f"Modified:  {_fmt_ts(meta.mtime)}")
    print(f"Expires:   {_fmt_ts(meta.expire)}")


def cmd_clean(args):
    """Run a cleaning mode."""
    mode = CleaningMode(args.mode)
    if mode in (CleaningMode.MATCHING_TAG, CleaningMode.NOT_MATCHING_TAG, CleaningMode.MATCHING_ANY_TAG) and not args.tag:
        print(f"Mode '{mode.value}' needs at least one --tag", file=sys.stderr)
        sys.exit(1)
    with _get_backend(args) as cache:
        before = len(cache.get_ids())
        ok = cache.clean(mode, args.tag or [])
        after = len(cache.get_ids())
    print(f"Clean {mode.value}: {before - after} valid entries removed")
    if not ok:
        print("Clean did not fully succeed (see log)", file=sys.stderr)
        sys.exit(1)


def cmd_config_validate(args):
    """Validate the config file."""
    config = load_config(args.config)
    if args.db:
        config.backend.cache_db_complete_path = args.db
    errors = validate_config(config)
    if errors:
        print("Config validation errors:")
        for e in errors:
            print(f"  - {e}")
        sys.exit(1)
    print("Config is valid.")


def main(argv: list[str] | None = None):
    parser = argparse.ArgumentParser(
        prog="tagged-cache",
        description="Inspect and clean a tagged SQLite cache file",
    )
    parser.add_argument("--config", "-c", help="Path to config file")
    parser.add_argument("--db", help="Cache database path (overrides config)")
    parser.add_argument("--verbose", "-v", action="store_true", help="Debug logging")

    subparsers = parser.add_subparsers(dest="command")

    subparsers.add_parser("stats", help="Show entry and tag counts")
    subparsers.add_parser("ids", help="List ids of valid entries")
    subparsers.add_parser("tags", help="List all tags")

    get_parser = subparsers.add_parser("get", help="Print an entry's content")
    get_parser.add_argument("id", help="Cache id")
    get_parser.add_argument("--expired", action="store_true", help="Return the entry even if expired")

    meta_parser = subparsers.add_parser("meta", help="Show an entry's tags and timestamps")
    meta_parser.add_argument("id", help="Cache id")

    clean_parser = subparsers.add_parser("clean", help="Remove entries")
    clean_parser.add_argument(
        "--mode", "-m",
        choices=[m.value for m in CleaningMode],
        default=CleaningMode.OLD.value,
        help="Cleaning mode (default: old)",
    )
    clean_parser.add_argument("--tag", "-t", action="append", help="Tag (repeatable)")

    config_parser = subparsers.add_parser("config", help="Config operations")
    config_sub = config_parser.add_subparsers(dest="config_command")
    config_sub.add_parser("validate", help="Validate config file")

    args = parser.parse_args(argv)

    if not args.command:
        parser.print_help()
        sys.exit(1)

    try:
        if args.command == "stats":
            cmd_stats(args)
        elif args.command == "ids":
            cmd_ids(args)
        elif args.command == "tags":
            cmd_tags(args)
        elif args.command == "get":
            cmd_get(args)
        elif args.command == "meta":
            cmd_meta(args)
        elif args.command == "clean":
            cmd_clean(args)
        elif args.command == "config":
            if args.config_command == "validate":
                cmd_config_validate(args)
            else:
                print("Usage: tagged-cache config validate")
                sys.exit(1)
    except CacheError as e:
        print(f"Error: {e}", file=sys.stderr)
        sys.exit(1)
    except sqlite3.Error as e:
        print(f"Database error: {e}", file=sys.stderr)
        sys.exit(1)


if __name__ == "__main__":
    main()
