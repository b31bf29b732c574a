"""CLI with subcommands for the TheSession.org tunebook import."""

import argparse
import sys

from tunebook import db
from tunebook.config import DATA_DIR, DB_PATH, MAX_ERRORS_SHOWN, OUTPUT_DIR


def _load_or_exit(data_dir, verbose):
    from tunebook.loader import load_raw_data
    try:
        return load_raw_data(data_dir, verbose=verbose)
    except (OSError, ValueError) as e:
        print(f"Processing failed: {e}", file=sys.stderr)
        sys.exit(1)


def cmd_download(args):
    """Download the TheSession.org data dump."""
    from tunebook.download import download_all
    print(f"Downloading TheSession.org data files into {args.data_dir}...")
    _, _, failed = download_all(args.data_dir, force=args.force, workers=args.workers)
    if failed:
        sys.exit(1)


def cmd_process(args):
    """Normalize the raw export and write JSON documents and/or the database."""
    from tunebook.export import export_processed
    from tunebook.normalize import popularity_scores
    from tunebook.pipeline import print_stats, run

    verbose = not args.quiet
    inputs = _load_or_exit(args.data_dir, verbose)

    def exporter(output):
        if args.output:
            export_processed(output, args.output, verbose=verbose)
        if not args.no_db:
            scores, pop_errors = popularity_scores(inputs.popularity)
            if pop_errors and verbose:
                print(f"  Skipped {len(pop_errors)} unreadable popularity rows")
            conn = db.get_connection(args.db)
            try:
                db.save_output(conn, output, popularity=scores, verbose=verbose)
            finally:
                conn.close()

    stats = run(inputs, exporter=exporter, strict_links=args.strict_links,
                verbose=verbose)
    print_stats(stats, max_errors=args.max_errors)


def cmd_analyze(args):
    """Normalize the raw export in memory and print summary statistics."""
    from tunebook.analyze import print_summary, summarize
    from tunebook.pipeline import process

    inputs = _load_or_exit(args.data_dir, verbose=True)
    output = process(inputs, verbose=False)
    print_summary(summarize(output))


def cmd_status(args):
    """Show database statistics."""
    conn = db.get_connection(args.db)
    stats = db.db_stats(conn)
    print(f"  Users:              {stats['users']}")
    print(f"  Tunes:              {stats['tunes']}")
    print(f"  Settings:           {stats['tune_settings']}")
    print(f"  Aliases:            {stats['tune_aliases']}")
    print(f"  Sets:               {stats['tune_sets']}")
    print(f"  Set compositions:   {stats['set_compositions']}")
    print(f"  Artists:            {stats['artists']}")
    print(f"  Recordings:         {stats['recordings']}")
    print(f"  Tracks:             {stats['recording_tracks']}")
    print(f"  Sessions:           {stats['sessions']}")
    print(f"  Import errors:      {stats['import_errors']}")

    types = db.tune_type_counts(conn)
    if types:
        print("  By tune type:")
        for row in types:
            print(f"    {row['type'] or 'NULL':15s} {row['n']}")
    conn.close()


def cmd_errors(args):
    """List stored import errors."""
    conn = db.get_connection(args.db)
    rows = db.recent_errors(conn, limit=args.limit)
    if rows:
        print(f"  {len(rows)} import errors:")
        for row in rows:
            print(f"    - {row['entity_type']} {row['entity_id']}: {row['error_message']}")
    else:
        print("  No import errors.")
    conn.close()


def cmd_search(args):
    """Search stored tunes by name, alias, type or mode."""
    conn = db.get_connection(args.db)
    rows = db.search_tunes(conn, args.text, limit=args.limit)
    if not rows:
        print("  No matching tunes.")
    for row in rows:
        print(f"  {row['tune_id']:>6}  {row['canonical_name']} "
              f"({row['type']}, {row['mode']}) [{row['popularity_score']}]")
    conn.close()


def main(argv=None):
    parser = argparse.ArgumentParser(
        prog="tunebook",
        description="TheSession.org tunebook normalization",
    )
    subparsers = parser.add_subparsers(dest="command", help="Available commands")

    # download
    p_download = subparsers.add_parser("download", help="Download the data dump")
    p_download.add_argument("--data-dir", default=DATA_DIR,
                            help=f"Data directory (default: {DATA_DIR})")
    p_download.add_argument("--force", action="store_true",
                            help="Re-download files that are already present")
    p_download.add_argument("--workers", type=int, default=None,
                            help="Number of parallel download workers (default: 4)")
    p_download.set_defaults(func=cmd_download)

    # process
    p_process = subparsers.add_parser("process", help="Normalize the raw export")
    p_process.add_argument("--data-dir", default=DATA_DIR,
                           help=f"Data directory (default: {DATA_DIR})")
    p_process.add_argument("-o", "--output", default=OUTPUT_DIR,
                           help="Directory for processed_*.json (empty to skip)")
    p_process.add_argument("--db", default=DB_PATH,
                           help=f"SQLite database path (default: {DB_PATH})")
    p_process.add_argument("--no-db", action="store_true",
                           help="Do not write the SQLite database")
    p_process.add_argument("--strict-links", action="store_true",
                           help="Report references to unknown tunes as errors")
    p_process.add_argument("--max-errors", type=int, default=MAX_ERRORS_SHOWN,
                           help="Errors to list in the report (default: 10)")
    p_process.add_argument("-q", "--quiet", action="store_true",
                           help="Only print the final report")
    p_process.set_defaults(func=cmd_process)

    # analyze
    p_analyze = subparsers.add_parser("analyze", help="Print summary statistics")
    p_analyze.add_argument("--data-dir", default=DATA_DIR,
                           help=f"Data directory (default: {DATA_DIR})")
    p_analyze.set_defaults(func=cmd_analyze)

    # status
    p_status = subparsers.add_parser("status", help="Show DB statistics")
    p_status.add_argument("--db", default=DB_PATH)
    p_status.set_defaults(func=cmd_status)

    # errors
    p_errors = subparsers.add_parser("errors", help="List stored import errors")
    p_errors.add_argument("--db", default=DB_PATH)
    p_errors.add_argument("--limit", type=int, default=20)
    p_errors.set_defaults(func=cmd_errors)

    # search
    p_search = subparsers.add_parser("search", help="Search stored tunes")
    p_search.add_argument("text", help="Text to look for")
    p_search.add_argument("--db", default=DB_PATH)
    p_search.add_argument("--limit", type=int, default=20)
    p_search.set_defaults(func=cmd_search)

    args = parser.parse_args(argv)
    if not args.command:
        parser.print_help()
        sys.exit(1)

    args.func(args)
