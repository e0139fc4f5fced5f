"""
wd2sql command line
===================
Usage:
    wd2sql latest-all.json wikidata.db
    bzcat latest-all.json.bz2 | wd2sql - wikidata.db
    wd2sql latest-all.json.gz wikidata.db --language de
"""

import argparse
import logging
import sys
import time
from dataclasses import replace
from typing import List, Optional

from wd2sql import __version__
from wd2sql.config import config
from wd2sql.loader import LoaderError, LoadStats, load_dump

logger = logging.getLogger(__name__)


def format_size(byte_count: int) -> str:
    """Decimal units, as disk sizes are usually quoted"""
    size = float(byte_count)
    for unit in ('B', 'kB', 'MB', 'GB', 'TB'):
        if size < 1000 or unit == 'TB':
            return f"{size:.0f} {unit}" if unit == 'B' else f"{size:.2f} {unit}"
        size /= 1000


def format_duration(seconds: int) -> str:
    minutes, seconds = divmod(int(seconds), 60)
    hours, minutes = divmod(minutes, 60)
    parts = [f"{hours}h"] if hours else []
    if hours or minutes:
        parts.append(f"{minutes}m")
    parts.append(f"{seconds}s")
    return ' '.join(parts)


class ProgressPrinter:
    """Rewrites a single status line on stdout"""

    def __init__(self):
        self.start_time = time.monotonic()

    def __call__(self, stats: LoadStats, finished: bool):
        elapsed = format_duration(time.monotonic() - self.start_time)
        print(
            f"\x1b[2K\r{stats.entities:,} entities, {format_size(stats.bytes)} processed in {elapsed}"
            f"{'.' if finished else '...'}",
            end='',
            flush=True,
        )
        if finished:
            print("\nCreating indices...")


def print_summary(stats: LoadStats):
    print("\n" + "=" * 60)
    print("LOAD SUMMARY")
    print("=" * 60)
    print(f"Lines read: {stats.lines:,}")
    print(f"Entities: {stats.entities:,}")
    print(f"Claims stored: {stats.claims:,} ({stats.deprecated_claims:,} deprecated skipped)")
    print(f"Errors: {stats.errors:,}")
    if stats.errors:
        print(f"  read: {stats.read_errors:,}, JSON: {stats.json_errors:,}, "
              f"entity: {stats.record_errors:,}, store: {stats.store_errors:,}")
    if stats.failed_indices:
        print(f"Indices not created: {', '.join(stats.failed_indices)}")
    print("=" * 60)


def main(argv: Optional[List[str]] = None) -> int:
    """Main execution with CLI"""
    parser = argparse.ArgumentParser(
        prog='wd2sql',
        description='Transform a Wikidata JSON dump into an SQLite database'
    )

    parser.add_argument(
        'json_file',
        help=f"Wikidata JSON dump (.json, .json.gz, .json.bz2), or '{config.loader.stdin_sentinel}' for standard input"
    )
    parser.add_argument(
        'sqlite_file',
        help='SQLite database to create (must not exist)'
    )
    parser.add_argument(
        '--language', default=config.loader.language,
        help='Language of labels, descriptions and multilingual text (default: %(default)s)'
    )
    parser.add_argument(
        '--batch-size', type=int, default=config.loader.batch_size,
        help='Entities per transaction (default: %(default)s)'
    )
    parser.add_argument(
        '--durable', action='store_true',
        help='Keep SQLite journaling and synchronous writes (slower)'
    )
    parser.add_argument(
        '--version', action='version', version=f"%(prog)s {__version__}"
    )

    args = parser.parse_args(argv)
    if args.batch_size < 1:
        parser.error('--batch-size must be at least 1')

    logging.basicConfig(level=config.logging.level, format=config.logging.format)

    loader_config = replace(
        config.loader,
        language=args.language,
        batch_size=args.batch_size,
        disable_durability=config.loader.disable_durability and not args.durable,
    )

    print(f"wd2sql {__version__}")

    try:
        stats = load_dump(args.json_file, args.sqlite_file, loader_config, on_progress=ProgressPrinter())
    except LoaderError as e:
        logger.error(str(e))
        return 1

    print_summary(stats)
    print("Finished.")
    return 0


if __name__ == "__main__":
    sys.exit(main())
