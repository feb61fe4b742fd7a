#!/usr/bin/env python3
"""
CLI for watching paths and printing filtered change events.

Usage:
    smartwatch src/main.py README.md
    smartwatch -i build,dist -v src
    git ls-files | smartwatch --stdin
"""

import argparse
import logging
import signal
import sys
from dataclasses import replace
from datetime import datetime
from typing import List, Optional, TextIO

from dotenv import load_dotenv

from .config import WatcherConfig
from .exceptions import WatcherError
from .models import Event
from .queue import EventChannel
from .watch import watch


logger = logging.getLogger("smartwatch.cli")


class GracefulShutdown:
    """Close the watch session on SIGINT/SIGTERM."""

    def __init__(self, session):
        self.session = session
        signal.signal(signal.SIGINT, self._handler)
        signal.signal(signal.SIGTERM, self._handler)

    def _handler(self, signum, frame):
        logger.info("Received shutdown signal, stopping...")
        self.session.notifier.close()


def split_ignored(values: List[str]) -> List[str]:
    """Flatten repeated, comma-separated -i values."""
    ignored = []
    for value in values:
        ignored.extend(part for part in value.split(",") if part.strip())
    return ignored


def read_paths(stream: TextIO) -> List[str]:
    """Read one path per line, skipping blank lines."""
    return [line.strip() for line in stream if line.strip()]


def format_event(event: Event) -> str:
    timestamp = datetime.fromtimestamp(event.timestamp).isoformat(timespec="milliseconds")
    return f"{timestamp} {event.kind.value} {event.path}"


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="smartwatch",
        description="Watch files and print the changes that matter",
    )
    parser.add_argument("paths", nargs="*", help="Files or directories to watch")
    parser.add_argument("-v", "--verbose", action="store_true", help="Enable debug logging")
    parser.add_argument(
        "-i", "--ignore", action="append", default=[],
        help="Comma-separated paths to ignore, with everything below them (repeatable)",
    )
    parser.add_argument("--stdin", action="store_true", help="Also read paths to watch from stdin, one per line")
    parser.add_argument(
        "--skip-unchanged", action="store_true",
        help="Drop write events that leave a file's content unchanged",
    )
    parser.add_argument("--max-hash-size", type=int, default=None, help="Largest file size to fingerprint, in bytes")
    parser.add_argument("--buffer", type=int, default=None, help="Output channel capacity (0 = unbounded)")
    return parser


def build_config(args: argparse.Namespace) -> WatcherConfig:
    overrides = {}
    if args.verbose:
        overrides["verbose"] = True
    if args.skip_unchanged:
        overrides["skip_unchanged_writes"] = True
    if args.max_hash_size is not None:
        overrides["max_hashed_file_size"] = args.max_hash_size
    if args.buffer is not None:
        overrides["output_buffer_size"] = args.buffer
    return replace(WatcherConfig.from_env(), **overrides)


def main(argv: Optional[List[str]] = None) -> int:
    load_dotenv()

    parser = build_parser()
    args = parser.parse_args(argv)

    logging.basicConfig(
        level=logging.DEBUG if args.verbose else logging.INFO,
        format="%(asctime)s [%(levelname)s] %(name)s: %(message)s",
        datefmt="%Y-%m-%d %H:%M:%S",
    )

    paths = list(args.paths)
    if args.stdin:
        paths.extend(read_paths(sys.stdin))
    if not paths:
        parser.error("no paths to watch")

    try:
        config = build_config(args)
    except ValueError as e:
        parser.error(str(e))

    output = EventChannel(config.output_buffer_size)
    try:
        session = watch(paths, split_ignored(args.ignore), output, config)
    except WatcherError as e:
        logger.error(f"{e}")
        return 1

    GracefulShutdown(session)
    logger.info("Press Ctrl+C to stop")

    for event in output:
        print(format_event(event), flush=True)

    session.wait(config.join_timeout)
    logger.info("Watch stopped")
    return 0


if __name__ == "__main__":
    sys.exit(main())
