#!/usr/bin/env python3
"""
CLI for watching a directory and printing its events.

Usage:
    python -m src.cli watch /path/to/folder
    python -m src.cli watch /path/to/folder --create --skip-hidden
    python -m src.cli watch /path/to/folder --ignore "*.tmp" "*.swp" -v
"""

import argparse
import asyncio
import logging
import signal
import sys
from pathlib import Path
from typing import Optional

# Add src to path
sys.path.insert(0, str(Path(__file__).parent.parent))

from src.dirwatch import EventType, WatchNode, WatchOptions, skip_hidden


logging.basicConfig(
    level=logging.INFO,
    format="%(asctime)s [%(levelname)s] %(name)s: %(message)s",
    datefmt="%Y-%m-%d %H:%M:%S",
)
logger = logging.getLogger("cli")


class GracefulShutdown:
    """Handle graceful shutdown on SIGINT/SIGTERM."""

    def __init__(self, loop: asyncio.AbstractEventLoop):
        self._loop = loop
        self.stopped = asyncio.Event()
        signal.signal(signal.SIGINT, self._handler)
        signal.signal(signal.SIGTERM, self._handler)

    def _handler(self, signum, frame):
        logger.info("Received shutdown signal, stopping...")
        self._loop.call_soon_threadsafe(self.stopped.set)


def format_event(kind: EventType, path: Path, stat=None, old_stat=None) -> str:
    """Render one event as a single output line."""
    line = f"{kind.value:<7} {path}"
    if stat is not None:
        line += "/" if stat.is_directory else f" size={stat.size}"
    if old_stat is not None and not old_stat.is_directory:
        line += f" (was {old_stat.size})"
    return line


def print_events(node: WatchNode) -> None:
    """Subscribe a printer for every entry event of ``node``."""
    for kind in (EventType.ADD, EventType.CREATE, EventType.CHANGE, EventType.REMOVE):
        def printer(path, stat=None, old_stat=None, _kind=kind):
            print(format_event(_kind, path, stat, old_stat), flush=True)

        node.on(kind, printer)

    node.on(EventType.ERROR, lambda error: logger.error(f"Watcher error: {error}"))


def build_options(args) -> WatchOptions:
    return WatchOptions(
        add_or_create=EventType.CREATE if args.create else EventType.ADD,
        filter=skip_hidden if args.skip_hidden else None,
        ignore_patterns=list(args.ignore or []),
    )


async def run_watch(root: Path, options: WatchOptions, shutdown: Optional[asyncio.Event] = None) -> None:
    """Watch ``root`` until ``shutdown`` is set."""
    if shutdown is None:
        shutdown = GracefulShutdown(asyncio.get_running_loop()).stopped

    node = WatchNode(root, options)
    print_events(node)

    try:
        await node.wait_ready()
        logger.info(f"Watching {root} ({len(node.entries)} entries)")
        logger.info("Press Ctrl+C to stop")
        await shutdown.wait()
    finally:
        node.close()

    logger.info("Watcher stopped")


def cmd_watch(args):
    """Run a watcher on one directory."""
    root = Path(args.root).resolve()

    if not root.exists():
        logger.error(f"Root path does not exist: {root}")
        sys.exit(1)
    if not root.is_dir():
        logger.error(f"Root path is not a directory: {root}")
        sys.exit(1)

    asyncio.run(run_watch(root, build_options(args)))


def main(argv=None):
    parser = argparse.ArgumentParser(
        description="Watch a directory and print add/create/change/remove events",
        formatter_class=argparse.RawDescriptionHelpFormatter,
        epilog="""
Examples:
  # Report existing entries as "add", then follow changes
  python -m src.cli watch ./documents

  # Report existing entries as "create" and skip dot-files
  python -m src.cli watch ./documents --create --skip-hidden
        """,
    )
    parser.add_argument("-v", "--verbose", action="store_true", help="Enable debug logging")

    subparsers = parser.add_subparsers(dest="command", required=True)

    watch_parser = subparsers.add_parser("watch", help="Watch a directory")
    watch_parser.add_argument("root", help="Directory to watch")
    watch_parser.add_argument("--create", action="store_true", help="Report existing entries as 'create' instead of 'add'")
    watch_parser.add_argument("--skip-hidden", action="store_true", help="Ignore entries whose name starts with a dot")
    watch_parser.add_argument("--ignore", nargs="+", metavar="PATTERN", help="Glob patterns of entry names to ignore")
    watch_parser.set_defaults(func=cmd_watch)

    args = parser.parse_args(argv)

    if args.verbose:
        logging.getLogger().setLevel(logging.DEBUG)

    args.func(args)


if __name__ == "__main__":
    main()
