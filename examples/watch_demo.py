#!/usr/bin/env python3
"""
Directory watcher demo.

This example demonstrates:
1. Starting a watch node on a directory with existing files
2. Events for files created, modified, renamed and deleted at the top level
3. A subdirectory that is tracked but whose contents are not reported
4. Listening to a child node directly to see one level deeper

Usage:
    python examples/watch_demo.py
"""

import asyncio
import shutil
import sys
import tempfile
from pathlib import Path

# Add project root to path
sys.path.insert(0, str(Path(__file__).parent.parent))

from src.dirwatch import EventType, WatchNode, skip_hidden


ICONS = {
    EventType.ADD: "•",
    EventType.CREATE: "+",
    EventType.CHANGE: "~",
    EventType.REMOVE: "-",
}


def attach_printer(node: WatchNode, label: str) -> None:
    for kind, icon in ICONS.items():
        def printer(path, stat, old_stat=None, _kind=kind, _icon=icon):
            detail = "dir" if stat.is_directory else f"{stat.size} bytes"
            print(f"[{label}] {_icon} {_kind.value.upper()}: {path.name} ({detail})")

        node.on(kind, printer)
    node.on(EventType.ERROR, lambda error: print(f"[{label}] ! ERROR: {error}"))


async def step(message: str, delay: float = 0.5) -> None:
    print(f"\n[DEMO] {message}")
    await asyncio.sleep(delay)


async def run_demo(demo_dir: Path) -> None:
    root = demo_dir / "watched"
    root.mkdir()
    (root / "existing.txt").write_text("already here")
    (root / ".hidden").write_text("filtered out")

    node = WatchNode(root, filter=skip_hidden)
    attach_printer(node, "ROOT")
    await node.wait_ready()

    (root / "hello.txt").write_text("Hello, World!")
    await step("Created hello.txt")

    (root / "hello.txt").write_text("Hello, Updated World!")
    await step("Modified hello.txt")

    (root / "hello.txt").rename(root / "greeting.txt")
    await step("Renamed hello.txt to greeting.txt")

    subdir = root / "subdir"
    subdir.mkdir()
    await step("Created subdir")

    child = node.child("subdir")
    if child is not None:
        attach_printer(child, "SUBDIR")

    (subdir / "nested.txt").write_text("Nested file content")
    await step("Created subdir/nested.txt (reported by the child only)")

    shutil.rmtree(subdir)
    await step("Removed subdir")

    (root / "greeting.txt").unlink()
    await step("Deleted greeting.txt")

    node.close()
    (root / "ignored.txt").write_text("no events expected")
    await step("Closed the watcher; created ignored.txt")


def main():
    """Run the demo in a temporary directory."""
    demo_dir = Path(tempfile.mkdtemp(prefix="dirwatch_demo_"))
    print("=" * 60)
    print(f"Demo directory: {demo_dir}")
    print("=" * 60)

    try:
        asyncio.run(run_demo(demo_dir))
    finally:
        shutil.rmtree(demo_dir, ignore_errors=True)
        print("\n[DEMO] Cleaned up")


if __name__ == "__main__":
    main()
