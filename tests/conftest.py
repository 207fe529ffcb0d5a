"""Shared fixtures for directory watcher tests."""

import asyncio
import threading
from pathlib import Path
from typing import Dict, List, Optional

import pytest
import pytest_asyncio

from src.dirwatch.config import WatchOptions
from src.dirwatch.fs_watcher import Subscription
from src.dirwatch.models import RawSignal
from src.dirwatch.node import WatchNode
from src.dirwatch.recorder import EventRecorder

pytest_plugins = ("pytest_asyncio",)


class FakeSubscription(Subscription):
    """In-memory subscription; signals are fired by the test."""

    def __init__(self, hub: "FakeSignals", path: Path, callback):
        self.hub = hub
        self.path = path
        self.callback = callback
        self.closed = False

    def close(self) -> None:
        self.closed = True


class FakeSignals:
    """
    Subscription factory that records every subscription it opens.

    Use ``fire(path, name)`` to deliver a native notification to the node
    watching ``path``.
    """

    def __init__(self):
        self.subscriptions: Dict[Path, FakeSubscription] = {}
        self.opened: List[Path] = []
        self.fail_paths = set()
        self._lock = threading.Lock()

    def __call__(self, path: Path, callback) -> FakeSubscription:
        if path in self.fail_paths:
            raise OSError(f"cannot watch {path}")
        subscription = FakeSubscription(self, path, callback)
        with self._lock:
            self.subscriptions[path] = subscription
            self.opened.append(path)
        return subscription

    def fire(self, path, name: Optional[str] = None, event_type: str = "modified") -> bool:
        subscription = self.subscriptions.get(Path(path))
        if subscription is None or subscription.closed:
            return False
        subscription.callback(RawSignal(event_type=event_type, name=name))
        return True

    def is_open(self, path) -> bool:
        subscription = self.subscriptions.get(Path(path))
        return subscription is not None and not subscription.closed


@pytest.fixture
def signals():
    return FakeSignals()


@pytest.fixture
def tree(tmp_path):
    """
    Directory layout used by the node tests:

        root/foo.txt, root/bar.js, root/.foo
        root/sub1/foo2a.txt, root/sub1/.foo2
        root/sub1/sub2/foo3a.txt
    """
    root = tmp_path / "root"
    (root / "sub1" / "sub2").mkdir(parents=True)
    for name in ("foo.txt", "bar.js", ".foo"):
        (root / name).write_text("abc")
    for name in ("foo2a.txt", ".foo2"):
        (root / "sub1" / name).write_text("abc")
    (root / "sub1" / "sub2" / "foo3a.txt").write_text("abc")
    return root


@pytest_asyncio.fixture
async def start_node(signals):
    """
    Factory starting a WatchNode fed by the in-memory signal source.

    Returns ``(node, recorder)`` once the initial scan is done. Every node
    started through the factory is closed after the test.
    """
    nodes = []

    async def start(path, **options):
        node = WatchNode(path, WatchOptions(subscribe=signals, **options))
        recorder = EventRecorder(node)
        nodes.append(node)
        await node.wait_ready()
        return node, recorder

    yield start

    for node in nodes:
        node.close()
    await asyncio.sleep(0)
