"""Native change notifications for a watched tree using watchdog."""

import logging
import os
import threading
from abc import ABC, abstractmethod
from pathlib import Path
from typing import Callable, Dict, List, Optional

from watchdog.events import DirModifiedEvent, FileSystemEvent, FileSystemEventHandler
from watchdog.observers import Observer

from .exceptions import SubscriptionError
from .models import RawSignal

logger = logging.getLogger(__name__)

SignalCallback = Callable[[RawSignal], None]
PathCallback = Callable[[Path, str], None]

# Access-only notifications never change size or modification time.
IGNORED_EVENT_TYPES = frozenset({"opened", "closed_no_write"})

# Seconds an observer thread blocks waiting for events; bounds how long close() waits.
OBSERVER_TIMEOUT = 0.2


class Subscription(ABC):
    """Handle for an open native subscription; ``close()`` releases it."""

    @abstractmethod
    def close(self) -> None:
        """Stop delivering signals for this subscription."""


SubscriptionFactory = Callable[[Path, SignalCallback], Subscription]


class FSEventHandler(FileSystemEventHandler):
    """
    Handler that reports the paths touched by each watchdog event.

    A directory's own modification notice is dropped: watchdog raises it
    next to every create, delete or move inside that directory, and the
    entry-level event already names what changed.
    """

    def __init__(self, callback: PathCallback):
        super().__init__()
        self.callback = callback

    def paths_for(self, event: FileSystemEvent) -> List[Path]:
        """Native paths of one watchdog event; source first, then destination."""
        if event.event_type in IGNORED_EVENT_TYPES:
            return []
        if isinstance(event, DirModifiedEvent):
            return []

        paths = [Path(os.fsdecode(event.src_path))]
        dest_path = getattr(event, "dest_path", "")
        if dest_path:
            paths.append(Path(os.fsdecode(dest_path)))
        return paths

    def on_any_event(self, event):
        for path in self.paths_for(event):
            self.callback(path, event.event_type)


class TreeObserver:
    """
    One recursive watchdog observer shared by every node of a watched tree.

    The whole tree is scheduled once at its root, so a tree of any depth
    uses a single native watch handle. Nodes register the directory they
    own through ``subscribe``; each notification is routed to the node
    owning the parent directory of the touched path, named by the path's
    last component. A notification about the root itself has no owning
    parent and reaches the root's node without a name. Paths below
    directories no node owns (filtered or not yet adopted) are dropped.

    Example:
        tree = TreeObserver(root)
        subscription = tree.subscribe(root, on_signal)
        ...
        subscription.close()
        tree.stop()
    """

    def __init__(self, root: Path, join_timeout: float = 5.0):
        """
        Initialize the tree observer; nothing is started until the first subscription.

        Args:
            root: Top directory of the tree
            join_timeout: Seconds to wait for the observer thread on stop
        """
        self.root = Path(os.path.abspath(root))
        self.join_timeout = join_timeout
        self._resolved_root = self.root.resolve()
        self._handler = FSEventHandler(self.dispatch)
        self._callbacks: Dict[Path, SignalCallback] = {}
        self._observer: Optional[Observer] = None
        self._stopped = False
        self._lock = threading.Lock()

    @property
    def running(self) -> bool:
        return self._observer is not None

    def subscribe(self, path: Path, callback: SignalCallback) -> Subscription:
        """
        Register the node watching ``path``; starts the observer on first use.

        Raises:
            SubscriptionError: If the observer cannot be started or was stopped
        """
        path = Path(os.path.abspath(path))

        with self._lock:
            if self._stopped:
                raise SubscriptionError(path, RuntimeError("tree observer stopped"))
            if self._observer is None:
                self._observer = self._start_observer(path)
            self._callbacks[path] = callback

        return TreeSubscription(self, path, callback)

    def _start_observer(self, path: Path) -> Observer:
        observer = Observer(timeout=OBSERVER_TIMEOUT)
        try:
            observer.schedule(self._handler, str(self.root), recursive=True)
            observer.start()
        except OSError as e:
            raise SubscriptionError(path, e) from e

        logger.debug(f"Observer started for {self.root}")
        return observer

    def unsubscribe(self, path: Path, callback: SignalCallback) -> None:
        with self._lock:
            if self._callbacks.get(path) is callback:
                del self._callbacks[path]

    def _local_path(self, path: Path) -> Optional[Path]:
        """Map a native path onto the root as given (None if outside the tree)."""
        for base in (self.root, self._resolved_root):
            try:
                relative = path.relative_to(base)
            except ValueError:
                continue
            return self.root / relative
        return None

    def dispatch(self, path: Path, event_type: str) -> None:
        """Route one native path to the node owning it; runs on the observer thread."""
        local = self._local_path(path)
        if local is None:
            return

        with self._lock:
            owner = self._callbacks.get(local.parent) if local != self.root else None
            if owner is not None:
                signal = RawSignal(event_type=event_type, name=local.name)
            else:
                owner = self._callbacks.get(local)
                signal = RawSignal(event_type=event_type, name=None)

        if owner is not None:
            owner(signal)

    def stop(self) -> None:
        """Stop the observer thread; later subscriptions fail."""
        with self._lock:
            self._stopped = True
            observer = self._observer
            self._observer = None
            self._callbacks.clear()

        if observer is None:
            return
        observer.stop()
        observer.join(timeout=self.join_timeout)
        logger.debug(f"Observer stopped for {self.root}")


class TreeSubscription(Subscription):
    """A node's registration with a TreeObserver."""

    def __init__(self, tree: TreeObserver, path: Path, callback: SignalCallback):
        self.tree = tree
        self.path = path
        self.callback = callback
        self._closed = False

    def close(self) -> None:
        if self._closed:
            return
        self._closed = True
        self.tree.unsubscribe(self.path, self.callback)
