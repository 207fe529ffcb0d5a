"""Per-directory watch node: snapshot, reconciliation and child lifecycle."""

import asyncio
import logging
import os
from dataclasses import replace
from functools import partial
from pathlib import Path
from typing import Dict, Optional, Set, Union

from .config import WatchOptions
from .emitter import EventEmitter
from .exceptions import ListingError, SubscriptionError, WatcherError
from .fs_watcher import Subscription, TreeObserver
from .models import EntryStat, EventType, RawSignal

logger = logging.getLogger(__name__)

_START = object()
_STOP = object()


class WatchNode(EventEmitter):
    """
    Watches the immediate entries of one directory.

    The node keeps a snapshot of its entries, subscribes to native change
    notifications and turns each notification into ADD, CREATE, CHANGE or
    REMOVE events by comparing a fresh stat against the snapshot. Every
    subdirectory gets its own child node. Children are owned by this node
    and torn down with it, but their events are not re-emitted here; use
    ``child(name)`` to listen to a deeper level.

    All work for a node runs on one worker task that drains a job queue,
    so reconciliations of the same node never interleave. Stat and listing
    calls run in the event loop's default executor.

    Must be created while an asyncio event loop is running. Startup is
    queued as the first job and failures are reported through the ERROR
    event, never raised from the constructor.

    Example:
        node = WatchNode("/srv/incoming", filter=skip_hidden)
        node.on("create", lambda path, stat: print("new", path))
        await node.wait_ready()
        ...
        node.close()
    """

    def __init__(
        self,
        path: Union[str, Path],
        options: Optional[WatchOptions] = None,
        **overrides,
    ):
        """
        Initialize the node and schedule its startup.

        Args:
            path: Directory to watch
            options: Watch options shared with child nodes
            **overrides: Individual WatchOptions fields to override

        Raises:
            RuntimeError: If no event loop is running
        """
        super().__init__()
        if options is None:
            options = WatchOptions(**overrides)
        elif overrides:
            options = replace(options, **overrides)

        self.path = Path(os.path.abspath(path))

        # A root without a signal source owns one observer for its whole tree;
        # descendants inherit its subscribe through the options.
        self._tree: Optional[TreeObserver] = None
        if options.subscribe is None:
            self._tree = TreeObserver(self.path, options.join_timeout)
            options = replace(options, subscribe=self._tree.subscribe)
        self.options = options

        self._entries: Dict[str, EntryStat] = {}
        self._children: Dict[str, "WatchNode"] = {}
        self._subscription: Optional[Subscription] = None
        self._closed = False

        self._loop = asyncio.get_running_loop()
        self._ready = asyncio.Event()
        self._jobs: asyncio.Queue = asyncio.Queue()
        self._queued_names: Set[str] = set()
        self._rescan_queued = False

        self._jobs.put_nowait(_START)
        self._worker = self._loop.create_task(self._run())

    def __repr__(self) -> str:
        state = "closed" if self._closed else "watching"
        return f"<WatchNode {self.path} {state} entries={len(self._entries)}>"

    @property
    def closed(self) -> bool:
        return self._closed

    @property
    def ready(self) -> bool:
        """True once the initial scan has finished (or the node closed)."""
        return self._ready.is_set()

    @property
    def entries(self) -> Dict[str, EntryStat]:
        """Copy of the current snapshot, keyed by entry name."""
        return dict(self._entries)

    def child(self, name: str) -> Optional["WatchNode"]:
        """Child node for a tracked subdirectory, if any."""
        return self._children.get(name)

    async def wait_ready(self) -> None:
        """Wait until the initial scan is done or the node is closed."""
        await self._ready.wait()

    async def idle(self, recursive: bool = False) -> None:
        """
        Wait until every queued job of this node has been processed.

        Args:
            recursive: Also wait for every child node, depth-first
        """
        await self._jobs.join()
        if recursive:
            for child in list(self._children.values()):
                await child.idle(recursive=True)

    def refresh(self, name: Optional[str] = None) -> None:
        """
        Queue a reconciliation as if a native notification had arrived.

        Args:
            name: Entry to re-check, or None for a full rescan
        """
        self._enqueue(RawSignal(event_type="refresh", name=name))

    # Signal intake

    def _on_signal(self, signal: RawSignal) -> None:
        """Subscription callback; may run on a foreign thread."""
        try:
            running = asyncio.get_running_loop()
        except RuntimeError:
            running = None

        if running is self._loop:
            self._enqueue(signal)
            return

        try:
            self._loop.call_soon_threadsafe(self._enqueue, signal)
        except RuntimeError:
            # Loop already closed; nothing left to reconcile.
            logger.debug(f"Dropped signal for {self.path}: event loop closed")

    def _enqueue(self, signal: RawSignal) -> None:
        if self._closed:
            return

        # A queued rescan that has not started yet will see this change too.
        if self._rescan_queued:
            return

        if signal.name is None:
            self._rescan_queued = True
        elif not self.options.accepts(signal.name):
            return
        elif signal.name in self._queued_names:
            return
        else:
            self._queued_names.add(signal.name)

        logger.debug(f"Signal {signal.event_type} {signal.name or '*'} in {self.path}")
        self._jobs.put_nowait(signal)

    async def _run(self) -> None:
        """Worker: drain the job queue one job at a time."""
        while True:
            job = await self._jobs.get()
            try:
                if job is _STOP:
                    return
                if self._closed:
                    continue
                if job is _START:
                    await self._start()
                elif job.name is None:
                    self._rescan_queued = False
                    await self._rescan(EventType.CREATE)
                else:
                    self._queued_names.discard(job.name)
                    await self._reconcile(job.name, EventType.CREATE)
            except Exception as e:
                logger.error(f"Reconciliation failed in {self.path}: {e}", exc_info=True)
            finally:
                self._jobs.task_done()

    async def _start(self) -> None:
        try:
            subscription = await self._loop.run_in_executor(
                None, self.options.subscribe, self.path, self._on_signal
            )
        except SubscriptionError as e:
            self._fail(e)
            return
        except OSError as e:
            self._fail(SubscriptionError(self.path, e))
            return

        if self._closed:
            subscription.close()
            return
        self._subscription = subscription

        await self._rescan(self.options.add_or_create)
        self._ready.set()
        logger.debug(f"Watching {self.path} ({len(self._entries)} entries)")

    def _fail(self, error: WatcherError) -> None:
        """Report a fatal subscription failure and close the node."""
        if self._closed:
            return
        logger.warning(str(error))
        self.emit(EventType.ERROR, error)
        self.close()

    # Reconciliation

    def _list_names(self):
        return os.listdir(self.path)

    async def _rescan(self, kind_for_new: EventType) -> None:
        """
        Reconcile the whole directory against a fresh listing.

        Args:
            kind_for_new: Event kind for entries not in the snapshot
        """
        try:
            names = await self._loop.run_in_executor(None, self._list_names)
        except OSError as e:
            if self._closed:
                return
            error = ListingError(self.path, e)
            logger.warning(str(error))
            self.emit(EventType.ERROR, error)
            return

        if self._closed:
            return

        names = [name for name in names if self.options.accepts(name)]
        present = set(names)

        for name in [name for name in self._entries if name not in present]:
            self._forget(name)
            if self._closed:
                return

        for name in names:
            await self._reconcile(name, kind_for_new)
            if self._closed:
                return

    async def _reconcile(self, name: str, kind_for_new: EventType) -> None:
        """
        Bring one entry of the snapshot up to date.

        Args:
            name: Entry name
            kind_for_new: Event kind if the entry is not in the snapshot
        """
        full_path = self.path / name

        try:
            result = await self._loop.run_in_executor(None, os.stat, full_path)
        except OSError:
            result = None

        if self._closed:
            return

        if result is None:
            self._forget(name)
            return

        stat = EntryStat.from_stat_result(result)
        old_stat = self._entries.get(name)

        if old_stat is not None and old_stat.is_directory != stat.is_directory:
            # Replaced by an entry of the other type under the same name.
            self._forget(name)
            if self._closed:
                return
            old_stat = None
            kind_for_new = EventType.CREATE

        self._entries[name] = stat

        if old_stat is not None:
            if stat.differs_from(old_stat):
                logger.debug(f"change {full_path} size {old_stat.size} -> {stat.size}")
                self.emit(EventType.CHANGE, full_path, stat, old_stat)
            return

        logger.debug(f"{kind_for_new.value} {full_path}")
        self.emit(kind_for_new, full_path, stat)
        if self._closed:
            return

        if stat.is_directory:
            self._adopt(name, kind_for_new)

    def _forget(self, name: str) -> None:
        """Drop an entry that no longer exists, tearing down its child node first."""
        old_stat = self._entries.pop(name, None)
        if old_stat is None:
            return

        child = self._children.pop(name, None)
        if child is not None:
            child.remove_all()

        logger.debug(f"remove {self.path / name}")
        self.emit(EventType.REMOVE, self.path / name, old_stat)

    # Child lifecycle

    def _adopt(self, name: str, kind: EventType) -> None:
        """Create the child node for a newly discovered subdirectory."""
        child = WatchNode(self.path / name, self.options.for_child(kind))
        child.on(EventType.ERROR, partial(self._on_child_error, name, child))
        self._children[name] = child

    def _on_child_error(self, name: str, child: "WatchNode", error: WatcherError) -> None:
        """Structural listener: re-check a child's entry when the child fails."""
        logger.debug(f"Child {child.path} reported: {error}")
        if self._children.get(name) is child:
            self._enqueue(RawSignal(event_type="child_error", name=name))

    def remove_all(self) -> None:
        """
        Emit REMOVE for everything this node tracks, then close it.

        Children are emptied first so leaves are reported before the
        directories that contained them.
        """
        if self._closed:
            return

        for child in list(self._children.values()):
            child.remove_all()
        self._children.clear()

        for name, stat in list(self._entries.items()):
            self.emit(EventType.REMOVE, self.path / name, stat)
            if self._closed:
                return

        self.close()

    def close(self) -> None:
        """
        Release the subscription, close every child and drop the snapshot.

        Jobs still queued are discarded; a job already running sees the
        closed flag after its next await and stops without side effects.
        """
        if self._closed:
            return
        self._closed = True

        if self._subscription is not None:
            subscription = self._subscription
            self._subscription = None
            subscription.close()

        for child in list(self._children.values()):
            child.close()

        if self._tree is not None:
            self._tree.stop()

        self._children.clear()
        self._entries.clear()
        self._queued_names.clear()
        self._rescan_queued = False

        while True:
            try:
                self._jobs.get_nowait()
            except asyncio.QueueEmpty:
                break
            self._jobs.task_done()
        self._jobs.put_nowait(_STOP)

        self._ready.set()
        logger.debug(f"Closed {self.path}")

    async def __aenter__(self) -> "WatchNode":
        await self.wait_ready()
        return self

    async def __aexit__(self, exc_type, exc_val, exc_tb):
        self.close()
        return False


def watch(
    path: Union[str, Path],
    options: Optional[WatchOptions] = None,
    **overrides,
) -> WatchNode:
    """
    Start watching a directory.

    Args:
        path: Directory to watch
        options: Watch options
        **overrides: Individual WatchOptions fields, e.g. ``add_or_create="create"``

    Returns:
        The root WatchNode; call ``close()`` on it when done
    """
    return WatchNode(path, options, **overrides)
