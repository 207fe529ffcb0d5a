"""
Directory Watcher Package

Watches a directory tree and reports changes to the immediate entries of
each watched directory as structured events.

Features:
- Snapshot of each directory's entries (size, modification time, type)
- Events: ADD (present at start), CREATE, CHANGE, REMOVE, ERROR
- Native notifications via watchdog, reconciled against fresh stats
- One watch node per subdirectory, torn down recursively
- Sequential per-node job queue on an asyncio event loop
"""

from .models import (
    EventType,
    EntryStat,
    RawSignal,
    WatchEvent,
)

from .config import WatchOptions, skip_hidden

from .exceptions import (
    WatcherError,
    ListingError,
    SubscriptionError,
    UnknownEventError,
)

from .emitter import EventEmitter
from .fs_watcher import (
    FSEventHandler,
    Subscription,
    TreeObserver,
    TreeSubscription,
)
from .node import WatchNode, watch
from .recorder import EventRecorder, RecordedEvent


__all__ = [
    # Models
    "EventType",
    "EntryStat",
    "RawSignal",
    "WatchEvent",
    # Config
    "WatchOptions",
    "skip_hidden",
    # Exceptions
    "WatcherError",
    "ListingError",
    "SubscriptionError",
    "UnknownEventError",
    # Components
    "EventEmitter",
    "FSEventHandler",
    "Subscription",
    "TreeObserver",
    "TreeSubscription",
    "EventRecorder",
    "RecordedEvent",
    # Watch nodes
    "WatchNode",
    "watch",
]

__version__ = "0.1.0"
