"""Configuration for the directory watcher package."""

import fnmatch
from dataclasses import dataclass, field, replace
from typing import TYPE_CHECKING, Callable, List, Optional, Union

from .models import DISCOVERY_EVENTS, EventType

if TYPE_CHECKING:
    from .fs_watcher import SubscriptionFactory


def skip_hidden(name: str) -> bool:
    """Entry filter that rejects dot-files and dot-directories."""
    return not name.startswith(".")


@dataclass
class WatchOptions:
    """
    Configuration options for a watch node and its descendants.

    Attributes:
        add_or_create: Event kind reported for entries found by the initial
            scan, either ADD (already existed) or CREATE (treat as new)
        filter: Predicate on entry names; entries it rejects are never tracked
        ignore_patterns: Glob patterns on entry names to exclude
        subscribe: Factory opening the native change subscription for a
            directory; defaults to the watchdog-backed subscription
        join_timeout: Seconds to wait for a native observer thread on close
    """
    add_or_create: Union[EventType, str] = EventType.ADD
    filter: Optional[Callable[[str], bool]] = None
    ignore_patterns: List[str] = field(default_factory=list)
    subscribe: Optional["SubscriptionFactory"] = None
    join_timeout: float = 5.0

    def __post_init__(self):
        self.add_or_create = EventType.coerce(self.add_or_create)
        if self.add_or_create not in DISCOVERY_EVENTS:
            raise ValueError(
                f"add_or_create must be 'add' or 'create', got {self.add_or_create.value!r}"
            )

    def accepts(self, name: str) -> bool:
        """
        Check whether an entry name should be tracked.

        Args:
            name: Entry name (not a full path)

        Returns:
            True if the entry passes the ignore patterns and the filter
        """
        for pattern in self.ignore_patterns:
            if fnmatch.fnmatch(name, pattern):
                return False
        if self.filter is not None and not self.filter(name):
            return False
        return True

    def for_child(self, add_or_create: EventType) -> "WatchOptions":
        """Copy of these options for a child node with its own initial kind."""
        return replace(self, add_or_create=add_or_create)
