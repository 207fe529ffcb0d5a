"""Data models for the directory watcher package."""

import os
import stat as stat_module
import time
from dataclasses import dataclass, field
from enum import Enum
from pathlib import Path
from typing import Optional, Union


class EventType(Enum):
    """Kinds of events a watch node emits."""
    ADD = "add"
    CREATE = "create"
    CHANGE = "change"
    REMOVE = "remove"
    ERROR = "error"

    @classmethod
    def coerce(cls, value: Union["EventType", str]) -> "EventType":
        """Accept either a member or its string value."""
        if isinstance(value, cls):
            return value
        return cls(value)


# Event kinds that can be reported for a newly discovered entry.
DISCOVERY_EVENTS = (EventType.ADD, EventType.CREATE)


@dataclass(frozen=True)
class EntryStat:
    """
    Last-known state of a directory entry.

    Attributes:
        size: Size in bytes
        mtime: Modification time as a Unix timestamp
        mtime_ns: Modification time in nanoseconds, used for comparisons
        is_directory: Whether the entry is a directory
    """
    size: int
    mtime: float
    mtime_ns: int
    is_directory: bool = False

    @classmethod
    def from_stat_result(cls, result: os.stat_result) -> "EntryStat":
        """Build from the result of ``os.stat``."""
        return cls(
            size=result.st_size,
            mtime=result.st_mtime,
            mtime_ns=result.st_mtime_ns,
            is_directory=stat_module.S_ISDIR(result.st_mode),
        )

    def differs_from(self, other: "EntryStat") -> bool:
        """True if size or modification time changed."""
        return self.size != other.size or self.mtime_ns != other.mtime_ns

    def to_dict(self) -> dict:
        """Convert to dictionary for serialization."""
        return {
            "size": self.size,
            "mtime": self.mtime,
            "is_directory": self.is_directory,
        }


@dataclass
class RawSignal:
    """
    Raw notification from the native watcher before reconciliation.

    Attributes:
        event_type: Native event type string (created, deleted, modified, moved, ...)
        name: Entry name inside the watched directory, or None when the
            notification did not identify a single entry
        timestamp: Unix timestamp when the notification arrived
    """
    event_type: str
    name: Optional[str] = None
    timestamp: float = field(default_factory=time.time)


@dataclass(frozen=True)
class WatchEvent:
    """
    A reconciled event as delivered to listeners.

    Attributes:
        event_type: The kind of event
        path: Full path of the affected entry
        stat: New stat (or last-known stat for REMOVE)
        old_stat: Previous stat, only for CHANGE
        timestamp: Unix timestamp when the event was recorded
    """
    event_type: EventType
    path: Path
    stat: Optional[EntryStat] = None
    old_stat: Optional[EntryStat] = None
    timestamp: float = field(default_factory=time.time)

    def to_dict(self) -> dict:
        """Convert to dictionary for serialization."""
        return {
            "event_type": self.event_type.value,
            "path": str(self.path),
            "stat": self.stat.to_dict() if self.stat else None,
            "old_stat": self.old_stat.to_dict() if self.old_stat else None,
            "timestamp": self.timestamp,
        }
