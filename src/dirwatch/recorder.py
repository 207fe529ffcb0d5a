"""Ordered log of the events a watch node emits."""

import itertools
from dataclasses import dataclass
from pathlib import Path
from typing import List, Optional, Union

from .emitter import EventEmitter
from .models import EntryStat, EventType, WatchEvent


@dataclass(frozen=True)
class RecordedEvent:
    """A WatchEvent with its position in the recording."""
    seq: int
    event: WatchEvent

    @property
    def event_type(self) -> EventType:
        return self.event.event_type

    @property
    def path(self) -> Path:
        return self.event.path

    @property
    def stat(self) -> Optional[EntryStat]:
        return self.event.stat

    @property
    def old_stat(self) -> Optional[EntryStat]:
        return self.event.old_stat


class EventRecorder:
    """
    Subscribes to every entry event of an emitter and keeps them in order.

    Errors are collected separately in ``errors``.
    """

    KINDS = (EventType.ADD, EventType.CREATE, EventType.CHANGE, EventType.REMOVE)

    def __init__(self, emitter: EventEmitter):
        self._emitter = emitter
        self._events: List[RecordedEvent] = []
        self._seq = itertools.count(1)
        self.errors: list = []

        self._listeners = {}
        for kind in self.KINDS:
            listener = self._make_listener(kind)
            self._listeners[kind] = listener
            emitter.on(kind, listener)
        emitter.on(EventType.ERROR, self.errors.append)

    def _make_listener(self, kind: EventType):
        def record(path, stat=None, old_stat=None):
            self._events.append(
                RecordedEvent(
                    seq=next(self._seq),
                    event=WatchEvent(event_type=kind, path=Path(path), stat=stat, old_stat=old_stat),
                )
            )

        return record

    def events(
        self,
        kind: Optional[Union[EventType, str]] = None,
        path: Optional[Union[str, Path]] = None,
    ) -> List[RecordedEvent]:
        """
        Recorded events, optionally filtered.

        Args:
            kind: Only events of this kind
            path: Only events for this full path
        """
        event_type = EventType.coerce(kind) if kind is not None else None
        wanted = Path(path) if path is not None else None
        return [
            e for e in self._events
            if (event_type is None or e.event_type is event_type)
            and (wanted is None or e.path == wanted)
        ]

    def clear(self) -> None:
        self._events.clear()
        self.errors.clear()

    def detach(self) -> None:
        """Stop recording."""
        for kind, listener in self._listeners.items():
            self._emitter.off(kind, listener)
        self._emitter.off(EventType.ERROR, self.errors.append)

    def __len__(self) -> int:
        return len(self._events)
