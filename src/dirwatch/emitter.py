"""Per-node listener registry."""

import logging
from collections import defaultdict
from typing import Callable, Dict, List, Union

from .exceptions import UnknownEventError
from .models import EventType

logger = logging.getLogger(__name__)

Listener = Callable[..., None]


class EventEmitter:
    """
    Registry of listeners keyed by event kind.

    Listeners run synchronously in registration order. A listener that
    raises is logged and skipped so the remaining listeners still run.
    An ERROR emitted with no listener registered is logged instead of
    being raised.
    """

    def __init__(self):
        self._listeners: Dict[EventType, List[Listener]] = defaultdict(list)

    @staticmethod
    def _kind(kind: Union[EventType, str]) -> EventType:
        try:
            return EventType.coerce(kind)
        except ValueError:
            raise UnknownEventError(f"Unknown event kind: {kind!r}") from None

    def on(self, kind: Union[EventType, str], listener: Listener) -> Listener:
        """
        Register a listener.

        Args:
            kind: Event kind (EventType member or its string value)
            listener: Called with the event's arguments

        Returns:
            The listener, so ``on`` can be used as a decorator factory
        """
        self._listeners[self._kind(kind)].append(listener)
        return listener

    def once(self, kind: Union[EventType, str], listener: Listener) -> Listener:
        """Register a listener that is removed after its first call."""
        event_type = self._kind(kind)

        def wrapper(*args):
            self.off(event_type, wrapper)
            listener(*args)

        self._listeners[event_type].append(wrapper)
        return wrapper

    def off(self, kind: Union[EventType, str], listener: Listener) -> bool:
        """
        Unregister a listener.

        Returns:
            True if the listener was registered
        """
        listeners = self._listeners.get(self._kind(kind), [])
        if listener in listeners:
            listeners.remove(listener)
            return True
        return False

    def remove_all_listeners(self) -> None:
        self._listeners.clear()

    def listener_count(self, kind: Union[EventType, str]) -> int:
        return len(self._listeners.get(self._kind(kind), []))

    def emit(self, kind: EventType, *args) -> bool:
        """
        Call every listener registered for ``kind``.

        Returns:
            True if at least one listener was called
        """
        listeners = list(self._listeners.get(kind, []))

        if not listeners:
            if kind is EventType.ERROR:
                error = args[0] if args else None
                logger.error(f"Unhandled watcher error: {error}")
            return False

        for listener in listeners:
            try:
                listener(*args)
            except Exception:
                logger.error(f"Listener for {kind.value!r} failed", exc_info=True)
        return True
