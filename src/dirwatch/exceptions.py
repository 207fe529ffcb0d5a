"""Custom exceptions for the directory watcher package."""

from pathlib import Path
from typing import Optional


class WatcherError(Exception):
    """Base exception for all watcher errors."""

    def __init__(self, message: str, path: Optional[Path] = None, cause: Optional[BaseException] = None):
        super().__init__(message)
        self.path = path
        self.cause = cause


class ListingError(WatcherError):
    """Watched directory could not be listed (removed, permission denied)."""

    def __init__(self, path: Path, cause: Optional[BaseException] = None):
        super().__init__(f"Cannot list directory {path}: {cause}", path, cause)


class SubscriptionError(WatcherError):
    """Native change notifications could not be set up for a directory."""

    def __init__(self, path: Path, cause: Optional[BaseException] = None):
        super().__init__(f"Cannot watch directory {path}: {cause}", path, cause)


class UnknownEventError(WatcherError, ValueError):
    """Listener registered for an event kind that is never emitted."""
    pass
