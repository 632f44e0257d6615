from typing import List, Optional


class LRUError(Exception):
    """
    Base error of the file cache.

    `evicted` holds the FileInfo records of evictions that were already applied
    when the error was raised. They are never rolled back.
    """
    def __init__(self, message: str, evicted: Optional[List] = None):
        super().__init__(message)
        self.evicted = list(evicted) if evicted else []


class StoreError(LRUError):
    """The ordered store backend failed (connection, encoding, ...)."""


class FileIOError(LRUError):
    """A file could not be inspected or deleted for a reason other than 'not found'."""
    def __init__(self, message: str, path=None, evicted: Optional[List] = None):
        super().__init__(message, evicted)
        self.path = path


class InsufficientCapacity(LRUError):
    """Every entry was evicted and the new file still does not fit."""
    def __init__(self, message: str = "the file was too large to place.", evicted: Optional[List] = None):
        super().__init__(message, evicted)
