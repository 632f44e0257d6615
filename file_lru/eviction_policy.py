import logging
import os
from typing import Any, Hashable, List, NamedTuple, Optional, Tuple

from file_lru.errors import InsufficientCapacity, LRUError
from file_lru.files import remove_file_get_size, try_remove_file_get_size
from file_lru.storage import Store


class FileInfo(NamedTuple):
    """One entry evicted by insert_new_file."""
    key: Hashable
    path: Any
    file_size: int  # bytes reclaimed, 0 if the file was already gone


class LruCache:
    """
    Size-aware eviction policy on top of an ordered store whose values are file paths.

    The store owns the mapping and the recency order. This class adds
    'evict oldest until the new file fits' and deletes the files of evicted entries.
    """
    def __init__(self, store: Store):
        self._store = store

    @property
    def store(self) -> Store:
        return self._store

    def __len__(self) -> int:
        return len(self._store)

    # --- Pass-through operations ---

    def access(self, key: Hashable) -> Optional[Any]:
        """Returns the value for `key` and marks it as most recently used. None if absent."""
        return self._store.get(key)

    def peek(self, key: Hashable) -> Optional[Any]:
        """Like access, without touching the recency order."""
        return self._store.peek(key)

    def insert(self, key: Hashable, value: Any) -> Optional[Any]:
        """Returns the replaced value, if any."""
        return self._store.insert(key, value)

    def pop(self, key: Hashable) -> Optional[Tuple[Hashable, Any]]:
        return self._store.pop(key)

    def pop_least_recently_used(self) -> Optional[Tuple[Hashable, Any]]:
        return self._store.pop_lru()

    def most_recently_used(self) -> Optional[Hashable]:
        return self._store.mru()

    def most_recently_used_value(self) -> Optional[Any]:
        return self._store.peek_mru_value()

    def most_recently_used_pair(self) -> Optional[Tuple[Hashable, Any]]:
        key = self._store.mru()
        if key is None:
            return None
        return self._store.peek_key_value(key)

    def least_recently_used(self) -> Optional[Hashable]:
        return self._store.lru()

    def least_recently_used_value(self) -> Optional[Any]:
        return self._store.peek_lru_value()

    def least_recently_used_pair(self) -> Optional[Tuple[Hashable, Any]]:
        key = self._store.lru()
        if key is None:
            return None
        return self._store.peek_key_value(key)

    # --- File reclamation ---

    def remove_lru_file(self) -> Optional[int]:
        """
        Deletes the file of the least recently used entry and returns its size in bytes.

        Returns None on an empty cache or if the file is already gone.
        The entry itself stays in the store.
        """
        path = self.least_recently_used_value()
        if path is None:
            return None
        return remove_file_get_size(path)

    def remove_file(self, key: Hashable) -> Optional[int]:
        """
        Same as remove_lru_file, for the entry under `key`.
        Does not pop the entry nor change its recency.
        """
        path = self.peek(key)
        if path is None:
            return None
        return remove_file_get_size(path)

    # --- Capacity-aware insertion ---

    def insert_new_file(self, key: Hashable, path: Any, exceed_size: int) -> List[FileInfo]:
        """
        Evicts least recently used files until `path` fits, then maps `key` to it.

        - `exceed_size`: bytes still missing to place the new file,
          i.e. new_file_size - available_capacity.

        For example, in a 2000 MiB pool with 0.5 MiB available, placing a
        0.7 MiB file needs at least 0.3 MiB freed: pass ceil(0.3 * 1024**2).
        Do NOT subtract the size of a file the new one replaces, that file is
        reclaimed here.

        Returns the evicted entries, oldest first. Raises InsufficientCapacity
        when the cache runs empty first, and FileIOError when an evicted file
        cannot be deleted. Evictions done before an error are kept and listed in
        the error's `evicted` attribute. Check file sizes before calling: a file
        larger than the whole pool flushes the cache.
        """
        evicted: List[FileInfo] = []
        held = None
        try:
            old_path = self._store.get(key)
            if old_path is not None and os.fspath(old_path) == os.fspath(path):
                # The file on disk already is the new content: keep it out of the victims.
                held = self._store.pop(key)
            elif old_path is not None:
                exceed_size -= self._reclaim_conflicting(key, old_path)

            while exceed_size >= 0:
                pair = self.least_recently_used_pair()
                if pair is None:
                    logging.warning(f"Cache exhausted, still {exceed_size} bytes short for {key!r}")
                    raise InsufficientCapacity()

                victim_key, victim_path = pair
                # The entry goes only once its file is gone (or was already missing).
                file_size = remove_file_get_size(victim_path)
                self._store.pop(victim_key)
                if file_size is None:
                    logging.warning(f"Evicting stale entry {victim_key!r}: {victim_path} was already gone")
                    file_size = 0
                else:
                    logging.info(f"Evicting {victim_key!r}: reclaimed {file_size} bytes from {victim_path}")

                exceed_size -= file_size
                evicted.append(FileInfo(victim_key, victim_path, file_size))

            self._store.insert(key, path)
        except LRUError as e:
            e.evicted = evicted
            if held is not None:
                # Its file was never touched, the mapping is still valid.
                self._store.insert(*held)
            raise
        return evicted

    def _reclaim_conflicting(self, key: Hashable, old_path: Any) -> int:
        """Best-effort removal of the file currently stored under `key`. Returns bytes freed."""
        file_size = try_remove_file_get_size(old_path)
        if not file_size:
            return 0
        logging.info(f"Replaced file of {key!r}: reclaimed {file_size} bytes from {old_path}")
        return file_size
