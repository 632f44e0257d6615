import hashlib
import logging
import os
from typing import Hashable, List, NamedTuple, Optional

from file_lru.errors import InsufficientCapacity, LRUError
from file_lru.eviction_policy import FileInfo, LruCache
from file_lru.files import try_remove_file_get_size
from file_lru.storage import MemoryStore, RedisStore


class CacheUsage(NamedTuple):
    used_bytes: int
    capacity_bytes: int
    entries: int


def _file_size(path) -> int:
    try:
        return os.stat(path).st_size
    except FileNotFoundError:
        return 0


class FileCacheManager:
    """
    Keeps a directory of files under a byte budget.

    Files are written into `cache_dir`, registered in the LRU cache and the
    oldest ones are deleted when a new file does not fit. The manager is the
    only writer of the directory.
    """
    def __init__(self, cache: LruCache, cache_dir: str, capacity_bytes: int):
        self.cache = cache
        self.cache_dir = cache_dir
        self._capacity = capacity_bytes

        os.makedirs(cache_dir, exist_ok=True)
        self._used = self._scan_used()
        logging.info(f"File cache initialized at {cache_dir}: {self._used} of {capacity_bytes} bytes used.")

    @classmethod
    def from_settings(cls, settings, temporary: bool = False) -> "FileCacheManager":
        """Builds a manager on a Redis store, or on an in-memory one when `temporary`."""
        store = MemoryStore() if temporary else RedisStore.from_settings(settings)
        return cls(LruCache(store), settings.cache_dir, settings.capacity_bytes)

    def _scan_used(self) -> int:
        with os.scandir(self.cache_dir) as entries:
            return sum(entry.stat().st_size for entry in entries if entry.is_file())

    @property
    def capacity(self) -> int:
        return self._capacity

    @property
    def used(self) -> int:
        return self._used

    @property
    def available_space(self) -> int:
        return self._capacity - self._used

    def usage(self) -> CacheUsage:
        return CacheUsage(self._used, self._capacity, len(self.cache))

    def path_for(self, key: str, data: bytes) -> str:
        """Local path of `data` cached under `key`. New content gets a new file name."""
        key_digest = hashlib.sha256(key.encode('utf-8')).hexdigest()[:32]
        data_digest = hashlib.sha256(data).hexdigest()[:16]
        return os.path.join(self.cache_dir, f"{key_digest}-{data_digest}")

    def place_file(self, key: str, data: bytes) -> List[FileInfo]:
        """
        Writes `data` to the cache directory and registers it under `key`,
        evicting least recently used files as needed.

        Returns the evicted entries. A file that cannot fit even in an empty
        cache is rejected before anything is evicted (eviction keeps going
        while the overflow is zero, so the file must be strictly smaller than
        the capacity).
        """
        size = len(data)
        if size >= self._capacity:
            raise InsufficientCapacity(f"{size} bytes exceed the cache capacity of {self._capacity} bytes.")

        path = self.path_for(key, data)
        old_path = self.cache.peek(key)
        if old_path is not None and os.fspath(old_path) == path and os.path.exists(path):
            logging.debug(f"{key} already cached with identical content.")
            self.cache.access(key)
            return []
        replaced_size = _file_size(old_path) if old_path is not None else 0

        with open(path, "wb") as f:
            f.write(data)
        exceed = size - self.available_space

        try:
            evicted = self.cache.insert_new_file(key, path, exceed)
        except LRUError as e:
            self._account_evictions(e.evicted, old_path, replaced_size)
            try_remove_file_get_size(path)
            logging.error(f"Failed to place {key} ({size} bytes): {e}")
            raise

        self._account_evictions(evicted, old_path, replaced_size)
        self._used += size
        logging.info(f"Placed {key} at {path}, used {self._used} of {self._capacity} bytes.")
        return evicted

    def _account_evictions(self, evicted: List[FileInfo], old_path, replaced_size: int):
        self._used -= sum(info.file_size for info in evicted)
        if old_path is None or not replaced_size or os.path.exists(old_path):
            return
        # An old file evicted by the loop is already counted in `evicted`.
        evicted_paths = {os.fspath(info.path) for info in evicted if info.file_size}
        if os.fspath(old_path) not in evicted_paths:
            self._used -= replaced_size

    def open_file_path(self, key: str) -> Optional[str]:
        """Returns the local path for `key` and marks it as recently used."""
        return self.cache.access(key)

    def discard(self, key: Hashable) -> Optional[FileInfo]:
        """Deletes the file under `key` and forgets the entry. None if the key is unknown."""
        path = self.cache.peek(key)
        if path is None:
            return None
        file_size = self.cache.remove_file(key) or 0
        self.cache.pop(key)
        self._used -= file_size
        logging.info(f"Discarded {key}: reclaimed {file_size} bytes.")
        return FileInfo(key, path, file_size)
