from file_lru.errors import FileIOError, InsufficientCapacity, LRUError, StoreError
from file_lru.eviction_policy import FileInfo, LruCache
from file_lru.files import remove_file_get_size, try_remove_file_get_size
from file_lru.storage import MemoryStore, RedisStore, Store

__all__ = [
    "FileIOError",
    "FileInfo",
    "InsufficientCapacity",
    "LRUError",
    "LruCache",
    "MemoryStore",
    "RedisStore",
    "Store",
    "StoreError",
    "remove_file_get_size",
    "try_remove_file_get_size",
]
