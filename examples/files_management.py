"""
Fills a 2048-byte file cache and shows which files get rotated out.

Run with: python examples/files_management.py
"""
import os
import tempfile

from file_lru import InsufficientCapacity, LruCache, MemoryStore
from file_lru.config import configure_logging

FILE_SIZES = [512, 512, 768, 512, 1536]
TOTAL_CAPACITY = 2048


def place_file(cache: LruCache, path: str, size: int, exceed: int):
    """Creates a `size`-byte file at `path` and lets the cache make room for it."""
    with open(path, "wb") as f:
        f.truncate(size)

    removed_files = cache.insert_new_file(path, path, exceed)
    if removed_files:
        print(f"removed: {removed_files}")
    return removed_files


def main():
    configure_logging()
    cache = LruCache(MemoryStore())
    used = 0

    with tempfile.TemporaryDirectory() as workdir:
        for i, size in enumerate(FILE_SIZES):
            path = os.path.join(workdir, f"temp_{i}")

            for info in place_file(cache, path, size, size - (TOTAL_CAPACITY - used)):
                used -= info.file_size
            used += size
            print(f"after inserting {path}, used {used} of {TOTAL_CAPACITY} bytes")

        size = TOTAL_CAPACITY + 1
        exceeded = size - (TOTAL_CAPACITY - used)
        print(f"size: {size} B, exceed: {exceeded} B")

        try:
            place_file(cache, os.path.join(workdir, f"temp_{len(FILE_SIZES)}"), size, exceeded)
        except InsufficientCapacity as e:
            # Everything was flushed trying to make room.
            print(f"{e} evicted: {[info.key for info in e.evicted]}")


if __name__ == '__main__':
    main()
