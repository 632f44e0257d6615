import logging
import os
from typing import Optional

from file_lru.errors import FileIOError


def remove_file_get_size(path) -> Optional[int]:
    """
    Deletes `path` and returns its size in bytes.

    Returns None if the file does not exist (nothing reclaimed).
    Any other OSError is raised as FileIOError.
    """
    try:
        file_size = os.stat(path).st_size
    except FileNotFoundError:
        return None
    except OSError as e:
        raise FileIOError(f"io: cannot stat {path}: {e}", path=path) from e

    try:
        os.remove(path)
    except FileNotFoundError:
        # Removed between stat and unlink.
        return None
    except OSError as e:
        raise FileIOError(f"io: cannot remove {path}: {e}", path=path) from e

    logging.debug(f"Removed {path} ({file_size} bytes)")
    return file_size


def try_remove_file_get_size(path) -> Optional[int]:
    """Best-effort variant of remove_file_get_size: failures are logged and reported as None."""
    try:
        return remove_file_get_size(path)
    except FileIOError as e:
        logging.warning(f"Could not reclaim {path}, ignoring: {e}")
        return None
