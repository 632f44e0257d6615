import logging
import os
from typing import NamedTuple

# --- Configuration ---
# Read from the environment so each cache node can be configured by its pod spec.
CACHE_DIR = os.environ.get("FILE_LRU_CACHE_DIR", "/var/cache/file_lru")
CAPACITY_BYTES = int(os.environ.get("FILE_LRU_CAPACITY_BYTES", str(2 * 1024**3)))
REDIS_HOST = os.environ.get("FILE_LRU_REDIS_HOST", "localhost")
REDIS_PORT = int(os.environ.get("FILE_LRU_REDIS_PORT", "6379"))
REDIS_DB = int(os.environ.get("FILE_LRU_REDIS_DB", "0"))
NAMESPACE = os.environ.get("FILE_LRU_NAMESPACE", "file_lru")
LOG_LEVEL = os.environ.get("FILE_LRU_LOG_LEVEL", "INFO")
SIDECAR_HOST = os.environ.get("FILE_LRU_HOST", "0.0.0.0")
SIDECAR_PORT = int(os.environ.get("FILE_LRU_PORT", "8001"))

LOG_FORMAT = '%(asctime)s - [%(name)s] - %(levelname)s - %(message)s'


class CacheSettings(NamedTuple):
    cache_dir: str
    capacity_bytes: int
    redis_host: str
    redis_port: int
    redis_db: int
    namespace: str
    log_level: str


def load_settings(environ=None) -> CacheSettings:
    """Builds settings from `environ` (defaults to os.environ), falling back to the module defaults."""
    if environ is None:
        environ = os.environ
    return CacheSettings(
        cache_dir=environ.get("FILE_LRU_CACHE_DIR", CACHE_DIR),
        capacity_bytes=int(environ.get("FILE_LRU_CAPACITY_BYTES", CAPACITY_BYTES)),
        redis_host=environ.get("FILE_LRU_REDIS_HOST", REDIS_HOST),
        redis_port=int(environ.get("FILE_LRU_REDIS_PORT", REDIS_PORT)),
        redis_db=int(environ.get("FILE_LRU_REDIS_DB", REDIS_DB)),
        namespace=environ.get("FILE_LRU_NAMESPACE", NAMESPACE),
        log_level=environ.get("FILE_LRU_LOG_LEVEL", LOG_LEVEL),
    )


def configure_logging(level: str = LOG_LEVEL):
    logging.basicConfig(level=level.upper(), format=LOG_FORMAT)
