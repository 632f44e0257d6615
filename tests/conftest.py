import fakeredis
import pytest

from file_lru import LruCache, MemoryStore, RedisStore


@pytest.fixture
def redis_server():
    return fakeredis.FakeServer()


@pytest.fixture(params=["memory", "redis"])
def store(request, redis_server):
    if request.param == "memory":
        return MemoryStore()
    return RedisStore(fakeredis.FakeRedis(server=redis_server), namespace="test")


@pytest.fixture
def cache(store):
    return LruCache(store)


@pytest.fixture
def make_file(tmp_path):
    """Creates a file of `size` bytes under tmp_path and returns its path as a string."""
    def _make(name: str, size: int) -> str:
        path = tmp_path / name
        with open(path, "wb") as f:
            f.truncate(size)
        return str(path)
    return _make
