import os

import fakeredis
import pytest
import redis

from file_lru import FileInfo, FileIOError, InsufficientCapacity, LruCache, RedisStore, StoreError

CAPACITY = 2048


# --- Pass-through operations ---

def test_access_promotes_to_most_recently_used(cache):
    for key in ("a", "b", "c"):
        cache.insert(key, f"/cache/{key}")

    assert cache.access("a") == "/cache/a"
    assert cache.most_recently_used() == "a"
    assert cache.least_recently_used() == "b"


def test_access_missing_key_is_none(cache):
    assert cache.access("missing") is None


def test_peek_queries_keep_order(cache):
    for key in ("a", "b", "c"):
        cache.insert(key, f"/cache/{key}")

    assert cache.peek("a") == "/cache/a"
    assert cache.least_recently_used_value() == "/cache/a"
    assert cache.least_recently_used_pair() == ("a", "/cache/a")
    assert cache.most_recently_used_value() == "/cache/c"
    assert cache.most_recently_used_pair() == ("c", "/cache/c")

    assert cache.least_recently_used() == "a"
    assert cache.most_recently_used() == "c"


def test_empty_cache_queries(cache):
    assert len(cache) == 0
    assert cache.most_recently_used() is None
    assert cache.least_recently_used() is None
    assert cache.most_recently_used_value() is None
    assert cache.least_recently_used_value() is None
    assert cache.most_recently_used_pair() is None
    assert cache.least_recently_used_pair() is None
    assert cache.pop_least_recently_used() is None
    assert cache.pop("missing") is None
    assert cache.remove_lru_file() is None
    assert cache.remove_file("missing") is None


def test_insert_and_pop(cache):
    assert cache.insert("a", "/cache/a") is None
    assert cache.insert("a", "/cache/a2") == "/cache/a"
    cache.insert("b", "/cache/b")

    assert cache.pop("a") == ("a", "/cache/a2")
    assert cache.pop_least_recently_used() == ("b", "/cache/b")
    assert len(cache) == 0


def test_store_is_exposed(store):
    assert LruCache(store).store is store


# --- File reclamation ---

def test_remove_lru_file_keeps_entry(cache, make_file):
    cache.insert("a", make_file("a", 100))
    cache.insert("b", make_file("b", 200))

    assert cache.remove_lru_file() == 100
    assert not os.path.exists(cache.peek("a"))
    assert cache.least_recently_used() == "a"
    assert len(cache) == 2

    assert cache.remove_lru_file() is None


def test_remove_file_keeps_entry_and_order(cache, make_file):
    cache.insert("a", make_file("a", 100))
    cache.insert("b", make_file("b", 200))

    assert cache.remove_file("a") == 100
    assert cache.least_recently_used() == "a"
    assert cache.peek("a") is not None
    assert cache.remove_file("a") is None


def test_remove_file_failure_is_fatal(cache, tmp_path):
    directory = tmp_path / "dir"
    directory.mkdir()
    cache.insert("a", str(directory))

    with pytest.raises(FileIOError):
        cache.remove_file("a")


# --- Capacity-aware insertion ---

def _place(cache, make_file, name, size, used):
    path = make_file(name, size)
    evicted = cache.insert_new_file(path, path, size - (CAPACITY - used))
    used -= sum(info.file_size for info in evicted)
    return evicted, used + size


def test_files_rotate_out_oldest_first(cache, make_file, tmp_path):
    used = 0
    history = []
    for i, size in enumerate([512, 512, 768, 512, 1536]):
        evicted, used = _place(cache, make_file, f"temp_{i}", size, used)
        history.append(evicted)

    paths = [str(tmp_path / f"temp_{i}") for i in range(5)]
    assert history[:3] == [[], [], []]
    assert history[3] == [FileInfo(paths[0], paths[0], 512)]
    assert history[4] == [
        FileInfo(paths[1], paths[1], 512),
        FileInfo(paths[2], paths[2], 768),
        FileInfo(paths[3], paths[3], 512),
    ]
    assert used == 1536
    assert len(cache) == 1
    assert cache.most_recently_used() == paths[4]
    assert [os.path.exists(path) for path in paths] == [False, False, False, False, True]


def test_oversized_file_flushes_cache(cache, make_file, tmp_path):
    used = 0
    for i, size in enumerate([512, 512, 768, 512, 1536]):
        _, used = _place(cache, make_file, f"temp_{i}", size, used)

    size = CAPACITY + 1
    path = make_file("temp_5", size)
    with pytest.raises(InsufficientCapacity) as exc_info:
        cache.insert_new_file(path, path, size - (CAPACITY - used))

    last = str(tmp_path / "temp_4")
    assert exc_info.value.evicted == [FileInfo(last, last, 1536)]
    assert str(exc_info.value) == "the file was too large to place."
    assert len(cache) == 0
    assert cache.peek(path) is None
    assert not os.path.exists(last)


def test_negative_overflow_evicts_nothing(cache, make_file):
    cache.insert("a", make_file("a", 100))
    path = make_file("b", 10)

    assert cache.insert_new_file("b", path, -1) == []
    assert cache.most_recently_used_pair() == ("b", path)
    assert len(cache) == 2


def test_zero_overflow_still_evicts(cache, make_file):
    cache.insert("a", make_file("a", 100))
    cache.insert("b", make_file("b", 100))

    evicted = cache.insert_new_file("c", make_file("c", 10), 0)

    assert [info.key for info in evicted] == ["a"]
    assert cache.least_recently_used() == "b"


def test_empty_cache_with_overflow_fails(cache, make_file):
    path = make_file("a", 10)

    with pytest.raises(InsufficientCapacity) as exc_info:
        cache.insert_new_file("a", path, 5)
    assert exc_info.value.evicted == []
    assert cache.peek("a") is None


def test_eviction_stops_once_overflow_is_negative(cache, make_file):
    for key, size in (("a", 100), ("b", 100), ("c", 100), ("d", 100)):
        cache.insert(key, make_file(key, size))

    evicted = cache.insert_new_file("e", make_file("e", 10), 150)

    assert [info.key for info in evicted] == ["a", "b"]
    assert sum(info.file_size for info in evicted) == 200
    assert cache.least_recently_used() == "c"


def test_recently_accessed_entries_survive(cache, make_file):
    for key in ("a", "b", "c"):
        cache.insert(key, make_file(key, 100))
    cache.access("a")

    evicted = cache.insert_new_file("d", make_file("d", 10), 50)

    assert [info.key for info in evicted] == ["b"]
    assert cache.peek("a") is not None


def test_replacing_key_reclaims_old_file(cache, make_file):
    old = make_file("old", 100)
    cache.insert("a", old)
    new = make_file("new", 50)

    assert cache.insert_new_file("a", new, -40) == []
    assert cache.peek("a") == new
    assert len(cache) == 1
    assert not os.path.exists(old)
    assert os.path.exists(new)


def test_replaced_file_counts_toward_overflow(cache, make_file):
    cache.insert("b", make_file("b", 300))
    cache.insert("a", make_file("old", 100))

    evicted = cache.insert_new_file("a", make_file("new", 50), 150)

    assert [(info.key, info.file_size) for info in evicted] == [("b", 300)]
    assert len(cache) == 1


def test_replaced_file_alone_can_make_room(cache, make_file):
    cache.insert("b", make_file("b", 300))
    cache.insert("a", make_file("old", 100))

    assert cache.insert_new_file("a", make_file("new", 50), 60) == []
    assert len(cache) == 2


def test_reinserting_same_path_keeps_file(cache, make_file):
    path = make_file("a", 100)
    cache.insert("a", path)

    assert cache.insert_new_file("a", path, -1) == []
    assert os.path.exists(path)
    assert cache.peek("a") == path


def test_reinserting_same_path_is_never_its_own_victim(cache, make_file):
    path = make_file("a", 100)
    cache.insert("a", path)
    other = make_file("b", 100)
    cache.insert("b", other)

    evicted = cache.insert_new_file("a", path, 50)

    assert evicted == [FileInfo("b", other, 100)]
    assert os.path.exists(path)
    assert cache.peek("a") == path
    assert len(cache) == 1


def test_reinserting_same_path_into_full_cache_keeps_mapping(cache, make_file):
    path = make_file("a", 100)
    cache.insert("a", path)

    with pytest.raises(InsufficientCapacity) as exc_info:
        cache.insert_new_file("a", path, 50)

    assert exc_info.value.evicted == []
    assert os.path.exists(path)
    assert cache.peek("a") == path


def test_conflict_reclaim_failure_is_tolerated(cache, make_file, monkeypatch):
    old = make_file("old", 100)
    cache.insert("a", old)
    new = make_file("new", 50)
    real_remove = os.remove

    def fake_remove(target):
        if os.fspath(target) == old:
            raise PermissionError(13, "Permission denied", target)
        real_remove(target)

    monkeypatch.setattr(os, "remove", fake_remove)

    assert cache.insert_new_file("a", new, -40) == []
    assert cache.peek("a") == new
    assert os.path.exists(old)


def test_eviction_failure_aborts_and_keeps_earlier_evictions(cache, make_file, monkeypatch):
    x = make_file("x", 100)
    y = make_file("y", 100)
    cache.insert("x", x)
    cache.insert("y", y)
    cache.insert("z", make_file("z", 100))
    real_remove = os.remove

    def fake_remove(target):
        if os.fspath(target) == y:
            raise PermissionError(13, "Permission denied", target)
        real_remove(target)

    monkeypatch.setattr(os, "remove", fake_remove)

    with pytest.raises(FileIOError) as exc_info:
        cache.insert_new_file("n", make_file("n", 10), 150)

    assert exc_info.value.evicted == [FileInfo("x", x, 100)]
    assert not os.path.exists(x)
    assert cache.peek("x") is None
    assert cache.peek("y") == y
    assert cache.peek("n") is None
    assert len(cache) == 2


def test_stale_entries_are_consumed(cache, make_file, tmp_path):
    stale = str(tmp_path / "gone")
    cache.insert("gone", stale)
    cache.insert("real", make_file("real", 200))

    evicted = cache.insert_new_file("n", make_file("n", 10), 100)

    assert evicted == [FileInfo("gone", stale, 0), FileInfo("real", str(tmp_path / "real"), 200)]
    assert len(cache) == 1
    assert cache.peek("n") is not None


def test_all_stale_entries_terminate(cache, make_file, tmp_path):
    for key in ("a", "b", "c"):
        cache.insert(key, str(tmp_path / key))

    with pytest.raises(InsufficientCapacity) as exc_info:
        cache.insert_new_file("n", make_file("n", 10), 10)

    assert [(info.key, info.file_size) for info in exc_info.value.evicted] == [("a", 0), ("b", 0), ("c", 0)]
    assert len(cache) == 0


def test_store_failure_is_propagated(make_file, monkeypatch):
    client = fakeredis.FakeRedis(server=fakeredis.FakeServer())
    cache = LruCache(RedisStore(client))
    cache.insert("a", make_file("a", 100))

    def broken(*args, **kwargs):
        raise redis.ConnectionError("connection lost")

    monkeypatch.setattr(client, "zrange", broken)

    with pytest.raises(StoreError) as exc_info:
        cache.insert_new_file("b", make_file("b", 10), 50)
    assert exc_info.value.evicted == []
