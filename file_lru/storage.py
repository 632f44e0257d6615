import contextlib
import json
import logging
import os
from collections import OrderedDict
from typing import Any, Hashable, Optional, Tuple

import redis

from file_lru.errors import StoreError


class Store:
    """
    Base interface for the ordered key-value stores the cache sits on.

    A store keeps one value per key plus a recency order. Only `get` and
    `insert` move a key to the most recently used end; every `peek*` query
    and `mru`/`lru` leave the order untouched. Absence is reported as None.
    """
    def get(self, key: Hashable) -> Optional[Any]:
        """Returns the value and marks the key as most recently used."""
        raise NotImplementedError

    def peek(self, key: Hashable) -> Optional[Any]:
        raise NotImplementedError

    def insert(self, key: Hashable, value: Any) -> Optional[Any]:
        """Inserts or replaces. Returns the replaced value, if any."""
        raise NotImplementedError

    def pop(self, key: Hashable) -> Optional[Tuple[Hashable, Any]]:
        raise NotImplementedError

    def pop_lru(self) -> Optional[Tuple[Hashable, Any]]:
        raise NotImplementedError

    def mru(self) -> Optional[Hashable]:
        raise NotImplementedError

    def lru(self) -> Optional[Hashable]:
        raise NotImplementedError

    def peek_mru_value(self) -> Optional[Any]:
        raise NotImplementedError

    def peek_lru_value(self) -> Optional[Any]:
        raise NotImplementedError

    def peek_key_value(self, key: Hashable) -> Optional[Tuple[Hashable, Any]]:
        raise NotImplementedError

    def __len__(self) -> int:
        raise NotImplementedError


class MemoryStore(Store):
    """
    Temporary store backed by an OrderedDict. Order dictates recency,
    the first item is the least recently used.
    """
    def __init__(self):
        self._entries: OrderedDict = OrderedDict()

    def get(self, key):
        if key not in self._entries:
            return None
        self._entries.move_to_end(key)
        return self._entries[key]

    def peek(self, key):
        return self._entries.get(key)

    def insert(self, key, value):
        old = self._entries.get(key)
        self._entries[key] = value
        self._entries.move_to_end(key)
        return old

    def pop(self, key):
        if key not in self._entries:
            return None
        return key, self._entries.pop(key)

    def pop_lru(self):
        if not self._entries:
            return None
        return self._entries.popitem(last=False)

    def mru(self):
        if not self._entries:
            return None
        return next(reversed(self._entries))

    def lru(self):
        if not self._entries:
            return None
        return next(iter(self._entries))

    def peek_mru_value(self):
        key = self.mru()
        return None if key is None else self._entries[key]

    def peek_lru_value(self):
        key = self.lru()
        return None if key is None else self._entries[key]

    def peek_key_value(self, key):
        if key not in self._entries:
            return None
        return key, self._entries[key]

    def __len__(self):
        return len(self._entries)


def _to_json(obj):
    if isinstance(obj, os.PathLike):
        return os.fspath(obj)
    raise TypeError(f"Object of type {type(obj).__name__} is not JSON serializable")


def _as_tuple(obj):
    if isinstance(obj, list):
        return tuple(_as_tuple(item) for item in obj)
    return obj


class RedisStore(Store):
    """
    Durable store on Redis.

    Layout, for a namespace `ns`:
      ns:values  hash    encoded key -> encoded value
      ns:order   zset    encoded key scored by its last use tick
      ns:tick    string  monotonically increasing use counter

    Keys and values are JSON encoded; paths are stored as strings and
    tuple keys are decoded back to tuples.
    """
    def __init__(self, client: redis.Redis, namespace: str = "file_lru"):
        self._client = client
        self.namespace = namespace
        self._values_key = f"{namespace}:values"
        self._order_key = f"{namespace}:order"
        self._tick_key = f"{namespace}:tick"

    @classmethod
    def from_settings(cls, settings) -> "RedisStore":
        """Builds a store from a CacheSettings."""
        client = redis.Redis(host=settings.redis_host, port=settings.redis_port, db=settings.redis_db)
        logging.info(f"Redis store '{settings.namespace}' configured at {settings.redis_host}:{settings.redis_port}")
        return cls(client, namespace=settings.namespace)

    @contextlib.contextmanager
    def _errors(self):
        try:
            yield
        except redis.RedisError as e:
            raise StoreError(f"redis: {e}") from e

    def _encode(self, obj) -> str:
        try:
            return json.dumps(obj, sort_keys=True, default=_to_json)
        except (TypeError, ValueError) as e:
            raise StoreError(f"cannot encode {obj!r}: {e}") from e

    def _decode(self, raw):
        try:
            return json.loads(raw)
        except ValueError as e:
            raise StoreError(f"cannot decode {raw!r}: {e}") from e

    def _decode_key(self, raw):
        """Keys come back hashable: JSON arrays are restored as tuples."""
        return _as_tuple(self._decode(raw))

    def _extremal_field(self, index: int):
        with self._errors():
            fields = self._client.zrange(self._order_key, index, index)
        return fields[0] if fields else None

    def _remove_field(self, field):
        with self._errors():
            pipe = self._client.pipeline()
            pipe.hget(self._values_key, field)
            pipe.hdel(self._values_key, field)
            pipe.zrem(self._order_key, field)
            raw, _, _ = pipe.execute()
        return raw

    # --- Store interface ---

    def get(self, key):
        field = self._encode(key)
        with self._errors():
            raw = self._client.hget(self._values_key, field)
            if raw is None:
                return None
            tick = self._client.incr(self._tick_key)
            self._client.zadd(self._order_key, {field: tick})
        return self._decode(raw)

    def peek(self, key):
        field = self._encode(key)
        with self._errors():
            raw = self._client.hget(self._values_key, field)
        return None if raw is None else self._decode(raw)

    def insert(self, key, value):
        field = self._encode(key)
        encoded = self._encode(value)
        with self._errors():
            tick = self._client.incr(self._tick_key)
            pipe = self._client.pipeline()
            pipe.hget(self._values_key, field)
            pipe.hset(self._values_key, field, encoded)
            pipe.zadd(self._order_key, {field: tick})
            old, _, _ = pipe.execute()
        return None if old is None else self._decode(old)

    def pop(self, key):
        raw = self._remove_field(self._encode(key))
        if raw is None:
            return None
        return key, self._decode(raw)

    def pop_lru(self):
        field = self._extremal_field(0)
        if field is None:
            return None
        raw = self._remove_field(field)
        return self._decode_key(field), (None if raw is None else self._decode(raw))

    def mru(self):
        field = self._extremal_field(-1)
        return None if field is None else self._decode_key(field)

    def lru(self):
        field = self._extremal_field(0)
        return None if field is None else self._decode_key(field)

    def peek_mru_value(self):
        return self._peek_field(self._extremal_field(-1))

    def peek_lru_value(self):
        return self._peek_field(self._extremal_field(0))

    def _peek_field(self, field):
        if field is None:
            return None
        with self._errors():
            raw = self._client.hget(self._values_key, field)
        return None if raw is None else self._decode(raw)

    def peek_key_value(self, key):
        value = self.peek(key)
        if value is None:
            return None
        return key, value

    def __len__(self):
        with self._errors():
            return self._client.hlen(self._values_key)

    def clear(self):
        """Drops every key of this namespace."""
        with self._errors():
            self._client.delete(self._values_key, self._order_key, self._tick_key)
        logging.info(f"Cleared Redis store '{self.namespace}'")
