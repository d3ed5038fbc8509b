"""kv_oauth key-value store package.

Provides the storage adapter that pending handshakes and token bags are
persisted through. The default is in-memory storage for single-process
deployments; the Redis backend shares state across workers.

Usage
-----
Configure via environment variables:
    # KV_OAUTH_STORE__BACKEND=redis
    # KV_OAUTH_STORE__REDIS_URL=redis://localhost:6379/0

Examples
--------
>>> from kv_oauth.store import get_kv_store
>>> store = get_kv_store()
>>> await store.set(("tokens_by_session", "abc"), b"{}")
>>> await store.get(("tokens_by_session", "abc"))
b'{}'
"""

from __future__ import annotations

from ._factory import clear_kv_store_cache, create_kv_store, get_kv_store
from .base import Key, KeyValueStore
from .memory import MemoryKeyValueStore


__all__ = [
    "Key",
    "KeyValueStore",
    "MemoryKeyValueStore",
    "clear_kv_store_cache",
    "create_kv_store",
    "get_kv_store",
]
