"""Factory functions for the key-value store.

Kept separate from ``__init__`` so backends are only imported when
selected.
"""

from __future__ import annotations

from functools import lru_cache
from typing import TYPE_CHECKING

from .memory import MemoryKeyValueStore


if TYPE_CHECKING:
    from ..config import StoreSettings
    from .base import KeyValueStore


def create_kv_store(settings: StoreSettings) -> KeyValueStore:
    """Create a key-value store for the configured backend.

    Parameters
    ----------
    settings : StoreSettings
        Store configuration section.

    Returns
    -------
    KeyValueStore
        A new store instance.
    """
    if settings.backend == "redis":
        from .redis import RedisKeyValueStore

        return RedisKeyValueStore(
            redis_url=settings.redis_url,
            prefix=settings.redis_prefix,
            pool_size=settings.redis_pool_size,
        )

    return MemoryKeyValueStore()


@lru_cache(maxsize=1)
def get_kv_store() -> KeyValueStore:
    """Get the process-wide store built from the global settings.

    Returns
    -------
    KeyValueStore
        The cached store instance.
    """
    from ..config import get_settings

    return create_kv_store(get_settings().store)


def clear_kv_store_cache() -> None:
    """Forget the cached store (e.g., after a config change or in tests)."""
    get_kv_store.cache_clear()
