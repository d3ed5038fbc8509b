"""In-memory key-value store.

Default backend for single-process deployments and development.
"""

from __future__ import annotations

import asyncio
import time

from .base import Key, KeyValueStore


class MemoryKeyValueStore(KeyValueStore):
    """In-memory key-value store with per-entry expiry.

    Concurrency-safe through an asyncio lock. Expired entries are swept
    on every write and take, so abandoned handshakes never accumulate
    past their TTL.
    """

    def __init__(self) -> None:
        """Initialize the memory store."""
        # key -> (value, expires_at monotonic or None)
        self._entries: dict[Key, tuple[bytes, float | None]] = {}
        self._lock = asyncio.Lock()

    def _live(self, key: Key) -> bytes | None:
        """Return the value for key if present and unexpired (caller holds lock)."""
        entry = self._entries.get(key)
        if entry is None:
            return None
        value, expires_at = entry
        if expires_at is not None and expires_at <= time.monotonic():
            del self._entries[key]
            return None
        return value

    def _evict_expired(self) -> int:
        """Drop every expired entry (caller holds lock). Returns count removed."""
        now = time.monotonic()
        expired = [k for k, (_, exp) in self._entries.items() if exp is not None and exp <= now]
        for k in expired:
            del self._entries[k]
        return len(expired)

    async def get(self, key: Key) -> bytes | None:
        """Read a value."""
        async with self._lock:
            return self._live(key)

    async def set(self, key: Key, value: bytes, ttl: float | None = None) -> None:
        """Write a value with optional TTL."""
        expires_at = time.monotonic() + ttl if ttl is not None else None
        async with self._lock:
            self._evict_expired()
            self._entries[key] = (bytes(value), expires_at)

    async def delete(self, key: Key) -> None:
        """Delete a value."""
        async with self._lock:
            self._entries.pop(key, None)

    async def take(self, key: Key) -> bytes | None:
        """Atomically read and delete a value."""
        async with self._lock:
            value = self._live(key)
            self._entries.pop(key, None)
            self._evict_expired()
            return value

    async def purge_expired(self) -> int:
        """Remove all expired entries. Returns count removed."""
        async with self._lock:
            return self._evict_expired()

    async def count(self) -> int:
        """Return the number of stored entries, expired ones included."""
        async with self._lock:
            return len(self._entries)
