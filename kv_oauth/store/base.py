"""Abstract base class for the key-value store adapter.

The adapter is the only state shared between requests. Keys are tuples
of strings (``("tokens_by_session", session_id)``); values are opaque
bytes. Every operation is independently atomic and may suspend on I/O.
"""

# pylint: disable=unnecessary-ellipsis

from __future__ import annotations

from abc import ABC, abstractmethod


Key = tuple[str, ...]


class KeyValueStore(ABC):
    """Abstract key-value storage interface.

    Implementations must be safe for concurrent use from many request
    handlers and must raise :class:`~kv_oauth.exceptions.StoreUnavailable`
    when the backing store cannot be reached.
    """

    @abstractmethod
    async def get(self, key: Key) -> bytes | None:
        """Read a value.

        Parameters
        ----------
        key : tuple[str, ...]
            The composite key.

        Returns
        -------
        bytes or None
            The stored value, or None if absent or expired.
        """
        ...

    @abstractmethod
    async def set(self, key: Key, value: bytes, ttl: float | None = None) -> None:
        """Write a value, replacing any existing one.

        Parameters
        ----------
        key : tuple[str, ...]
            The composite key.
        value : bytes
            The value to store.
        ttl : float or None
            Seconds until the entry expires. None stores it without expiry.
        """
        ...

    @abstractmethod
    async def delete(self, key: Key) -> None:
        """Delete a value. Deleting a missing key is not an error.

        Parameters
        ----------
        key : tuple[str, ...]
            The composite key.
        """
        ...

    @abstractmethod
    async def take(self, key: Key) -> bytes | None:
        """Atomically read and delete a value.

        Of any number of concurrent ``take`` calls for the same key, at
        most one observes the value.

        Parameters
        ----------
        key : tuple[str, ...]
            The composite key.

        Returns
        -------
        bytes or None
            The value that was stored, or None if absent or expired.
        """
        ...

    async def close(self) -> None:
        """Release any resources held by the adapter."""
