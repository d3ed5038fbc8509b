"""Token bag storage keyed by browser session identifier.

A stored bag means the session completed a login; absence means the
session is anonymous. Writes are last-write-wins: two tabs finishing
sign-in for the same session at once leave only the later bag, which is
accepted because both belong to the same user and provider.
"""

from __future__ import annotations

import json
import time

from typing import TYPE_CHECKING

from ..types import Tokens


if TYPE_CHECKING:
    from ..store.base import Key, KeyValueStore


TOKENS_PREFIX = "tokens_by_session"


def _serialize_tokens(tokens: Tokens) -> bytes:
    """Serialize a token bag to JSON bytes."""
    return json.dumps(
        {
            "access_token": tokens.access_token,
            "token_type": tokens.token_type,
            "refresh_token": tokens.refresh_token,
            "expires_in": tokens.expires_in,
            "scope": tokens.scope,
            "raw": tokens.raw,
            "issued_at": tokens.issued_at,
            "provider": tokens.provider,
        }
    ).encode("utf-8")


def _deserialize_tokens(data: bytes) -> Tokens:
    """Deserialize a token bag from JSON bytes."""
    obj = json.loads(data)
    return Tokens(
        access_token=obj["access_token"],
        token_type=obj.get("token_type", "Bearer"),
        refresh_token=obj.get("refresh_token"),
        expires_in=obj.get("expires_in"),
        scope=obj.get("scope", ""),
        raw=obj.get("raw", {}),
        issued_at=obj.get("issued_at", time.time()),
        provider=obj.get("provider", ""),
    )


class TokenStore:
    """Maps session identifiers to provider token bags.

    Parameters
    ----------
    kv : KeyValueStore
        The backing key-value store.
    ttl_buffer : int, optional
        When set, entries expire ``expires_in + ttl_buffer`` seconds after
        being written. Bags without ``expires_in`` never expire.
    """

    def __init__(self, kv: KeyValueStore, ttl_buffer: int | None = None) -> None:
        self.kv = kv
        self.ttl_buffer = ttl_buffer

    @staticmethod
    def _key(session_id: str) -> Key:
        return (TOKENS_PREFIX, session_id)

    def _ttl(self, tokens: Tokens) -> float | None:
        if self.ttl_buffer is None or not tokens.expires_in or tokens.expires_in <= 0:
            return None
        return tokens.expires_in + self.ttl_buffer

    async def get_tokens(self, session_id: str) -> Tokens | None:
        """Load the token bag for a session, or None if not signed in."""
        data = await self.kv.get(self._key(session_id))
        if data is None:
            return None
        return _deserialize_tokens(data)

    async def set_tokens(self, session_id: str, tokens: Tokens) -> None:
        """Store the token bag for a session, replacing any existing one."""
        await self.kv.set(self._key(session_id), _serialize_tokens(tokens), ttl=self._ttl(tokens))

    async def delete_tokens(self, session_id: str) -> None:
        """Delete the token bag for a session. Missing entries are ignored."""
        await self.kv.delete(self._key(session_id))

    async def has_tokens(self, session_id: str) -> bool:
        """Check whether the session has a stored token bag."""
        return await self.kv.get(self._key(session_id)) is not None
