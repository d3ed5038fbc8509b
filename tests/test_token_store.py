"""Tests for session token storage."""

# pylint: disable=redefined-outer-name

from __future__ import annotations

import json

from unittest.mock import AsyncMock, MagicMock

import pytest

from kv_oauth.auth.token_store import TokenStore
from tests.helpers import make_tokens


@pytest.fixture
def token_store(kv) -> TokenStore:
    """Token store over the memory backend."""
    return TokenStore(kv)


class TestTokenStore:
    """Tests for TokenStore."""

    @pytest.mark.asyncio
    async def test_set_and_get(self, token_store) -> None:
        """Stored fields survive a write and read."""
        tokens = make_tokens(raw={"access_token": "at_test_123", "extra": 1})
        await token_store.set_tokens("s1", tokens)
        loaded = await token_store.get_tokens("s1")
        assert loaded is not None
        assert loaded.access_token == tokens.access_token
        assert loaded.refresh_token == tokens.refresh_token
        assert loaded.expires_in == 3600
        assert loaded.provider == "github"
        assert loaded.raw == {"access_token": "at_test_123", "extra": 1}
        assert loaded.issued_at == pytest.approx(tokens.issued_at)

    @pytest.mark.asyncio
    async def test_missing(self, token_store) -> None:
        """Anonymous sessions have no tokens."""
        assert await token_store.get_tokens("anon") is None
        assert not await token_store.has_tokens("anon")

    @pytest.mark.asyncio
    async def test_last_write_wins(self, token_store) -> None:
        """A second write replaces the first."""
        await token_store.set_tokens("s1", make_tokens(access_token="first"))
        await token_store.set_tokens("s1", make_tokens(access_token="second"))
        loaded = await token_store.get_tokens("s1")
        assert loaded.access_token == "second"

    @pytest.mark.asyncio
    async def test_delete_idempotent(self, token_store) -> None:
        """Deleting twice is fine."""
        await token_store.set_tokens("s1", make_tokens())
        await token_store.delete_tokens("s1")
        await token_store.delete_tokens("s1")
        assert await token_store.get_tokens("s1") is None

    @pytest.mark.asyncio
    async def test_sessions_isolated(self, token_store) -> None:
        """Sessions never see each other's bags."""
        await token_store.set_tokens("s1", make_tokens(access_token="one"))
        await token_store.set_tokens("s2", make_tokens(access_token="two"))
        await token_store.delete_tokens("s1")
        assert (await token_store.get_tokens("s2")).access_token == "two"

    @pytest.mark.asyncio
    async def test_stored_layout(self, kv, token_store) -> None:
        """Bags are JSON under ("tokens_by_session", session_id)."""
        await token_store.set_tokens("s1", make_tokens())
        raw = json.loads(await kv.get(("tokens_by_session", "s1")))
        assert raw["access_token"] == "at_test_123"


class TestTokenTTL:
    """Tests for optional token expiry."""

    @pytest.fixture
    def spy_kv(self) -> MagicMock:
        """Adapter recording set calls."""
        kv = MagicMock()
        kv.set = AsyncMock()
        return kv

    @pytest.mark.asyncio
    async def test_no_ttl_by_default(self, spy_kv) -> None:
        """Without a buffer tokens are stored without TTL."""
        await TokenStore(spy_kv).set_tokens("s1", make_tokens())
        assert spy_kv.set.await_args.kwargs["ttl"] is None

    @pytest.mark.asyncio
    async def test_ttl_follows_expires_in(self, spy_kv) -> None:
        """With a buffer the TTL is expires_in plus the buffer."""
        await TokenStore(spy_kv, ttl_buffer=60).set_tokens("s1", make_tokens(expires_in=3600))
        assert spy_kv.set.await_args.kwargs["ttl"] == 3660

    @pytest.mark.asyncio
    async def test_no_ttl_without_expiry(self, spy_kv) -> None:
        """Bags without expires_in never expire."""
        await TokenStore(spy_kv, ttl_buffer=60).set_tokens("s1", make_tokens(expires_in=None))
        assert spy_kv.set.await_args.kwargs["ttl"] is None
