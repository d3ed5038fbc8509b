"""Tests for the pending handshake store."""

# pylint: disable=redefined-outer-name

from __future__ import annotations

import asyncio
import json

from unittest.mock import AsyncMock, MagicMock

import pytest

from kv_oauth.auth.transactions import OAuthTransactionStore
from kv_oauth.exceptions import StoreUnavailable
from kv_oauth.types import OAuthSession


@pytest.fixture
def oauth_session() -> OAuthSession:
    """A pending handshake."""
    return OAuthSession(state="st", code_verifier="cv", provider="github", redirect_to="/home")


@pytest.fixture
def transactions(kv) -> OAuthTransactionStore:
    """Transaction store over the memory backend."""
    return OAuthTransactionStore(kv, ttl=600)


class TestOAuthTransactionStore:
    """Tests for OAuthTransactionStore."""

    @pytest.mark.asyncio
    async def test_start_and_consume(self, transactions, oauth_session) -> None:
        """A started transaction is returned intact."""
        await transactions.start_transaction("flow1", oauth_session)
        assert await transactions.consume_transaction("flow1") == oauth_session

    @pytest.mark.asyncio
    async def test_single_use(self, transactions, oauth_session) -> None:
        """A second consume for the same flow yields nothing."""
        await transactions.start_transaction("flow1", oauth_session)
        await transactions.consume_transaction("flow1")
        assert await transactions.consume_transaction("flow1") is None

    @pytest.mark.asyncio
    async def test_unknown_flow(self, transactions) -> None:
        """Forged flow ids yield nothing."""
        assert await transactions.consume_transaction("forged") is None

    @pytest.mark.asyncio
    async def test_peek_does_not_consume(self, transactions, oauth_session) -> None:
        """get_transaction leaves the record in place."""
        await transactions.start_transaction("flow1", oauth_session)
        assert await transactions.get_transaction("flow1") == oauth_session
        assert await transactions.consume_transaction("flow1") == oauth_session

    @pytest.mark.asyncio
    async def test_stored_layout(self, kv, transactions, oauth_session) -> None:
        """Records are JSON under ("oauth_sessions", flow_id)."""
        await transactions.start_transaction("flow1", oauth_session)
        raw = await kv.get(("oauth_sessions", "flow1"))
        assert json.loads(raw) == {
            "state": "st",
            "code_verifier": "cv",
            "provider": "github",
            "redirect_to": "/home",
        }

    @pytest.mark.asyncio
    async def test_expiry(self, kv, oauth_session) -> None:
        """Transactions expire after the TTL."""
        transactions = OAuthTransactionStore(kv, ttl=0.05)
        await transactions.start_transaction("flow1", oauth_session)
        await asyncio.sleep(0.1)
        assert await transactions.consume_transaction("flow1") is None

    @pytest.mark.asyncio
    async def test_concurrent_flows_are_independent(self, transactions) -> None:
        """Two tabs signing in at once keep separate handshakes."""
        first = OAuthSession(state="s1", code_verifier="v1", provider="github")
        second = OAuthSession(state="s2", code_verifier="v2", provider="google")
        await asyncio.gather(
            transactions.start_transaction("f1", first),
            transactions.start_transaction("f2", second),
        )
        results = await asyncio.gather(
            transactions.consume_transaction("f1"),
            transactions.consume_transaction("f2"),
        )
        assert results == [first, second]

    @pytest.mark.asyncio
    async def test_concurrent_consume_single_winner(self, transactions, oauth_session) -> None:
        """Racing callbacks observe the transaction at most once."""
        await transactions.start_transaction("flow1", oauth_session)
        results = await asyncio.gather(
            *(transactions.consume_transaction("flow1") for _ in range(10))
        )
        assert sum(r is not None for r in results) == 1

    @pytest.mark.asyncio
    async def test_store_failure_propagates(self, oauth_session) -> None:
        """Adapter failures are not swallowed."""
        kv = MagicMock()
        kv.set = AsyncMock(side_effect=StoreUnavailable("down", operation="set"))
        with pytest.raises(StoreUnavailable):
            await OAuthTransactionStore(kv).start_transaction("flow1", oauth_session)
