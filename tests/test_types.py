"""Tests for session and token records."""

from __future__ import annotations

import time

from kv_oauth.types import OAuthSession, SessionStatus, Tokens


class TestOAuthSession:
    """Tests for OAuthSession."""

    def test_dict_round_trip(self) -> None:
        """to_dict output rebuilds the same record."""
        session = OAuthSession(state="s", code_verifier="v", provider="google", redirect_to="/x")
        assert OAuthSession.from_dict(session.to_dict()) == session

    def test_optional_fields(self) -> None:
        """Older records without provider or target still load."""
        session = OAuthSession.from_dict({"state": "s", "code_verifier": "v"})
        assert session.provider == ""
        assert session.redirect_to is None


class TestTokens:
    """Tests for Tokens."""

    def test_from_response(self) -> None:
        """Provider responses map onto the bag."""
        tokens = Tokens.from_response(
            {"access_token": "at", "expires_in": "3600", "scope": "email"}, provider="google"
        )
        assert tokens.access_token == "at"
        assert tokens.token_type == "Bearer"
        assert tokens.expires_in == 3600
        assert tokens.provider == "google"
        assert tokens.refresh_token is None

    def test_expiry(self) -> None:
        """Expiry follows issued_at plus expires_in."""
        now = time.time()
        assert not Tokens(access_token="a", expires_in=60, issued_at=now).is_expired
        assert Tokens(access_token="a", expires_in=60, issued_at=now - 120).is_expired
        assert Tokens(access_token="a", expires_in=60, issued_at=now).expires_at == now + 60

    def test_no_expiry(self) -> None:
        """Bags without expires_in never expire."""
        tokens = Tokens(access_token="a")
        assert tokens.expires_at is None
        assert not tokens.is_expired


class TestSessionStatus:
    """Tests for SessionStatus."""

    def test_string_values(self) -> None:
        """Statuses compare equal to their names."""
        assert SessionStatus.AUTHENTICATED == "authenticated"
        assert SessionStatus("handshake_pending") is SessionStatus.HANDSHAKE_PENDING
