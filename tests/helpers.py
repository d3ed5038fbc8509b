"""Shared builders and assertions for the test suite."""

from __future__ import annotations

import time

from typing import Any
from unittest.mock import AsyncMock, MagicMock

from kv_oauth.types import Tokens


AUTHORIZE_URL = "https://provider.example/authorize?client_id=test"


def make_tokens(**overrides: Any) -> Tokens:
    """Build a token bag for tests."""
    data: dict[str, Any] = {
        "access_token": "at_test_123",
        "token_type": "Bearer",
        "refresh_token": "rt_test_456",
        "expires_in": 3600,
        "scope": "read:user",
        "issued_at": time.time(),
        "provider": "github",
    }
    data.update(overrides)
    return Tokens(**data)


def make_mock_client(provider: str = "github", tokens: Tokens | None = None) -> MagicMock:
    """Create a mock OAuth2Client."""
    client = MagicMock()
    client.provider = provider
    client.build_authorization_url.return_value = AUTHORIZE_URL
    client.exchange_code = AsyncMock(return_value=tokens or make_tokens(provider=provider))
    client.refresh_tokens = AsyncMock(
        return_value=make_tokens(access_token="at_refreshed", provider=provider)
    )
    client.close = AsyncMock()
    return client


def response_cookies(response: Any) -> dict[str, str]:
    """Map cookie name to its full Set-Cookie header value."""
    cookies: dict[str, str] = {}
    for header in response.headers.getlist("set-cookie"):
        name = header.split("=", 1)[0]
        cookies[name] = header
    return cookies


def cookie_value(header: str) -> str:
    """Extract the value from a Set-Cookie header."""
    return header.split(";", 1)[0].split("=", 1)[1]
