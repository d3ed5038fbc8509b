"""OAuth2 sign-in for browser sessions.

Provides provider clients, PKCE helpers, the cookie policy, handshake
and token storage, and the flow orchestration tying them together.
"""

from __future__ import annotations

from .cookies import build_redirect, cookie_name, is_secure
from .flow import AuthFlow
from .pkce import PKCEChallenge
from .providers import (
    DiscordClient,
    GitHubClient,
    GoogleClient,
    OAuth2Client,
    create_client,
)
from .routes import create_auth_router
from .session import get_or_create_session_id, get_session_id, new_session_id
from .token_store import TokenStore
from .transactions import OAuthTransactionStore


__all__ = [
    "AuthFlow",
    "DiscordClient",
    "GitHubClient",
    "GoogleClient",
    "OAuth2Client",
    "OAuthTransactionStore",
    "PKCEChallenge",
    "TokenStore",
    "build_redirect",
    "cookie_name",
    "create_auth_router",
    "create_client",
    "get_or_create_session_id",
    "get_session_id",
    "is_secure",
    "new_session_id",
]
