"""kv_oauth - OAuth2 sign-in for web apps backed by a key-value store.

Pending handshakes and per-session token bags live in a shared
key-value store (in-memory or Redis), so any worker can complete a
sign-in started by another.
"""

from __future__ import annotations

from .auth import (
    AuthFlow,
    OAuth2Client,
    PKCEChallenge,
    create_auth_router,
    create_client,
    get_session_id,
)
from .config import (
    PROVIDERS,
    CookieSettings,
    DiscordConfig,
    FlowSettings,
    GitHubConfig,
    GoogleConfig,
    KvOAuthSettings,
    LogSettings,
    StoreSettings,
    build_provider_config,
    clear_settings,
    get_settings,
    load_provider_config,
)
from .exceptions import (
    AuthenticationError,
    ConfigurationError,
    InvalidCallback,
    InvalidState,
    KvOAuthError,
    MissingRequiredField,
    StoreUnavailable,
    TokenExchangeFailed,
    TokenRefreshFailed,
    UnsupportedProvider,
)
from .log import configure_logging, enable_debug, get_logger, set_level
from .store import KeyValueStore, MemoryKeyValueStore, create_kv_store, get_kv_store
from .types import OAuthSession, SessionStatus, Tokens


__version__ = "0.1.0"

__all__ = [
    "PROVIDERS",
    "AuthFlow",
    "AuthenticationError",
    "ConfigurationError",
    "CookieSettings",
    "DiscordConfig",
    "FlowSettings",
    "GitHubConfig",
    "GoogleConfig",
    "InvalidCallback",
    "InvalidState",
    "KeyValueStore",
    "KvOAuthError",
    "KvOAuthSettings",
    "LogSettings",
    "MemoryKeyValueStore",
    "MissingRequiredField",
    "OAuth2Client",
    "OAuthSession",
    "PKCEChallenge",
    "SessionStatus",
    "StoreSettings",
    "StoreUnavailable",
    "TokenExchangeFailed",
    "TokenRefreshFailed",
    "Tokens",
    "UnsupportedProvider",
    "__version__",
    "build_provider_config",
    "clear_settings",
    "configure_logging",
    "create_auth_router",
    "create_client",
    "create_kv_store",
    "enable_debug",
    "get_kv_store",
    "get_logger",
    "get_session_id",
    "get_settings",
    "load_provider_config",
    "set_level",
]
