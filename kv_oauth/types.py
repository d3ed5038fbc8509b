"""Type definitions for kv_oauth session and token state.

Contains the records persisted through the key-value store and the
enums describing a browser session's authentication state.
"""

from __future__ import annotations

import time

from dataclasses import asdict, dataclass, field
from enum import Enum
from typing import Any


class SessionStatus(str, Enum):
    """Authentication state of a browser session, as observed through the store."""

    ANONYMOUS = "anonymous"
    HANDSHAKE_PENDING = "handshake_pending"
    AUTHENTICATED = "authenticated"


@dataclass(frozen=True)
class OAuthSession:
    """Pending handshake state, keyed by flow identifier.

    Attributes
    ----------
    state : str
        Anti-CSRF token echoed back by the provider.
    code_verifier : str
        PKCE code verifier.
    provider : str
        Provider id the flow was started against.
    redirect_to : str or None
        Local path to send the browser to after a successful callback.
    """

    state: str
    code_verifier: str
    provider: str = ""
    redirect_to: str | None = None

    def to_dict(self) -> dict[str, Any]:
        """Convert to a JSON-serializable dict."""
        return asdict(self)

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> OAuthSession:
        """Build from a dict produced by :meth:`to_dict`."""
        return cls(
            state=data["state"],
            code_verifier=data["code_verifier"],
            provider=data.get("provider", ""),
            redirect_to=data.get("redirect_to"),
        )


@dataclass
class Tokens:
    """Token bag returned by a provider after a successful code exchange.

    Attributes
    ----------
    access_token : str
        Opaque bearer credential.
    token_type : str
        Token type, typically "Bearer".
    refresh_token : str or None
        Optional refresh token.
    expires_in : int or None
        Access token lifetime in seconds from issuance.
    scope : str
        Space-separated list of granted scopes.
    raw : dict[str, Any]
        The raw token response from the provider.
    issued_at : float
        Unix timestamp when the token was issued.
    provider : str
        Provider id that issued the bag (used for on-demand refresh).
    """

    access_token: str
    token_type: str = "Bearer"  # noqa: S105
    refresh_token: str | None = None
    expires_in: int | None = None
    scope: str = ""
    raw: dict[str, Any] = field(default_factory=dict)
    issued_at: float = field(default_factory=time.time)
    provider: str = ""

    @property
    def expires_at(self) -> float | None:
        """Get the expiry timestamp, or None if no expiry."""
        if self.expires_in is None:
            return None
        return self.issued_at + self.expires_in

    @property
    def is_expired(self) -> bool:
        """Check if the access token has expired."""
        expires_at = self.expires_at
        return expires_at is not None and time.time() > expires_at

    @classmethod
    def from_response(
        cls,
        raw: dict[str, Any],
        provider: str = "",
        refresh_token: str | None = None,
    ) -> Tokens:
        """Build a token bag from a provider token endpoint response.

        Parameters
        ----------
        raw : dict[str, Any]
            Decoded JSON body of the token response.
        provider : str
            Provider id that issued the tokens.
        refresh_token : str, optional
            Refresh token to keep when the response omits one.
        """
        expires_in = raw.get("expires_in")
        return cls(
            access_token=raw["access_token"],
            token_type=raw.get("token_type", "Bearer"),
            refresh_token=raw.get("refresh_token", refresh_token),
            expires_in=int(expires_in) if expires_in is not None else None,
            scope=raw.get("scope", ""),
            raw=raw,
            issued_at=time.time(),
            provider=provider,
        )
