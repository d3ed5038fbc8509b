"""OAuth2 client abstraction and provider clients.

Defines the OAuth2Client used by the sign-in flow and the Discord,
GitHub and Google variants built from a validated provider config.
"""

# pylint: disable=logging-too-many-args

from __future__ import annotations

import logging

from typing import TYPE_CHECKING, Any
from urllib.parse import urlencode

import httpx

from ..exceptions import TokenExchangeFailed, TokenRefreshFailed, UnsupportedProvider
from ..types import Tokens


if TYPE_CHECKING:
    from ..config import DiscordConfig, GitHubConfig, GoogleConfig


logger = logging.getLogger("kv_oauth.auth")


class OAuth2Client:
    """Authorization-code OAuth2 client with PKCE.

    Parameters
    ----------
    provider : str
        Provider id (e.g., "github").
    client_id : str
        The OAuth2 client ID.
    client_secret : str
        The OAuth2 client secret.
    authorization_endpoint : str
        The provider's authorization endpoint.
    token_endpoint : str
        The provider's token endpoint.
    redirect_uri : str
        Callback URL registered with the provider (optional for GitHub).
    scopes : list[str]
        Requested OAuth2 scopes.
    http_client : httpx.AsyncClient, optional
        Client used for token requests. Created lazily when omitted.
    """

    def __init__(
        self,
        provider: str,
        client_id: str,
        client_secret: str = "",
        authorization_endpoint: str = "",
        token_endpoint: str = "",
        redirect_uri: str = "",
        scopes: list[str] | None = None,
        http_client: httpx.AsyncClient | None = None,
    ) -> None:
        """Initialize OAuth2 client."""
        self.provider = provider
        self.client_id = client_id
        self.client_secret = client_secret
        self.authorization_endpoint = authorization_endpoint
        self.token_endpoint = token_endpoint
        self.redirect_uri = redirect_uri
        self.scopes = scopes or []
        self._http_client = http_client

    @classmethod
    def from_config(
        cls,
        config: DiscordConfig | GitHubConfig | GoogleConfig,
        http_client: httpx.AsyncClient | None = None,
    ) -> OAuth2Client:
        """Build a client from a validated provider configuration."""
        return cls(
            provider=config.provider,
            client_id=config.client_id,
            client_secret=config.client_secret,
            authorization_endpoint=config.authorization_endpoint,
            token_endpoint=config.token_endpoint,
            redirect_uri=config.redirect_uri,
            scopes=list(config.scopes),
            http_client=http_client,
        )

    def _get_client(self) -> httpx.AsyncClient:
        """Get or create the shared HTTP client."""
        if self._http_client is None or self._http_client.is_closed:
            self._http_client = httpx.AsyncClient(timeout=30.0)
        return self._http_client

    async def close(self) -> None:
        """Close the shared HTTP client. Call from app shutdown lifecycle."""
        if self._http_client is not None and not self._http_client.is_closed:
            await self._http_client.aclose()
            self._http_client = None

    def _authorization_params(self, state: str, code_challenge: str) -> dict[str, str]:
        params: dict[str, str] = {
            "response_type": "code",
            "client_id": self.client_id,
            "state": state,
            "code_challenge": code_challenge,
            "code_challenge_method": "S256",
        }
        if self.redirect_uri:
            params["redirect_uri"] = self.redirect_uri
        if self.scopes:
            params["scope"] = " ".join(self.scopes)
        return params

    def build_authorization_url(self, state: str, code_challenge: str) -> str:
        """Build the URL the browser is redirected to for consent.

        Parameters
        ----------
        state : str
            Anti-CSRF token the provider echoes back.
        code_challenge : str
            S256 PKCE challenge.

        Returns
        -------
        str
            The full authorization URL.
        """
        params = self._authorization_params(state, code_challenge)
        return f"{self.authorization_endpoint}?{urlencode(params)}"

    async def _post_token_request(self, data: dict[str, str]) -> dict[str, Any]:
        """POST to the token endpoint and decode the JSON body.

        Raises ``httpx.HTTPError`` on transport or status failures and
        ``ValueError`` if the body is not a JSON object with an access token.
        """
        client = self._get_client()
        resp = await client.post(
            self.token_endpoint,
            data=data,
            headers={"Accept": "application/json"},
            timeout=30.0,
        )
        resp.raise_for_status()
        raw = resp.json()
        if not isinstance(raw, dict):
            msg = "Token response is not a JSON object"
            raise ValueError(msg)
        if "error" in raw:
            msg = str(raw.get("error_description") or raw["error"])
            raise ValueError(msg)
        if "access_token" not in raw:
            msg = "Token response has no access_token"
            raise ValueError(msg)
        return raw

    async def exchange_code(self, code: str, code_verifier: str) -> Tokens:
        """Exchange an authorization code for a token bag.

        Parameters
        ----------
        code : str
            The authorization code from the callback.
        code_verifier : str
            The PKCE verifier stored with the pending handshake.

        Returns
        -------
        Tokens
            The token bag from the provider.

        Raises
        ------
        TokenExchangeFailed
            If the provider rejects the code or the request fails.
        """
        data: dict[str, str] = {
            "grant_type": "authorization_code",
            "code": code,
            "client_id": self.client_id,
            "code_verifier": code_verifier,
        }
        if self.client_secret:
            data["client_secret"] = self.client_secret
        if self.redirect_uri:
            data["redirect_uri"] = self.redirect_uri

        try:
            raw = await self._post_token_request(data)
            tokens = Tokens.from_response(raw, provider=self.provider)
        except httpx.HTTPStatusError as exc:
            msg = f"Token exchange failed: {exc.response.status_code}"
            raise TokenExchangeFailed(msg, provider=self.provider) from exc
        except httpx.HTTPError as exc:
            msg = f"Token exchange request failed: {exc}"
            raise TokenExchangeFailed(msg, provider=self.provider) from exc
        except (ValueError, TypeError) as exc:
            msg = f"Token exchange rejected: {exc}"
            raise TokenExchangeFailed(msg, provider=self.provider) from exc

        logger.debug("Exchanged authorization code with %s", self.provider)
        return tokens

    async def refresh_tokens(self, refresh_token: str) -> Tokens:
        """Obtain a new token bag with a refresh token.

        Raises
        ------
        TokenRefreshFailed
            If the refresh is rejected or the request fails.
        """
        data: dict[str, str] = {
            "grant_type": "refresh_token",
            "refresh_token": refresh_token,
            "client_id": self.client_id,
        }
        if self.client_secret:
            data["client_secret"] = self.client_secret

        try:
            raw = await self._post_token_request(data)
            return Tokens.from_response(raw, provider=self.provider, refresh_token=refresh_token)
        except (httpx.HTTPError, ValueError, TypeError) as exc:
            msg = f"Token refresh failed: {exc}"
            raise TokenRefreshFailed(msg, provider=self.provider) from exc


class DiscordClient(OAuth2Client):
    """Discord OAuth2 client."""


class GitHubClient(OAuth2Client):
    """GitHub OAuth App client.

    GitHub answers token errors with HTTP 200 and an ``error`` field,
    which the shared token request handling already rejects.
    """


class GoogleClient(OAuth2Client):
    """Google OAuth2 client.

    Requests offline access so the first consent yields a refresh token.
    """

    def _authorization_params(self, state: str, code_challenge: str) -> dict[str, str]:
        params = super()._authorization_params(state, code_challenge)
        params.update({"access_type": "offline", "prompt": "consent"})
        return params


_CLIENT_CLASSES: dict[str, type[OAuth2Client]] = {
    "discord": DiscordClient,
    "github": GitHubClient,
    "google": GoogleClient,
}


def create_client(
    config: DiscordConfig | GitHubConfig | GoogleConfig,
    http_client: httpx.AsyncClient | None = None,
) -> OAuth2Client:
    """Create the OAuth2 client for a provider configuration.

    Parameters
    ----------
    config : DiscordConfig | GitHubConfig | GoogleConfig
        A configuration produced by ``build_provider_config``.
    http_client : httpx.AsyncClient, optional
        HTTP client to share across token requests.

    Returns
    -------
    OAuth2Client
        A configured client.

    Raises
    ------
    UnsupportedProvider
        If no client exists for ``config.provider``.
    """
    client_cls = _CLIENT_CLASSES.get(config.provider)
    if client_cls is None:
        msg = f'Provider ID "{config.provider}" not supported'
        raise UnsupportedProvider(msg, provider=config.provider)
    return client_cls.from_config(config, http_client=http_client)
