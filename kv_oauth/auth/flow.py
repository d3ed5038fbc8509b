"""Sign-in, callback and sign-out orchestration.

Provides AuthFlow, which composes session identity, the transaction and
token stores, and the cookie policy into the three browser-facing
operations. A session's state is never stored explicitly; it is read
from the store:

- anonymous: no token bag, no pending handshake
- handshake pending: a transaction exists for the browser's flow cookie
- authenticated: a token bag exists for the session id

Callback problems (forged, expired or replayed state, provider errors,
rejected codes) are answered with a redirect to the configured error
location. Store failures are not handled here and reach the caller.
"""

# pylint: disable=logging-too-many-args

from __future__ import annotations

import contextlib
import hmac
import logging

from typing import TYPE_CHECKING

from ..config import get_settings, is_local_path
from ..exceptions import InvalidCallback, InvalidState, TokenExchangeFailed, UnsupportedProvider
from ..log import configure_logging, redact_sensitive_data, redact_url
from ..store import get_kv_store
from ..types import OAuthSession, SessionStatus
from .cookies import build_redirect, clear_cookie, cookie_name, is_secure, set_cookie
from .pkce import PKCEChallenge, random_token
from .providers import create_client
from .session import get_or_create_session_id, get_session_id, new_session_id
from .token_store import TokenStore
from .transactions import OAuthTransactionStore


if TYPE_CHECKING:
    from collections.abc import Iterable

    from starlette.requests import Request
    from starlette.responses import Response

    from ..config import DiscordConfig, GitHubConfig, GoogleConfig, KvOAuthSettings
    from ..store.base import KeyValueStore
    from ..types import Tokens
    from .providers import OAuth2Client


logger = logging.getLogger("kv_oauth.auth")


class AuthFlow:
    """Coordinates OAuth2 sign-in for browser sessions.

    Parameters
    ----------
    clients : Iterable[OAuth2Client]
        One configured client per supported provider.
    kv : KeyValueStore
        Shared store for pending handshakes and token bags.
    settings : KvOAuthSettings, optional
        Cookie and flow configuration (defaults to the global settings).
    """

    def __init__(
        self,
        clients: Iterable[OAuth2Client],
        kv: KeyValueStore,
        settings: KvOAuthSettings | None = None,
    ) -> None:
        """Initialize the auth flow."""
        self.settings = settings or get_settings()
        self.clients = {client.provider: client for client in clients}
        self.kv = kv
        self.transactions = OAuthTransactionStore(kv, ttl=self.settings.flow.transaction_ttl)
        self.tokens = TokenStore(kv, ttl_buffer=self.settings.flow.tokens_ttl_buffer)

    @classmethod
    def from_configs(
        cls,
        configs: Iterable[DiscordConfig | GitHubConfig | GoogleConfig],
        kv: KeyValueStore | None = None,
        settings: KvOAuthSettings | None = None,
    ) -> AuthFlow:
        """Build a flow from validated provider configurations.

        This is the application entry point, so the configured log level is
        applied here.

        Parameters
        ----------
        configs : Iterable[DiscordConfig | GitHubConfig | GoogleConfig]
            Provider configurations, e.g. from ``load_provider_config``.
        kv : KeyValueStore, optional
            Store to use (defaults to the process-wide store).
        settings : KvOAuthSettings, optional
            Cookie and flow configuration.
        """
        settings = settings or get_settings()
        configure_logging(settings)
        return cls(
            [create_client(config) for config in configs],
            kv if kv is not None else get_kv_store(),
            settings,
        )

    def get_client(self, provider: str) -> OAuth2Client:
        """Return the client for a provider id.

        Raises
        ------
        UnsupportedProvider
            If no client is configured for ``provider``.
        """
        client = self.clients.get(provider)
        if client is None:
            msg = f'Provider ID "{provider}" not supported'
            raise UnsupportedProvider(msg, provider=provider)
        return client

    def _site_cookie(self, secure: bool) -> str:
        return cookie_name(self.settings.cookie.site_cookie_name, secure)

    def _oauth_cookie(self, secure: bool) -> str:
        return cookie_name(self.settings.cookie.oauth_cookie_name, secure)

    # ── Sign in ──────────────────────────────────────────────────────

    async def sign_in(
        self,
        request: Request,
        provider: str,
        redirect_to: str | None = None,
    ) -> Response:
        """Start an authorization handshake and redirect to the provider.

        Parameters
        ----------
        request : Request
            The incoming request.
        provider : str
            Provider id to sign in with.
        redirect_to : str, optional
            Local path to return to after the callback. Anything that is
            not a local path is ignored.

        Returns
        -------
        Response
            302 redirect to the provider's authorization endpoint.

        Raises
        ------
        UnsupportedProvider
            If ``provider`` is not configured.
        StoreUnavailable
            If the pending handshake cannot be persisted.
        """
        client = self.get_client(provider)
        secure = is_secure(request)
        session_id, is_new = get_or_create_session_id(
            request, self.settings.cookie.site_cookie_name
        )

        flow_id = random_token()
        state = random_token()
        pkce = PKCEChallenge.generate()

        await self.transactions.start_transaction(
            flow_id,
            OAuthSession(
                state=state,
                code_verifier=pkce.verifier,
                provider=provider,
                redirect_to=redirect_to if is_local_path(redirect_to) else None,
            ),
        )

        authorization_url = client.build_authorization_url(state, pkce.challenge)
        logger.debug("Authorization URL: %s", redact_url(authorization_url))
        response = build_redirect(authorization_url)
        set_cookie(
            response,
            self._oauth_cookie(secure),
            flow_id,
            secure=secure,
            max_age=self.settings.cookie.oauth_cookie_max_age,
        )
        if is_new:
            set_cookie(
                response,
                self._site_cookie(secure),
                session_id,
                secure=secure,
                max_age=self.settings.cookie.site_cookie_max_age,
            )

        logger.info("Sign-in started with %s", provider)
        return response

    # ── Callback ─────────────────────────────────────────────────────

    async def _consume_callback(self, request: Request) -> tuple[OAuthSession, str]:
        """Match a callback to its pending handshake, consuming it.

        Returns the handshake and the authorization code.

        Raises
        ------
        InvalidState
            If the callback cannot be matched or carries an error.
        """
        params = request.query_params
        logger.debug("OAuth callback parameters: %s", redact_sensitive_data(dict(params)))

        flow_id = request.cookies.get(self._oauth_cookie(is_secure(request)))
        if not flow_id:
            msg = "Callback has no flow cookie"
            raise InvalidCallback(msg)

        # Consumed before validation: a rejected callback still burns the handshake
        oauth_session = await self.transactions.consume_transaction(flow_id)
        if oauth_session is None:
            msg = "No pending handshake (expired, replayed or forged callback)"
            raise InvalidState(msg)

        provider = oauth_session.provider
        if params.get("error"):
            msg = f"Provider returned error: {params.get('error_description') or params['error']}"
            raise InvalidCallback(msg, provider=provider)

        state = params.get("state")
        code = params.get("code")
        if not state or not code:
            msg = "Callback is missing the state or code parameter"
            raise InvalidCallback(msg, provider=provider)

        if not hmac.compare_digest(state, oauth_session.state):
            msg = "State parameter mismatch"
            raise InvalidState(msg, provider=provider)

        if provider not in self.clients:
            msg = f'Handshake references unconfigured provider "{provider}"'
            raise InvalidState(msg, provider=provider)

        return oauth_session, code

    def _reject(self, secure: bool) -> Response:
        response = build_redirect(self.settings.flow.error_redirect)
        clear_cookie(response, self._oauth_cookie(secure), secure=secure)
        return response

    async def handle_callback(self, request: Request) -> Response:
        """Complete a handshake and sign the browser in.

        On success a new session id replaces the browser's previous one,
        whose token bag is deleted.

        Parameters
        ----------
        request : Request
            The provider's redirect back to the application.

        Returns
        -------
        Response
            302 redirect to the post-login location, or to the error
            location if the callback was rejected.

        Raises
        ------
        StoreUnavailable
            If the store fails while reading or writing session state.
        """
        secure = is_secure(request)

        try:
            oauth_session, code = await self._consume_callback(request)
        except InvalidState as exc:
            logger.warning("Rejected OAuth callback: %s", exc)
            return self._reject(secure)

        client = self.clients[oauth_session.provider]
        try:
            tokens = await client.exchange_code(code, oauth_session.code_verifier)
        except TokenExchangeFailed as exc:
            logger.warning("Token exchange failed: %s", exc)
            return self._reject(secure)

        previous_session_id = get_session_id(request, self.settings.cookie.site_cookie_name)
        session_id = new_session_id()
        if previous_session_id is not None:
            await self.tokens.delete_tokens(previous_session_id)
        await self.tokens.set_tokens(session_id, tokens)

        response = build_redirect(oauth_session.redirect_to or self.settings.flow.default_redirect)
        set_cookie(
            response,
            self._site_cookie(secure),
            session_id,
            secure=secure,
            max_age=self.settings.cookie.site_cookie_max_age,
        )
        clear_cookie(response, self._oauth_cookie(secure), secure=secure)

        logger.info("Signed in with %s", oauth_session.provider)
        return response

    # ── Sign out ─────────────────────────────────────────────────────

    async def sign_out(self, request: Request, redirect_to: str | None = None) -> Response:
        """Delete the session's token bag and clear its cookie.

        A request without a session cookie is redirected without touching
        the store.

        Parameters
        ----------
        request : Request
            The incoming request.
        redirect_to : str, optional
            Redirect target, used verbatim (defaults to the configured
            default redirect, ``/``).
        """
        location = redirect_to or self.settings.flow.default_redirect
        session_id = get_session_id(request, self.settings.cookie.site_cookie_name)
        if session_id is None:
            return build_redirect(location)

        await self.tokens.delete_tokens(session_id)

        secure = is_secure(request)
        response = build_redirect(location)
        clear_cookie(response, self._site_cookie(secure), secure=secure)
        logger.info("Signed out")
        return response

    # ── Session queries ──────────────────────────────────────────────

    async def get_session_tokens(self, session_id: str) -> Tokens | None:
        """Return the token bag for a session, or None if not signed in."""
        return await self.tokens.get_tokens(session_id)

    async def get_session_access_token(self, session_id: str) -> str | None:
        """Return a usable access token for a session.

        An expired bag with a refresh token is refreshed on demand and
        stored again. An expired bag without one yields None.

        Raises
        ------
        TokenRefreshFailed
            If the provider rejects the refresh.
        """
        tokens = await self.tokens.get_tokens(session_id)
        if tokens is None:
            return None
        if not tokens.is_expired:
            return tokens.access_token
        if not tokens.refresh_token or tokens.provider not in self.clients:
            return None

        refreshed = await self.clients[tokens.provider].refresh_tokens(tokens.refresh_token)
        await self.tokens.set_tokens(session_id, refreshed)
        logger.debug("Refreshed access token for %s session", tokens.provider)
        return refreshed.access_token

    async def get_status(self, request: Request) -> SessionStatus:
        """Describe the browser's authentication state."""
        session_id = get_session_id(request, self.settings.cookie.site_cookie_name)
        if session_id is not None and await self.tokens.has_tokens(session_id):
            return SessionStatus.AUTHENTICATED

        flow_id = request.cookies.get(self._oauth_cookie(is_secure(request)))
        if flow_id and await self.transactions.get_transaction(flow_id) is not None:
            return SessionStatus.HANDSHAKE_PENDING

        return SessionStatus.ANONYMOUS

    async def is_signed_in(self, request: Request) -> bool:
        """Check whether the browser's session has a token bag."""
        return await self.get_status(request) is SessionStatus.AUTHENTICATED

    async def close(self) -> None:
        """Close provider HTTP clients and the store."""
        for client in self.clients.values():
            with contextlib.suppress(Exception):
                await client.close()
        await self.kv.close()
