"""FastAPI routes for the OAuth2 sign-in flow.

Provides sign-in, callback and sign-out endpoints backed by an
:class:`~kv_oauth.auth.flow.AuthFlow`.
"""

# pylint: disable=logging-too-many-args

from __future__ import annotations

import logging

from typing import TYPE_CHECKING

from fastapi import APIRouter, Request, Response
from fastapi.responses import JSONResponse

from ..config import is_local_path
from ..exceptions import StoreUnavailable, UnsupportedProvider


if TYPE_CHECKING:
    from .flow import AuthFlow


logger = logging.getLogger("kv_oauth.auth")


def _store_unavailable(exc: StoreUnavailable) -> JSONResponse:
    logger.error("Session store unavailable: %s", exc)
    return JSONResponse(
        status_code=503,
        content={
            "error": "store_unavailable",
            "error_description": "Session storage is temporarily unavailable",
        },
    )


def create_auth_router(flow: AuthFlow, prefix: str = "/auth") -> APIRouter:
    """Create the FastAPI router with authentication endpoints.

    Parameters
    ----------
    flow : AuthFlow
        Configured sign-in flow.
    prefix : str
        Mount prefix for the routes (default ``/auth``).

    Returns
    -------
    APIRouter
        Router exposing ``/signin/{provider}``, ``/callback`` and
        ``/signout``.
    """
    router = APIRouter(prefix=prefix, tags=["authentication"])

    @router.get("/signin/{provider}")
    async def auth_signin(request: Request, provider: str, next: str | None = None) -> Response:  # noqa: A002
        """Redirect the browser to the provider's consent page."""
        try:
            return await flow.sign_in(request, provider, redirect_to=next)
        except UnsupportedProvider:
            return JSONResponse(
                status_code=404,
                content={
                    "error": "unsupported_provider",
                    "error_description": f'Provider ID "{provider}" not supported',
                },
            )
        except StoreUnavailable as exc:
            return _store_unavailable(exc)

    @router.get("/callback")
    async def auth_callback(request: Request) -> Response:
        """Complete the handshake started by ``/signin``."""
        try:
            return await flow.handle_callback(request)
        except StoreUnavailable as exc:
            return _store_unavailable(exc)

    @router.get("/signout")
    async def auth_signout(request: Request, next: str | None = None) -> Response:  # noqa: A002
        """Sign the browser out and redirect."""
        try:
            return await flow.sign_out(request, redirect_to=next if is_local_path(next) else None)
        except StoreUnavailable as exc:
            return _store_unavailable(exc)

    return router
