"""Session identity.

Resolves the browser's session identifier from the site cookie. The
identifier is an opaque random string; any non-empty cookie value is
accepted as-is; an attacker cannot reach another browser's token bag
without already holding that browser's cookie.
"""

from __future__ import annotations

from typing import TYPE_CHECKING

from .cookies import cookie_name, is_secure
from .pkce import random_token


if TYPE_CHECKING:
    from starlette.requests import Request


SESSION_ID_BYTES = 32


def new_session_id() -> str:
    """Generate a fresh session identifier (256 bits of entropy)."""
    return random_token(SESSION_ID_BYTES)


def get_session_id(request: Request, base_name: str = "site-session") -> str | None:
    """Read the session identifier from the request cookie.

    Parameters
    ----------
    request : Request
        The incoming request.
    base_name : str
        Base name of the site cookie; the ``__Host-`` prefix is applied
        for secure requests.

    Returns
    -------
    str or None
        The cookie value, or None if the cookie is absent or empty.
    """
    value = request.cookies.get(cookie_name(base_name, is_secure(request)))
    return value or None


def get_or_create_session_id(
    request: Request, base_name: str = "site-session"
) -> tuple[str, bool]:
    """Resolve the session identifier, issuing a new one when absent.

    Has no effect on the store. When ``is_new`` is True the caller is
    responsible for setting the cookie on the outgoing response.

    Returns
    -------
    tuple[str, bool]
        ``(session_id, is_new)``.
    """
    session_id = get_session_id(request, base_name)
    if session_id is not None:
        return session_id, False
    return new_session_id(), True
