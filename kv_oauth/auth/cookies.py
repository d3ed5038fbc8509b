"""Cookie policy and redirect responses.

Secure requests get ``__Host-`` prefixed cookie names, so a deployment
migrating between HTTP and HTTPS never reads a cookie set under the
other scheme.
"""

from __future__ import annotations

from typing import TYPE_CHECKING

from starlette.responses import RedirectResponse


if TYPE_CHECKING:
    from starlette.requests import Request
    from starlette.responses import Response


SECURE_PREFIX = "__Host-"


def cookie_name(base_name: str, secure: bool) -> str:
    """Return the cookie name to use for the given transport.

    Parameters
    ----------
    base_name : str
        The unprefixed cookie name.
    secure : bool
        Whether the request was served over HTTPS.
    """
    return f"{SECURE_PREFIX}{base_name}" if secure else base_name


def is_secure(request: Request) -> bool:
    """Check whether the request was served over HTTPS."""
    return request.url.scheme == "https"


def build_redirect(location: str) -> Response:
    """Build a 302 Found redirect with an empty body.

    ``location`` is used verbatim. It is never validated, so callers must
    not pass user-controlled absolute URLs.

    Parameters
    ----------
    location : str
        Value for the ``Location`` header.
    """
    response = RedirectResponse(url="/", status_code=302)
    # RedirectResponse quotes the URL; the header must be the input unchanged
    response.headers["location"] = location
    return response


def set_cookie(
    response: Response,
    name: str,
    value: str,
    *,
    secure: bool,
    max_age: int | None = None,
) -> None:
    """Attach a session-scoped cookie with the standard attributes."""
    response.set_cookie(
        key=name,
        value=value,
        max_age=max_age,
        path="/",
        secure=secure,
        httponly=True,
        samesite="lax",
    )


def clear_cookie(response: Response, name: str, *, secure: bool) -> None:
    """Expire a cookie set by :func:`set_cookie`."""
    response.delete_cookie(
        key=name,
        path="/",
        secure=secure,
        httponly=True,
        samesite="lax",
    )
