"""Logging for kv_oauth.

Library modules log through named children of the ``kv_oauth`` logger
(``kv_oauth.auth``, ``kv_oauth.store``) and never change levels on their
own. The application applies the configured level once at startup with
:func:`configure_logging`; :func:`set_level` and :func:`enable_debug` are
there for interactive use.

Callback parameters, token responses and authorization URLs carry
credentials, so anything of that kind is passed through
:func:`redact_sensitive_data` or :func:`redact_url` before it is logged.
"""

from __future__ import annotations

import functools
import logging
import sys

from collections.abc import Mapping
from typing import TYPE_CHECKING, Any
from urllib.parse import parse_qsl, urlencode, urlsplit, urlunsplit

from .config import KvOAuthSettings, get_settings


if TYPE_CHECKING:
    from .config import LogSettings


LOGGER_NAME = "kv_oauth"
LOG_FORMAT = "%(name)s - %(levelname)s - %(message)s"

REDACTED = "[REDACTED]"

# Substrings of parameter and field names whose values are credentials
_SENSITIVE_PARTS = (
    "code",
    "state",
    "verifier",
    "challenge",
    "secret",
    "password",
    "token",
    "credential",
)


@functools.cache
def get_logger() -> logging.Logger:
    """Return the ``kv_oauth`` package logger.

    The first call attaches a stderr handler (unless the application has
    already attached one) and sets the level to WARNING.
    """
    logger = logging.getLogger(LOGGER_NAME)
    if not logger.handlers:
        handler = logging.StreamHandler(sys.stderr)
        handler.setFormatter(logging.Formatter(LOG_FORMAT))
        logger.addHandler(handler)
        logger.setLevel(logging.WARNING)
    return logger


def _resolve_level(level: int | str) -> int:
    if isinstance(level, int):
        return level
    resolved = logging.getLevelName(level.strip().upper())
    if not isinstance(resolved, int):
        msg = f"Unknown log level: {level!r}"
        raise ValueError(msg)
    return resolved


def set_level(level: int | str) -> None:
    """Set the level of the package logger.

    Parameters
    ----------
    level : int or str
        A ``logging`` constant or a level name such as ``"debug"``.

    Raises
    ------
    ValueError
        If ``level`` is a name ``logging`` does not know.
    """
    get_logger().setLevel(_resolve_level(level))


def enable_debug() -> None:
    """Log sign-in, callback and store activity at DEBUG."""
    set_level(logging.DEBUG)


def configure_logging(settings: KvOAuthSettings | LogSettings | None = None) -> logging.Logger:
    """Apply logging settings to the package logger.

    Meant to be called once when the application starts.

    Parameters
    ----------
    settings : KvOAuthSettings or LogSettings, optional
        Settings to apply (defaults to the global settings).

    Returns
    -------
    logging.Logger
        The configured package logger.
    """
    if settings is None:
        settings = get_settings()
    log_settings = settings.log if isinstance(settings, KvOAuthSettings) else settings
    set_level(log_settings.level)
    return get_logger()


# ── Redaction ────────────────────────────────────────────────────────


def _is_sensitive(key: object) -> bool:
    name = str(key).lower()
    return any(part in name for part in _SENSITIVE_PARTS)


def redact_sensitive_data(data: Any, max_depth: int = 5) -> Any:
    """Return a copy of ``data`` that is safe to log.

    Values under credential-like keys (authorization code, state, PKCE
    verifier, secrets, tokens) are replaced with ``"[REDACTED]"``.
    Mappings, lists and tuples are traversed; anything nested deeper than
    ``max_depth`` is replaced with ``"[MAX_DEPTH]"``.

    Parameters
    ----------
    data : Any
        Callback parameters, a token response or similar.
    max_depth : int, optional
        Maximum nesting to traverse (default 5).
    """
    if max_depth <= 0:
        return "[MAX_DEPTH]"
    if isinstance(data, Mapping):
        return {
            key: REDACTED if _is_sensitive(key) else redact_sensitive_data(value, max_depth - 1)
            for key, value in data.items()
        }
    if isinstance(data, (list, tuple)):
        return type(data)(redact_sensitive_data(item, max_depth - 1) for item in data)
    return data


def redact_url(url: str) -> str:
    """Redact credential-like query parameters from a URL.

    >>> redact_url("https://example.com/cb?code=abc&scope=email")
    'https://example.com/cb?code=%5BREDACTED%5D&scope=email'
    """
    parts = urlsplit(url)
    if not parts.query:
        return url
    query = [
        (key, REDACTED if _is_sensitive(key) else value)
        for key, value in parse_qsl(parts.query, keep_blank_values=True)
    ]
    return urlunsplit(parts._replace(query=urlencode(query)))
