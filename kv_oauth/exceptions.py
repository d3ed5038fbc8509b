"""kv_oauth exception hierarchy.

All kv_oauth-specific exceptions inherit from KvOAuthError, enabling
catch-all handling while supporting specific error types.
"""

from __future__ import annotations

from typing import Any


class KvOAuthError(Exception):
    """Base exception for all kv_oauth errors."""

    def __init__(self, message: str, **context: Any) -> None:
        """Initialize kv_oauth exception.

        Parameters
        ----------
        message : str
            Human-readable error message.
        **context : Any
            Additional context (provider, flow_id, operation, etc.).
        """
        super().__init__(message)
        self.message = message
        self.context = context

    def __str__(self) -> str:
        """Format exception with context."""
        if self.context:
            ctx = ", ".join(f"{k}={v!r}" for k, v in self.context.items())
            return f"{self.message} ({ctx})"
        return self.message


class StoreUnavailable(KvOAuthError):
    """Key-value store operation failed.

    Raised when the backing store cannot be reached or rejects an
    operation. Fatal for the current request; no partial mutation is
    assumed.
    """

    def __init__(
        self,
        message: str,
        operation: str | None = None,
        key: tuple[str, ...] | None = None,
        **context: Any,
    ) -> None:
        """Initialize store error.

        Parameters
        ----------
        message : str
            Human-readable error message.
        operation : str, optional
            The store operation that failed (get, set, delete, take).
        key : tuple[str, ...], optional
            The logical key involved.
        **context : Any
            Additional context.
        """
        super().__init__(message, operation=operation, **context)
        self.operation = operation
        self.key = key


class ConfigurationError(KvOAuthError):
    """Invalid configuration detected at startup."""


class MissingRequiredField(ConfigurationError):
    """A provider configuration is missing a required field."""

    def __init__(self, message: str, field: str, provider: str | None = None) -> None:
        """Initialize missing field error.

        Parameters
        ----------
        message : str
            Human-readable error message.
        field : str
            Name of the missing field.
        provider : str, optional
            The provider whose configuration is incomplete.
        """
        super().__init__(message, field=field, provider=provider)
        self.field = field
        self.provider = provider


class UnsupportedProvider(ConfigurationError):
    """The requested provider id is not known or not configured."""

    def __init__(self, message: str, provider: str) -> None:
        """Initialize unsupported provider error.

        Parameters
        ----------
        message : str
            Human-readable error message.
        provider : str
            The provider id that was requested.
        """
        super().__init__(message, provider=provider)
        self.provider = provider


class AuthenticationError(KvOAuthError):
    """Base exception for all authentication failures.

    Raised when an authentication operation fails, including
    callback validation and token exchange.
    """

    def __init__(
        self,
        message: str,
        provider: str | None = None,
        flow_id: str | None = None,
        **context: Any,
    ) -> None:
        """Initialize authentication error.

        Parameters
        ----------
        message : str
            Human-readable error message.
        provider : str, optional
            The OAuth2 provider id (e.g., "github", "google").
        flow_id : str, optional
            The flow identifier of the handshake that failed.
        **context : Any
            Additional context.
        """
        super().__init__(message, provider=provider, flow_id=flow_id, **context)
        self.provider = provider
        self.flow_id = flow_id


class InvalidState(AuthenticationError):
    """Callback could not be matched to a pending transaction.

    Raised for state mismatches, missing query parameters, and forged,
    expired or replayed callbacks.
    """


# Missing or malformed callback parameters are reported with the same type.
InvalidCallback = InvalidState


class TokenExchangeFailed(AuthenticationError):
    """The provider rejected the authorization code exchange."""


class TokenRefreshFailed(AuthenticationError):
    """Refreshing an expired token bag failed."""
