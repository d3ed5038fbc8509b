"""Configuration system for kv_oauth using pydantic-settings.

Supports layered configuration:
1. Built-in defaults (lowest priority)
2. pyproject.toml [tool.kv_oauth] section (project-level)
3. ./kv_oauth.toml (project-level, explicit)
4. Environment variables (highest priority)

Environment variables use the KV_OAUTH_ prefix with nested delimiter __.
Example: KV_OAUTH_STORE__BACKEND=redis, KV_OAUTH_FLOW__TRANSACTION_TTL=300

Provider credentials are read separately, once at startup, from the
conventional ``<PROVIDER>_CLIENT_ID`` / ``<PROVIDER>_CLIENT_SECRET``
variables by :func:`load_provider_config`.
"""

from __future__ import annotations

import os
import sys

from collections.abc import Mapping
from functools import lru_cache
from pathlib import Path
from typing import Annotated, Any, ClassVar, Literal, Union

from pydantic import BaseModel, ConfigDict, Field, TypeAdapter, ValidationError, field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict

from .exceptions import ConfigurationError, MissingRequiredField, UnsupportedProvider


if sys.version_info >= (3, 11):
    import tomllib
else:
    try:
        import tomli as tomllib  # type: ignore[import-not-found]
    except ImportError:
        tomllib = None


def _find_config_files() -> list[Path]:
    """Find all configuration files in order of precedence (lowest first)."""
    files = []

    pyproject = Path("pyproject.toml")
    if pyproject.exists():
        files.append(pyproject)

    explicit = Path("kv_oauth.toml")
    if explicit.exists():
        files.append(explicit)

    env_config = os.environ.get("KV_OAUTH_CONFIG_FILE")
    if env_config:
        env_path = Path(env_config)
        if env_path.exists():
            files.append(env_path)

    return files


def _load_toml_config() -> dict[str, Any]:
    """Load and merge all TOML configuration files."""
    if tomllib is None:
        return {}

    merged: dict[str, Any] = {}

    for config_file in _find_config_files():
        try:
            data = tomllib.loads(config_file.read_text(encoding="utf-8"))
        except (OSError, tomllib.TOMLDecodeError):
            continue

        if config_file.name == "pyproject.toml":
            data = data.get("tool", {}).get("kv_oauth", {})

        merged = _deep_merge(merged, data)

    return merged


def _deep_merge(base: dict[str, Any], override: dict[str, Any]) -> dict[str, Any]:
    """Deep merge two dictionaries."""
    result = base.copy()
    for key, value in override.items():
        if key in result and isinstance(result[key], dict) and isinstance(value, dict):
            result[key] = _deep_merge(result[key], value)
        else:
            result[key] = value
    return result


def is_local_path(location: str | None) -> bool:
    """Check that a redirect target stays on this site.

    Accepts absolute paths only. Protocol-relative targets (``//host``)
    and their backslash variant (``/\\host``), which browsers treat alike,
    are rejected.
    """
    return bool(location) and location.startswith("/") and not location.startswith(("//", "/\\"))


class StoreSettings(BaseSettings):
    """Key-value store backend settings.

    Environment prefix: KV_OAUTH_STORE__
    Example: KV_OAUTH_STORE__BACKEND=redis
    Example: KV_OAUTH_STORE__REDIS_URL=redis://redis:6379/0
    """

    model_config = SettingsConfigDict(
        env_prefix="KV_OAUTH_STORE__",
        extra="ignore",
    )

    backend: Literal["memory", "redis"] = Field(
        default="memory",
        description="Store backend: 'memory' (single process) or 'redis' (shared).",
    )
    redis_url: str = Field(
        default="redis://localhost:6379/0",
        description="Redis connection URL, e.g. 'redis://:password@host:port/db'",
    )
    redis_prefix: str = Field(
        default="kv_oauth",
        description="Key prefix for all Redis keys (namespace isolation)",
    )
    redis_pool_size: int = Field(
        default=10,
        ge=1,
        le=100,
        description="Redis connection pool size",
    )


class CookieSettings(BaseSettings):
    """Cookie names and lifetimes.

    Environment prefix: KV_OAUTH_COOKIE__
    """

    model_config = SettingsConfigDict(
        env_prefix="KV_OAUTH_COOKIE__",
        extra="ignore",
    )

    site_cookie_name: str = Field(
        default="site-session",
        description="Base name of the long-lived session cookie",
    )
    oauth_cookie_name: str = Field(
        default="oauth-session",
        description="Base name of the cookie carrying the pending flow id",
    )
    site_cookie_max_age: int = Field(
        default=60 * 60 * 24 * 90,
        ge=60,
        description="Session cookie lifetime in seconds",
    )
    oauth_cookie_max_age: int = Field(
        default=600,
        ge=30,
        description="Flow cookie lifetime in seconds",
    )


class FlowSettings(BaseSettings):
    """Sign-in flow behaviour.

    Environment prefix: KV_OAUTH_FLOW__
    """

    model_config = SettingsConfigDict(
        env_prefix="KV_OAUTH_FLOW__",
        extra="ignore",
    )

    transaction_ttl: int = Field(
        default=600,
        ge=30,
        le=3600,
        description="Seconds a pending handshake stays valid",
    )
    tokens_ttl_buffer: int | None = Field(
        default=None,
        ge=0,
        description=(
            "When set, stored tokens expire this many seconds after the provider's "
            "expires_in. None stores tokens without expiry."
        ),
    )
    default_redirect: str = Field(
        default="/",
        description="Where to send the browser after sign-in or sign-out",
    )
    error_redirect: str = Field(
        default="/",
        description="Where to send the browser when a callback is rejected",
    )

    @field_validator("default_redirect", "error_redirect")
    @classmethod
    def _local_path(cls, v: str) -> str:
        """Only local absolute paths are accepted for redirect targets."""
        if not is_local_path(v):
            msg = f"Redirect target must be a local path, got {v!r}"
            raise ValueError(msg)
        return v


class LogSettings(BaseSettings):
    """Logging settings.

    Environment prefix: KV_OAUTH_LOG__
    """

    model_config = SettingsConfigDict(
        env_prefix="KV_OAUTH_LOG__",
        extra="ignore",
    )

    level: str = Field(default="WARNING", description="Level for the kv_oauth logger")


class KvOAuthSettings(BaseSettings):
    """Main settings aggregating all configuration sections.

    Environment prefix: KV_OAUTH__
    """

    model_config = SettingsConfigDict(
        env_prefix="KV_OAUTH__",
        env_nested_delimiter="__",
        extra="ignore",
    )

    store: StoreSettings = Field(default_factory=StoreSettings)
    cookie: CookieSettings = Field(default_factory=CookieSettings)
    flow: FlowSettings = Field(default_factory=FlowSettings)
    log: LogSettings = Field(default_factory=LogSettings)

    def __init__(self, **data: Any) -> None:
        toml_config = _load_toml_config()
        merged = _deep_merge(toml_config, data)
        super().__init__(**merged)


@lru_cache(maxsize=1)
def get_settings() -> KvOAuthSettings:
    """Get the global settings instance (cached).

    Call clear_settings() to reload configuration.
    """
    return KvOAuthSettings()


def clear_settings() -> None:
    """Clear the cached settings to force reload."""
    get_settings.cache_clear()


# ── Provider configuration ──────────────────────────────────────────


class _ProviderConfigBase(BaseModel):
    """Fields shared by every provider configuration."""

    model_config = ConfigDict(frozen=True)

    client_id: str = ""
    client_secret: str = ""
    redirect_uri: str = ""
    scopes: list[str] = Field(default_factory=list)
    authorization_endpoint: str
    token_endpoint: str

    # Fields beyond the credentials that the provider cannot work without.
    required_fields: ClassVar[tuple[str, ...]] = ()

    @field_validator("scopes", mode="before")
    @classmethod
    def _parse_scopes(cls, v: Any) -> list[str]:
        """Accept a space/comma separated string or a list."""
        if isinstance(v, str):
            return [s for s in v.replace(",", " ").split() if s]
        return v

    def check(self) -> None:
        """Validate required fields.

        Raises
        ------
        MissingRequiredField
            If a required field is empty.
        """
        provider = getattr(self, "provider", None)
        for name in ("client_id", "client_secret", *self.required_fields):
            if not getattr(self, name):
                msg = f"{provider} provider configuration requires '{name}'"
                raise MissingRequiredField(msg, field=name, provider=provider)


class DiscordConfig(_ProviderConfigBase):
    """Discord OAuth2 client configuration.

    See https://discord.com/developers/docs/topics/oauth2
    """

    provider: Literal["discord"] = "discord"
    authorization_endpoint: str = "https://discord.com/oauth2/authorize"
    token_endpoint: str = "https://discord.com/api/oauth2/token"  # noqa: S105

    required_fields: ClassVar[tuple[str, ...]] = ("redirect_uri", "scopes")


class GitHubConfig(_ProviderConfigBase):
    """GitHub OAuth App configuration.

    See https://docs.github.com/en/apps/oauth-apps/building-oauth-apps/authorizing-oauth-apps
    """

    provider: Literal["github"] = "github"
    authorization_endpoint: str = "https://github.com/login/oauth/authorize"
    token_endpoint: str = "https://github.com/login/oauth/access_token"  # noqa: S105


class GoogleConfig(_ProviderConfigBase):
    """Google OAuth2 web-server client configuration.

    See https://developers.google.com/identity/protocols/oauth2/web-server
    """

    provider: Literal["google"] = "google"
    authorization_endpoint: str = "https://accounts.google.com/o/oauth2/v2/auth"
    token_endpoint: str = "https://oauth2.googleapis.com/token"  # noqa: S105

    required_fields: ClassVar[tuple[str, ...]] = ("redirect_uri", "scopes")


ProviderConfig = Annotated[
    Union[DiscordConfig, GitHubConfig, GoogleConfig],
    Field(discriminator="provider"),
]

PROVIDERS: tuple[str, ...] = ("discord", "github", "google")

_provider_adapter: TypeAdapter[Any] = TypeAdapter(ProviderConfig)


def build_provider_config(data: Mapping[str, Any]) -> DiscordConfig | GitHubConfig | GoogleConfig:
    """Construct and validate a provider configuration.

    Parameters
    ----------
    data : Mapping[str, Any]
        Raw configuration; must contain a ``provider`` key.

    Returns
    -------
    DiscordConfig | GitHubConfig | GoogleConfig
        The validated configuration.

    Raises
    ------
    UnsupportedProvider
        If ``provider`` is not one of :data:`PROVIDERS`.
    MissingRequiredField
        If a field the provider requires is empty.
    ConfigurationError
        If a field has the wrong type or shape.
    """
    provider = str(data.get("provider", ""))
    if provider not in PROVIDERS:
        msg = f'Provider ID "{provider}" not supported'
        raise UnsupportedProvider(msg, provider=provider)

    try:
        config = _provider_adapter.validate_python(dict(data))
    except ValidationError as exc:
        fields = sorted({".".join(str(p) for p in err["loc"][1:]) for err in exc.errors()})
        msg = f"Invalid {provider} provider configuration: {', '.join(fields)}"
        raise ConfigurationError(msg, provider=provider, fields=fields) from exc
    config.check()
    return config  # type: ignore[no-any-return]


def load_provider_config(
    provider: str,
    env: Mapping[str, str] | None = None,
    **overrides: Any,
) -> DiscordConfig | GitHubConfig | GoogleConfig:
    """Build a provider configuration from the process environment.

    Reads ``<PROVIDER>_CLIENT_ID`` and ``<PROVIDER>_CLIENT_SECRET``.
    Call once at startup and pass the result into :class:`AuthFlow`.

    Parameters
    ----------
    provider : str
        Provider id: "discord", "github" or "google".
    env : Mapping[str, str], optional
        Environment to read from (defaults to ``os.environ``).
    **overrides : Any
        Extra fields such as ``redirect_uri`` and ``scopes``.

    Returns
    -------
    DiscordConfig | GitHubConfig | GoogleConfig
        The validated configuration.
    """
    env = os.environ if env is None else env
    prefix = provider.upper()
    data: dict[str, Any] = {
        "provider": provider,
        "client_id": env.get(f"{prefix}_CLIENT_ID", ""),
        "client_secret": env.get(f"{prefix}_CLIENT_SECRET", ""),
    }
    data.update(overrides)
    return build_provider_config(data)
