"""Tests for kv_oauth.log helpers."""

from __future__ import annotations

import logging

from urllib.parse import parse_qs, urlparse

import pytest

from kv_oauth.config import KvOAuthSettings, LogSettings, clear_settings
from kv_oauth.log import (
    configure_logging,
    enable_debug,
    get_logger,
    redact_sensitive_data,
    redact_url,
    set_level,
)


class TestLogger:
    """Tests for the package logger."""

    def test_get_logger_is_cached(self) -> None:
        """The same logger is returned each time."""
        assert get_logger() is get_logger()
        assert get_logger().name == "kv_oauth"

    def test_single_handler(self) -> None:
        """Repeated calls do not stack handlers."""
        get_logger()
        get_logger()
        assert len(logging.getLogger("kv_oauth").handlers) == 1

    def test_set_level_accepts_names(self) -> None:
        """Level names are resolved case-insensitively."""
        set_level("info")
        assert get_logger().level == logging.INFO
        set_level(logging.WARNING)
        assert get_logger().level == logging.WARNING

    def test_enable_debug(self) -> None:
        """enable_debug switches to DEBUG."""
        enable_debug()
        try:
            assert get_logger().level == logging.DEBUG
        finally:
            set_level(logging.WARNING)

    def test_child_loggers_propagate(self) -> None:
        """Module loggers are children of the package logger."""
        assert logging.getLogger("kv_oauth.auth").parent is get_logger()

    def test_unknown_level_name(self) -> None:
        """Unknown level names are rejected."""
        with pytest.raises(ValueError, match="verbose"):
            set_level("verbose")


class TestConfigureLogging:
    """Tests for applying log settings at startup."""

    def test_from_full_settings(self) -> None:
        """The log section of the main settings is applied."""
        try:
            logger = configure_logging(KvOAuthSettings(log={"level": "error"}))
            assert logger is get_logger()
            assert logger.level == logging.ERROR
        finally:
            set_level(logging.WARNING)

    def test_from_log_settings(self) -> None:
        """A bare LogSettings section is accepted."""
        try:
            configure_logging(LogSettings(level="DEBUG"))
            assert get_logger().level == logging.DEBUG
        finally:
            set_level(logging.WARNING)

    def test_defaults_to_global_settings(self, monkeypatch: pytest.MonkeyPatch) -> None:
        """Without arguments the environment-driven settings are used."""
        monkeypatch.setenv("KV_OAUTH_LOG__LEVEL", "INFO")
        clear_settings()
        try:
            configure_logging()
            assert get_logger().level == logging.INFO
        finally:
            set_level(logging.WARNING)


class TestRedaction:
    """Tests for redact_sensitive_data."""

    def test_redacts_callback_parameters(self) -> None:
        """Code and state never reach the log."""
        result = redact_sensitive_data({"code": "abc", "state": "xyz", "scope": "email"})
        assert result == {"code": "[REDACTED]", "state": "[REDACTED]", "scope": "email"}

    def test_redacts_token_fields(self) -> None:
        """Any key containing 'token' is redacted."""
        result = redact_sensitive_data({"access_token": "at", "refresh_token": "rt", "expires_in": 1})
        assert result == {"access_token": "[REDACTED]", "refresh_token": "[REDACTED]", "expires_in": 1}

    def test_nested(self) -> None:
        """Nested dicts and lists are traversed."""
        result = redact_sensitive_data({"items": [{"client_secret": "s", "id": 1}]})
        assert result == {"items": [{"client_secret": "[REDACTED]", "id": 1}]}

    def test_max_depth(self) -> None:
        """Traversal stops at max_depth."""
        assert redact_sensitive_data({"a": {"b": 1}}, max_depth=1) == {"a": "[MAX_DEPTH]"}

    def test_passthrough(self) -> None:
        """Scalars and None are returned unchanged."""
        assert redact_sensitive_data("plain") == "plain"
        assert redact_sensitive_data(None) is None

    def test_pkce_fields(self) -> None:
        """PKCE verifier and challenge are redacted."""
        result = redact_sensitive_data({"code_verifier": "v", "code_challenge": "c", "provider": "github"})
        assert result == {"code_verifier": "[REDACTED]", "code_challenge": "[REDACTED]", "provider": "github"}

    def test_tuples_keep_type(self) -> None:
        """Tuples are traversed and stay tuples."""
        assert redact_sensitive_data(({"state": "s"}, 1)) == ({"state": "[REDACTED]"}, 1)


class TestRedactUrl:
    """Tests for redact_url."""

    def test_authorization_url(self) -> None:
        """State and PKCE challenge are hidden; other parameters survive."""
        url = "https://github.com/login/oauth/authorize?client_id=id&state=s3cr3t&code_challenge=abc"
        redacted = redact_url(url)
        assert redacted.startswith("https://github.com/login/oauth/authorize?")
        params = parse_qs(urlparse(redacted).query)
        assert params["client_id"] == ["id"]
        assert params["state"] == ["[REDACTED]"]
        assert params["code_challenge"] == ["[REDACTED]"]
        assert "s3cr3t" not in redacted

    def test_without_query(self) -> None:
        """URLs without a query string are returned unchanged."""
        assert redact_url("https://example.com/callback") == "https://example.com/callback"
