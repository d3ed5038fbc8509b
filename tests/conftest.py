"""Pytest configuration and fixtures."""

# pylint: disable=redefined-outer-name

from __future__ import annotations

import os

from typing import TYPE_CHECKING

import pytest

from starlette.requests import Request

from kv_oauth.config import KvOAuthSettings, clear_settings
from kv_oauth.store import MemoryKeyValueStore, clear_kv_store_cache


if TYPE_CHECKING:
    from collections.abc import Callable, Generator


@pytest.fixture(autouse=True)
def isolated_settings(monkeypatch: pytest.MonkeyPatch, tmp_path) -> Generator[None, None, None]:
    """Run every test against default settings.

    Changes into an empty directory so no pyproject.toml or kv_oauth.toml
    is picked up, and drops any KV_OAUTH_* variables from the environment.
    """
    monkeypatch.chdir(tmp_path)
    for name in list(os.environ):
        if name.startswith("KV_OAUTH"):
            monkeypatch.delenv(name, raising=False)
    clear_settings()
    clear_kv_store_cache()
    yield
    clear_settings()
    clear_kv_store_cache()


@pytest.fixture
def settings() -> KvOAuthSettings:
    """Default settings with a distinct error redirect."""
    return KvOAuthSettings(flow={"error_redirect": "/auth-error"})


@pytest.fixture
def kv() -> MemoryKeyValueStore:
    """Fresh in-memory store."""
    return MemoryKeyValueStore()


@pytest.fixture
def make_request() -> Callable[..., Request]:
    """Factory for Starlette requests with cookies and a query string."""

    def _make(
        path: str = "/",
        query: str = "",
        cookies: dict[str, str] | None = None,
        scheme: str = "http",
    ) -> Request:
        headers: list[tuple[bytes, bytes]] = [(b"host", b"testserver")]
        if cookies:
            cookie_header = "; ".join(f"{k}={v}" for k, v in cookies.items())
            headers.append((b"cookie", cookie_header.encode("latin-1")))
        scope = {
            "type": "http",
            "method": "GET",
            "scheme": scheme,
            "path": path,
            "raw_path": path.encode(),
            "root_path": "",
            "query_string": query.encode(),
            "headers": headers,
            "server": ("testserver", 443 if scheme == "https" else 80),
            "client": ("testclient", 50000),
        }
        return Request(scope)

    return _make
