"""Shared pytest fixtures for booqable tests."""

from __future__ import annotations

import json
import os
from collections.abc import Callable
from typing import Any

import httpx
import pytest

import booqable
from booqable.client import Client

JSON_API = "application/vnd.api+json"

# ============================================================================
# Environment Fixtures
# ============================================================================


@pytest.fixture(autouse=True)
def clean_environment(monkeypatch: pytest.MonkeyPatch):
    """Run every test without BOOQABLE_* variables and with fresh defaults."""
    for key in list(os.environ):
        if key.startswith("BOOQABLE_"):
            monkeypatch.delenv(key)
    booqable.reset()
    yield
    booqable.reset()


# ============================================================================
# HTTP Fixtures
# ============================================================================


def json_api_response(status: int, payload: Any, headers: dict[str, str] | None = None):
    """Build a JSON:API response."""
    return httpx.Response(
        status,
        content=json.dumps(payload).encode(),
        headers={"content-type": JSON_API, **(headers or {})},
    )


@pytest.fixture
def sleeps() -> list[float]:
    """Delays requested by the retry loop."""
    return []


@pytest.fixture
def make_client(sleeps: list[float]) -> Callable[..., Client]:
    """Factory for clients talking to a MockTransport handler.

    Defaults to company "demo" on the booqable.test domain with an API key.
    """

    def _make(handler: Callable[[httpx.Request], httpx.Response], **options: Any) -> Client:
        options.setdefault("company", "demo")
        options.setdefault("api_domain", "booqable.test")
        if not any(
            k in options for k in ("api_key", "client_id", "single_use_token", "no_auth")
        ):
            options["api_key"] = "test-api-key"
        options.pop("no_auth", None)
        return Client(
            transport=httpx.MockTransport(handler),
            sleep=sleeps.append,
            **options,
        )

    return _make


@pytest.fixture
def jsonapi() -> Callable[..., httpx.Response]:
    """Factory for JSON:API responses: ``jsonapi(status, payload, headers=None)``."""
    return json_api_response
