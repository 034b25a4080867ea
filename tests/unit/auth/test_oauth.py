"""Tests for OAuth authentication and the token endpoint client."""

from __future__ import annotations

import json
from typing import Any
from urllib.parse import parse_qs

import httpx
import pytest

from booqable.errors import InvalidGrant, RefreshTokenRevoked, RequiredAuthParamMissing
from booqable.oauth_client import TOKEN_PATH, OAuthClient, TokenHash

NOW = 1_700_000_000.0
ORDERS = {"data": [{"id": "1", "type": "orders"}]}


def _token_response(status: int, payload: dict[str, Any]) -> httpx.Response:
    return httpx.Response(
        status,
        content=json.dumps(payload).encode(),
        headers={"content-type": "application/json"},
    )


class FakeBooqable:
    """Token endpoint plus an orders endpoint that checks the bearer token."""

    def __init__(self, jsonapi, token_response: httpx.Response | None = None) -> None:
        self.jsonapi = jsonapi
        self.token_response = token_response or _token_response(
            200, {"access_token": "new-access", "expires_in": 3600, "token_type": "Bearer"}
        )
        self.token_forms: list[dict[str, list[str]]] = []
        self.authorizations: list[str] = []

    def __call__(self, request: httpx.Request) -> httpx.Response:
        if request.url.path == TOKEN_PATH:
            self.token_forms.append(parse_qs(request.content.decode()))
            return self.token_response
        self.authorizations.append(request.headers["Authorization"])
        return self.jsonapi(200, ORDERS)


@pytest.fixture
def token_store() -> dict[str, Any]:
    return {}


@pytest.fixture
def oauth_options(token_store: dict[str, Any]) -> dict[str, Any]:
    written: list[dict[str, Any]] = []
    token_store["written"] = written
    return {
        "client_id": "app-id",
        "client_secret": "app-secret",
        "redirect_uri": "https://example.com/callback",
        "read_token": lambda: token_store.get("token"),
        "write_token": written.append,
        "clock": lambda: NOW,
    }


class TestOAuthAuth:
    def test_expired_token_is_refreshed_and_written(
        self, make_client, jsonapi, token_store, oauth_options
    ) -> None:
        token_store["token"] = {
            "access_token": "old-access",
            "refresh_token": "refresh-1",
            "expires_at": NOW - 1,
        }
        server = FakeBooqable(jsonapi)
        client = make_client(server, **oauth_options)

        client.get("orders")

        assert server.authorizations == ["Bearer new-access"]
        form = server.token_forms[0]
        assert form["grant_type"] == ["refresh_token"]
        assert form["refresh_token"] == ["refresh-1"]
        assert form["client_id"] == ["app-id"]
        assert form["client_secret"] == ["app-secret"]
        assert token_store["written"] == [
            {
                "access_token": "new-access",
                "refresh_token": "refresh-1",
                "expires_at": NOW + 3600,
                "token_type": "Bearer",
            }
        ]

    def test_valid_token_is_used_as_is(
        self, make_client, jsonapi, token_store, oauth_options
    ) -> None:
        token_store["token"] = TokenHash(
            access_token="old-access", refresh_token="refresh-1", expires_at=NOW + 60
        )
        server = FakeBooqable(jsonapi)
        client = make_client(server, **oauth_options)

        client.get("orders")

        assert server.authorizations == ["Bearer old-access"]
        assert server.token_forms == []
        assert token_store["written"] == []

    def test_token_without_expiry_is_refreshed(
        self, make_client, jsonapi, token_store, oauth_options
    ) -> None:
        token_store["token"] = {"access_token": "old-access", "refresh_token": "refresh-1"}
        server = FakeBooqable(jsonapi)
        client = make_client(server, **oauth_options)

        client.get("orders")
        assert server.authorizations == ["Bearer new-access"]

    def test_revoked_refresh_token(
        self, make_client, jsonapi, token_store, oauth_options, sleeps
    ) -> None:
        token_store["token"] = {
            "access_token": "old-access",
            "refresh_token": "revoked",
            "expires_at": NOW - 1,
        }
        server = FakeBooqable(jsonapi, _token_response(400, {"error": "invalid_grant"}))
        client = make_client(server, **oauth_options)

        with pytest.raises(RefreshTokenRevoked):
            client.get("orders")
        assert server.authorizations == []
        assert sleeps == []
        assert token_store["written"] == []

    def test_missing_token(self, make_client, jsonapi, oauth_options) -> None:
        client = make_client(FakeBooqable(jsonapi), **oauth_options)
        with pytest.raises(RequiredAuthParamMissing):
            client.get("orders")

    def test_token_without_refresh_token_cannot_be_refreshed(
        self, make_client, jsonapi, token_store, oauth_options
    ) -> None:
        token_store["token"] = {"access_token": "old-access", "expires_at": NOW - 1}
        client = make_client(FakeBooqable(jsonapi), **oauth_options)
        with pytest.raises(RequiredAuthParamMissing):
            client.get("orders")


class TestAuthenticateWithCode:
    def test_code_is_exchanged_and_written(
        self, make_client, jsonapi, token_store, oauth_options
    ) -> None:
        server = FakeBooqable(
            jsonapi,
            _token_response(
                200,
                {"access_token": "first", "refresh_token": "refresh-1", "expires_in": 7200},
            ),
        )
        client = make_client(server, **oauth_options)

        token = client.authenticate_with_code("auth-code")

        assert token.access_token == "first"
        assert token.expires_at == NOW + 7200
        form = server.token_forms[0]
        assert form["grant_type"] == ["authorization_code"]
        assert form["code"] == ["auth-code"]
        assert form["redirect_uri"] == ["https://example.com/callback"]
        assert form["scope"] == ["full_access"]
        assert token_store["written"] == [
            {"access_token": "first", "refresh_token": "refresh-1", "expires_at": NOW + 7200}
        ]

    def test_rejected_code_is_invalid_grant(self, make_client, jsonapi, oauth_options) -> None:
        server = FakeBooqable(jsonapi, _token_response(400, {"error": "invalid_grant"}))
        client = make_client(server, **oauth_options)
        with pytest.raises(InvalidGrant) as exc_info:
            client.authenticate_with_code("stale")
        assert not isinstance(exc_info.value, RefreshTokenRevoked)
        assert "app-secret" not in str(exc_info.value)

    def test_requires_oauth_credentials(self, make_client) -> None:
        client = make_client(lambda request: httpx.Response(200))
        with pytest.raises(RequiredAuthParamMissing):
            client.authenticate_with_code("auth-code")


class TestOAuthClient:
    def test_token_url_uses_endpoint_host(self) -> None:
        oauth = OAuthClient(
            api_endpoint="https://demo.booqable.com/api/4",
            client_id="id",
            client_secret="secret",
        )
        assert oauth.token_url == "https://demo.booqable.com/api/boomerang/oauth/token"
        assert "secret" not in repr(oauth)

    def test_refresh_keeps_new_refresh_token(self) -> None:
        oauth = OAuthClient(
            api_endpoint="https://demo.booqable.com/api/4",
            client_id="id",
            client_secret="secret",
            transport=httpx.MockTransport(
                lambda request: _token_response(
                    200, {"access_token": "a2", "refresh_token": "r2", "expires_at": NOW}
                )
            ),
        )
        token = oauth.refresh(TokenHash(access_token="a1", refresh_token="r1"))
        assert token == TokenHash(access_token="a2", refresh_token="r2", expires_at=NOW)


class TestTokenHash:
    def test_expiry(self) -> None:
        assert TokenHash(access_token="a", expires_at=NOW).expired(NOW)
        assert not TokenHash(access_token="a", expires_at=NOW + 1).expired(NOW)
        assert not TokenHash(access_token="a").expired(NOW)

    def test_coerce(self) -> None:
        token = TokenHash(access_token="a")
        assert TokenHash.coerce(token) is token
        assert TokenHash.coerce(None) is None
        assert TokenHash.coerce({"access_token": "a"}) == token
