"""Tests for installing authenticators from options."""

from __future__ import annotations

import logging

import httpx

from booqable.auth.api_key import ApiKeyAuth
from booqable.auth.chain import AuthChain, build_auth_chain
from booqable.auth.single_use import SingleUseTokenAuth
from booqable.config.models import ClientOptions

ENDPOINT = "https://demo.booqable.com/api/4"

SINGLE_USE = {
    "single_use_token": "key-id",
    "single_use_token_algorithm": "HS256",
    "single_use_token_secret": "shared-secret",
    "single_use_token_company_id": "company-uuid",
    "single_use_token_user_id": "user-uuid",
}


def _authorize(chain: AuthChain) -> str:
    request = httpx.Request("GET", f"{ENDPOINT}/orders")
    return next(chain.auth_flow(request)).headers["Authorization"]


def test_no_credentials_gives_no_auth() -> None:
    assert build_auth_chain(ClientOptions(), ENDPOINT) is None


def test_api_key_only() -> None:
    chain = build_auth_chain(ClientOptions(api_key="k3y"), ENDPOINT)
    assert [type(a) for a in chain.auths] == [ApiKeyAuth]
    assert _authorize(chain) == "Bearer k3y"


def test_oauth_needs_a_token_client() -> None:
    options = ClientOptions(client_id="id", client_secret="secret")
    assert build_auth_chain(options, ENDPOINT) is None


def test_first_configured_credentials_win(caplog) -> None:
    options = ClientOptions(api_key="k3y", **SINGLE_USE)

    with caplog.at_level(logging.WARNING, logger="booqable.auth.chain"):
        chain = build_auth_chain(options, ENDPOINT)

    assert [type(a) for a in chain.auths] == [ApiKeyAuth, SingleUseTokenAuth]
    assert _authorize(chain) == "Bearer k3y"
    assert any("Multiple credential sets" in r.getMessage() for r in caplog.records)


def test_repr_names_authenticators_only() -> None:
    chain = build_auth_chain(ClientOptions(api_key="k3y"), ENDPOINT)
    assert repr(chain) == "AuthChain(ApiKeyAuth)"
